"""Shared fixtures: build NuGet package folders on disk."""

import os

import pytest

NUSPEC_TEMPLATE = """<?xml version="1.0" encoding="utf-8"?>
<package xmlns="http://schemas.microsoft.com/packaging/2013/05/nuspec.xsd">
  <metadata>
    <id>{package_id}</id>
    <version>{version}</version>
    <authors>someone</authors>
    <description>test package</description>
{extra}  </metadata>
</package>
"""


def write_package(
    cache_root,
    package_id,
    version,
    *,
    tool=True,
    command=None,
    entry_name="MyTool",
    settings_command=None,
    nuspec_text=None,
):
    """Create ``<root>/<id lower>/<version>/`` the way a restore would lay it out."""
    version_dir = os.path.join(str(cache_root), package_id.lower(), version)
    os.makedirs(version_dir, exist_ok=True)

    if nuspec_text is None:
        extra = ""
        if tool:
            extra += '    <packageTypes>\n      <packageType name="DotnetTool" />\n    </packageTypes>\n'
        if command:
            extra += f"    <toolCommandName>{command}</toolCommandName>\n"
        nuspec_text = NUSPEC_TEMPLATE.format(package_id=package_id, version=version, extra=extra)
    with open(os.path.join(version_dir, f"{package_id.lower()}.nuspec"), "w", encoding="utf-8") as fh:
        fh.write(nuspec_text)

    payload_dir = os.path.join(version_dir, "tools", "net8.0", "any")
    os.makedirs(payload_dir, exist_ok=True)
    if entry_name:
        with open(os.path.join(payload_dir, f"{entry_name}.runtimeconfig.json"), "w", encoding="utf-8") as fh:
            fh.write('{"runtimeOptions": {"tfm": "net8.0"}}')
        with open(os.path.join(payload_dir, f"{entry_name}.dll"), "wb") as fh:
            fh.write(b"MZ")
    if settings_command:
        with open(os.path.join(payload_dir, "DotnetToolSettings.xml"), "w", encoding="utf-8") as fh:
            fh.write(
                '<?xml version="1.0" encoding="utf-8"?>\n'
                '<DotNetCliTool Version="1">\n'
                "  <Commands>\n"
                f'    <Command Name="{settings_command}" EntryPoint="{entry_name}.dll" Runner="dotnet" />\n'
                "  </Commands>\n"
                "</DotNetCliTool>\n"
            )
    return version_dir


@pytest.fixture
def cache_root(tmp_path):
    root = tmp_path / "packages"
    root.mkdir()
    return root
