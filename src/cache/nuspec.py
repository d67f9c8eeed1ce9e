"""Package metadata helpers: read .nuspec and DotnetToolSettings.xml files."""
from __future__ import annotations

import logging
import os
import xml.etree.ElementTree as ET
from glob import escape, glob
from typing import Optional

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled

logger = logging.getLogger(__name__)


def _strip_namespaces(root: ET.Element) -> ET.Element:
    """Remove XML namespaces in place so lookups can use bare tag names."""
    for elem in root.iter():
        if '}' in elem.tag:
            elem.tag = elem.tag.split('}', 1)[1]
    return root


def find_nuspec(version_dir: str) -> Optional[str]:
    """Return the first .nuspec file directly inside ``version_dir``."""
    matches = sorted(glob(os.path.join(escape(version_dir), "*" + Constants.NUSPEC_SUFFIX)))
    return matches[0] if matches else None


def load_nuspec_metadata(version_dir: str) -> Optional[ET.Element]:
    """Parse the nuspec of a version directory and return its <metadata> element.

    Any read or parse failure yields None.
    """
    nuspec_path = find_nuspec(version_dir)
    if nuspec_path is None:
        return None
    try:
        root = _strip_namespaces(ET.parse(nuspec_path).getroot())
    except (ET.ParseError, OSError) as e:
        if is_debug_enabled(logger):
            logger.debug(
                "Couldn't parse nuspec",
                extra=extra_context(
                    event="parse", component="nuspec", outcome="parse_error",
                    target=nuspec_path, error=str(e),
                ),
            )
        return None
    return root.find("metadata")


def is_tool_package(version_dir: str) -> bool:
    """True if the nuspec in ``version_dir`` declares the DotnetTool package type."""
    metadata = load_nuspec_metadata(version_dir)
    if metadata is None:
        return False
    wanted = Constants.TOOL_PACKAGE_TYPE.lower()
    for package_type in metadata.findall("./packageTypes/packageType"):
        name = package_type.get("name")
        if name and name.lower() == wanted:
            return True
    return False


def _command_from_tool_settings(version_dir: str) -> Optional[str]:
    """Read the first command name from tools/**/DotnetToolSettings.xml."""
    pattern = os.path.join(escape(version_dir), Constants.TOOLS_DIR, "**", Constants.TOOL_SETTINGS_FILE)
    for settings_path in sorted(glob(pattern, recursive=True)):
        try:
            root = _strip_namespaces(ET.parse(settings_path).getroot())
        except (ET.ParseError, OSError) as e:
            logger.debug("Couldn't parse %s: %s", settings_path, e)
            continue
        command = root.find(".//Commands/Command")
        if command is not None and command.get("Name"):
            return command.get("Name")
    return None


def get_command_name(version_dir: str, package_id: str) -> str:
    """Return the command a tool package exposes, defaulting to ``package_id``."""
    metadata = load_nuspec_metadata(version_dir)
    if metadata is not None:
        declared = metadata.findtext("toolCommandName")
        if declared and declared.strip():
            return declared.strip()

    from_settings = _command_from_tool_settings(version_dir)
    if from_settings:
        return from_settings

    return package_id
