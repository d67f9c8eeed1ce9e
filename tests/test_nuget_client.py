"""Tests for NuGet client functionality."""

import io
import json
import os
import threading
import zipfile
from unittest.mock import MagicMock

import requests

from registry.nuget import NuGetRegistryClient
from versioning.models import LookupStatus

from conftest import write_package

BASE_URL = "https://nuget.example/v3-flatcontainer"


def _nupkg_bytes(entries):
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, data in entries.items():
            zf.writestr(name, data)
    return buf.getvalue()


def _tool_nupkg():
    return _nupkg_bytes({
        "_rels/.rels": "<Relationships />",
        "[Content_Types].xml": "<Types />",
        "package/services/metadata/core-properties/abc.psmdcp": "<coreProperties />",
        "my.tool.nuspec": (
            "<package><metadata><id>My.Tool</id><version>2.0.0</version>"
            '<packageTypes><packageType name="DotnetTool" /></packageTypes>'
            "</metadata></package>"
        ),
        "tools/net8.0/any/MyTool.dll": b"MZ",
        "tools/net8.0/any/MyTool.runtimeconfig.json": "{}",
        "tools/net8.0/any/My%20Data.txt": "data",
    })


def _response(status_code=200, content=b""):
    res = MagicMock()
    res.status_code = status_code
    res.iter_content.return_value = [content]
    return res


def _client(cache_root, http=None):
    http = http or MagicMock()
    return NuGetRegistryClient(http, str(cache_root), base_url=BASE_URL + "/"), http


class TestLatestVersion:
    """Test the version index lookup."""

    def test_returns_last_listed_version(self, cache_root):
        client, http = _client(cache_root)
        http.get_json.return_value = (200, {}, {"versions": ["1.0.0", "1.1.0", "2.0.0-beta"]})

        assert client.get_latest_version("My.Tool") == "2.0.0-beta"
        url = http.get_json.call_args[0][0]
        assert url == f"{BASE_URL}/my.tool/index.json"

    def test_not_found(self, cache_root):
        client, http = _client(cache_root)
        http.get_json.return_value = (404, {}, None)

        result = client.lookup_latest_version("missing")

        assert result.status == LookupStatus.NOT_FOUND
        assert client.get_latest_version("missing") is None

    def test_empty_version_list(self, cache_root):
        client, http = _client(cache_root)
        http.get_json.return_value = (200, {}, {"versions": []})
        assert client.lookup_latest_version("x").status == LookupStatus.NOT_FOUND

    def test_transport_failure(self, cache_root):
        client, http = _client(cache_root)
        http.get_json.return_value = (0, {}, None)

        result = client.lookup_latest_version("x")

        assert result.status == LookupStatus.FAILED
        assert result.value is None

    def test_server_error(self, cache_root):
        client, http = _client(cache_root)
        http.get_json.return_value = (503, {}, None)
        assert client.lookup_latest_version("x").status == LookupStatus.FAILED

    def test_malformed_body(self, cache_root):
        client, http = _client(cache_root)
        http.get_json.return_value = (200, {}, {"versions": "1.0.0"})
        assert client.get_latest_version("x") is None

        http.get_json.return_value = (200, {}, None)
        assert client.get_latest_version("x") is None

    def test_cancelled_before_request(self, cache_root):
        client, http = _client(cache_root)
        cancel = threading.Event()
        cancel.set()

        assert client.get_latest_version("x", cancel) is None
        assert client.lookup_latest_version("x", cancel).status == LookupStatus.CANCELLED
        http.get_json.assert_not_called()


class TestDownloadPackage:
    """Test downloading into the cache."""

    def test_download_extracts_package(self, cache_root):
        client, http = _client(cache_root)
        content = _tool_nupkg()
        http.safe_get.return_value = _response(200, content)

        assert client.download_package("My.Tool", "2.0.0") == "2.0.0"

        url = http.safe_get.call_args[0][0]
        assert url == f"{BASE_URL}/my.tool/2.0.0/my.tool.2.0.0.nupkg"
        assert http.safe_get.call_args[1]["stream"] is True

        version_dir = cache_root / "my.tool" / "2.0.0"
        assert (version_dir / "my.tool.2.0.0.nupkg").read_bytes() == content
        assert (version_dir / "my.tool.nuspec").is_file()
        assert (version_dir / "tools" / "net8.0" / "any" / "MyTool.dll").is_file()
        assert (version_dir / "tools" / "net8.0" / "any" / "My Data.txt").is_file()
        assert not (version_dir / "_rels").exists()
        assert not (version_dir / "package").exists()
        assert not (version_dir / "[Content_Types].xml").exists()

        metadata = json.loads((version_dir / ".nupkg.metadata").read_text())
        assert metadata["version"] == 2
        assert metadata["source"] == url
        assert (version_dir / "my.tool.2.0.0.nupkg.sha512").read_text() == metadata["contentHash"]

    def test_download_without_version_uses_latest(self, cache_root):
        client, http = _client(cache_root)
        http.get_json.return_value = (200, {}, {"versions": ["1.0.0", "2.0.0"]})
        http.safe_get.return_value = _response(200, _tool_nupkg())

        assert client.download_package("my.tool") == "2.0.0"
        assert (cache_root / "my.tool" / "2.0.0").is_dir()

    def test_already_cached_is_idempotent(self, cache_root):
        write_package(cache_root, "my.tool", "1.0.0")
        client, http = _client(cache_root)

        assert client.download_package("My.Tool", "1.0.0") == "1.0.0"
        assert client.download_package("My.Tool", "1.0.0") == "1.0.0"
        http.safe_get.assert_not_called()
        http.get_json.assert_not_called()

    def test_second_download_skips_network(self, cache_root):
        client, http = _client(cache_root)
        http.safe_get.return_value = _response(200, _tool_nupkg())

        assert client.download_package("my.tool", "2.0.0") == "2.0.0"
        assert client.download_package("my.tool", "2.0.0") == "2.0.0"
        assert http.safe_get.call_count == 1

    def test_not_found(self, cache_root):
        client, http = _client(cache_root)
        http.safe_get.return_value = _response(404)

        result = client.fetch_package("my.tool", "9.9.9")

        assert result.status == LookupStatus.NOT_FOUND
        assert not (cache_root / "my.tool").exists()

    def test_request_failure(self, cache_root):
        client, http = _client(cache_root)
        http.safe_get.return_value = None
        assert client.download_package("my.tool", "1.0.0") is None

    def test_stream_error(self, cache_root):
        client, http = _client(cache_root)
        res = _response(200)
        res.iter_content.side_effect = requests.ConnectionError("reset")
        http.safe_get.return_value = res

        assert client.fetch_package("my.tool", "1.0.0").status == LookupStatus.FAILED
        res.close.assert_called_once()

    def test_corrupt_archive(self, cache_root):
        client, http = _client(cache_root)
        http.safe_get.return_value = _response(200, b"not a zip")
        assert client.download_package("my.tool", "1.0.0") is None

    def test_zip_slip_rejected(self, cache_root, tmp_path):
        client, http = _client(cache_root)
        http.safe_get.return_value = _response(200, _nupkg_bytes({"../../evil.txt": "x"}))

        assert client.download_package("my.tool", "1.0.0") is None
        assert not os.path.exists(tmp_path / "evil.txt")
        assert not os.path.exists(cache_root / "evil.txt")

    def test_encrypted_entry_fails(self, cache_root):
        data = bytearray(_nupkg_bytes({"tools/net8.0/any/MyTool.dll": b"MZ"}))
        # Set the "encrypted" general purpose flag in local and central headers
        for signature, offset in ((b"PK\x03\x04", 6), (b"PK\x01\x02", 8)):
            pos = data.find(signature)
            while pos != -1:
                data[pos + offset] |= 0x01
                pos = data.find(signature, pos + 1)
        client, http = _client(cache_root)
        res = _response(200, bytes(data))
        http.safe_get.return_value = res

        result = client.fetch_package("my.tool", "1.0.0")

        assert result.status == LookupStatus.FAILED
        res.close.assert_called_once()

    def test_registry_version_escaping_cache_rejected(self, cache_root, tmp_path):
        client, http = _client(cache_root)
        http.get_json.return_value = (200, {}, {"versions": ["1.0.0", "../../escaped"]})
        http.safe_get.return_value = _response(200, _tool_nupkg())

        assert client.download_package("my.tool") is None
        assert not (tmp_path / "escaped").exists()
        assert not (cache_root / "escaped").exists()
        http.safe_get.assert_not_called()

    def test_unsafe_pinned_version_rejected(self, cache_root):
        client, http = _client(cache_root)

        for version in ("../x", ".hidden", "a/b", "a\\b", ""):
            result = client.fetch_package("my.tool", version)
            assert result.status == LookupStatus.FAILED
        assert client.fetch_package("../my.tool", "1.0.0").status == LookupStatus.FAILED
        http.safe_get.assert_not_called()

    def test_cancelled_before_download(self, cache_root):
        client, http = _client(cache_root)
        cancel = threading.Event()
        cancel.set()

        assert client.download_package("my.tool", "1.0.0", cancel) is None
        assert client.download_package("my.tool", None, cancel) is None
        http.safe_get.assert_not_called()
        http.get_json.assert_not_called()

    def test_latest_lookup_failure_propagates(self, cache_root):
        client, http = _client(cache_root)
        http.get_json.return_value = (404, {}, None)

        assert client.fetch_package("missing").status == LookupStatus.NOT_FOUND
        http.safe_get.assert_not_called()
