"""On-disk package layout: where a downloaded .nupkg goes and what is written beside it.

Extraction happens in place, not in a staging directory, so a concurrent
reader can observe a partially extracted version directory.
"""
from __future__ import annotations

import base64
import hashlib
import json
import logging
import os
import shutil
import zipfile
from typing import Iterable, Optional
from urllib.parse import unquote

from constants import Constants, PkgrunError

logger = logging.getLogger(__name__)

# Packaging bookkeeping entries that NuGet does not extract
_SKIP_FILES = ("[Content_Types].xml",)
_SKIP_PREFIXES = ("_rels/", "package/")
_UNSAFE_SEGMENT_CHARS = ("/", "\\", ":", "\0")


class UnsafeArchiveError(PkgrunError):
    """Raised when an archive entry would be written outside its version directory."""


def is_safe_path_segment(name: str) -> bool:
    """True if ``name`` can be used as one directory name below the cache root.

    Package ids and versions come from the command line and the registry;
    separators, drive markers and leading dots (``.``/``..``) are rejected.
    """
    if not name or name.startswith("."):
        return False
    return not any(ch in name for ch in _UNSAFE_SEGMENT_CHARS)


def version_dir_path(cache_root: str, package_id: str, version: str) -> str:
    """Directory a freshly downloaded version is written to."""
    return os.path.join(cache_root, package_id.lower(), version.lower())


def find_version_dir(cache_root: str, package_id: str, version: str) -> Optional[str]:
    """Return the existing directory for ``version`` (matched case-insensitively), if any."""
    package_dir = os.path.join(cache_root, package_id.lower())
    try:
        with os.scandir(package_dir) as it:
            for entry in it:
                if entry.is_dir() and entry.name.lower() == version.lower():
                    return entry.path
    except OSError:
        return None
    return None


def archive_file_name(package_id: str, version: str) -> str:
    return f"{package_id.lower()}.{version.lower()}.nupkg"


def write_archive(version_dir: str, file_name: str, chunks: Iterable[bytes]) -> str:
    """Stream archive bytes to disk; return the base64 SHA-512 of the content."""
    os.makedirs(version_dir, exist_ok=True)
    digest = hashlib.sha512()
    with open(os.path.join(version_dir, file_name), "wb") as fh:
        for chunk in chunks:
            if chunk:
                digest.update(chunk)
                fh.write(chunk)
    return base64.b64encode(digest.digest()).decode("ascii")


def _should_extract(member: str) -> bool:
    if member.endswith("/"):
        return False
    if member in _SKIP_FILES:
        return False
    return not member.startswith(_SKIP_PREFIXES)


def extract_archive(archive_path: str, version_dir: str) -> int:
    """Unpack a .nupkg into ``version_dir``; return the number of files written.

    Raises:
        zipfile.BadZipFile: If the archive is not a valid zip.
        UnsafeArchiveError: If an entry escapes ``version_dir``.
    """
    target_root = os.path.realpath(version_dir)
    written = 0
    with zipfile.ZipFile(archive_path) as zf:
        for member in zf.namelist():
            if not _should_extract(member):
                continue
            # Entry names in .nupkg files are URL-escaped
            relative = unquote(member)
            destination = os.path.realpath(os.path.join(target_root, relative))
            if os.path.commonpath([target_root, destination]) != target_root:
                raise UnsafeArchiveError(f"Archive entry escapes package directory: {member}")
            os.makedirs(os.path.dirname(destination), exist_ok=True)
            with zf.open(member) as src, open(destination, "wb") as dst:
                shutil.copyfileobj(src, dst)
            written += 1
    return written


def write_integrity_files(version_dir: str, file_name: str, content_hash: str, source: str) -> None:
    """Write the content-hash descriptor and the checksum file next to the archive."""
    metadata = {"version": 2, "contentHash": content_hash, "source": source}
    with open(os.path.join(version_dir, Constants.NUPKG_METADATA_FILE), "w", encoding="utf-8") as fh:
        json.dump(metadata, fh, indent=2)
    with open(os.path.join(version_dir, file_name + ".sha512"), "w", encoding="ascii") as fh:
        fh.write(content_hash)
