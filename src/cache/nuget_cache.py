"""Cache inspector over a NuGet global-packages folder.

Layout: ``<root>/<package id, lowercased>/<version>/`` with the package's
.nuspec, archive, integrity side-files and a ``tools`` tree holding the
runnable payload.
"""
from __future__ import annotations

import logging
import os
import shutil
from glob import escape, glob
from typing import List, Optional

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled
from versioning.models import InstalledTool
from versioning.parser import latest_version_string

from .base import CacheInspector
from .nuspec import get_command_name, is_tool_package

logger = logging.getLogger(__name__)


def _subdirectories(path: str) -> List[str]:
    """Names of the immediate subdirectories of ``path``; empty if unreadable."""
    try:
        with os.scandir(path) as it:
            return sorted(entry.name for entry in it if entry.is_dir())
    except OSError:
        return []


class NuGetCacheInspector(CacheInspector):
    """Scans a NuGet packages folder for DotnetTool packages.

    Nothing is cached between calls: every method walks the directory tree
    again, so downloads made by other processes become visible immediately.
    """

    def __init__(self, cache_root: str):
        self.cache_root = cache_root

    def _package_dir(self, package_id: str) -> str:
        return os.path.join(self.cache_root, package_id.lower())

    def list_installed(self) -> List[InstalledTool]:
        tools: List[InstalledTool] = []
        if not os.path.isdir(self.cache_root):
            return tools

        for package_id in _subdirectories(self.cache_root):
            package_dir = os.path.join(self.cache_root, package_id)
            for version in _subdirectories(package_dir):
                version_dir = os.path.join(package_dir, version)
                if is_tool_package(version_dir):
                    command = get_command_name(version_dir, package_id)
                    tools.append(InstalledTool(package_id, version, command))

        tools.sort(key=lambda t: t.package_id.lower())
        if is_debug_enabled(logger):
            logger.debug(
                "Scanned tool cache",
                extra=extra_context(
                    event="cache_scan", component="cache", target=self.cache_root, count=len(tools)
                ),
            )
        return tools

    def get_tool(self, package_id: str) -> Optional[InstalledTool]:
        wanted = package_id.lower()
        return next((t for t in self.list_installed() if t.package_id.lower() == wanted), None)

    def get_tool_versions(self, package_id: str) -> List[InstalledTool]:
        wanted = package_id.lower()
        return [t for t in self.list_installed() if t.package_id.lower() == wanted]

    def remove_tool(self, package_id: str) -> bool:
        package_dir = self._package_dir(package_id)
        if not os.path.isdir(package_dir):
            return False
        try:
            shutil.rmtree(package_dir)
        except OSError as e:
            logger.warning("Failed to remove %s: %s", package_dir, e)
            return False
        logger.info("Removed cached package %s", package_dir)
        return True

    def clear_all(self) -> int:
        seen = set()
        removed = 0
        for tool in self.list_installed():
            key = tool.package_id.lower()
            if key in seen:
                continue
            seen.add(key)
            if self.remove_tool(tool.package_id):
                removed += 1
        return removed

    def _resolve_version_dir(self, package_dir: str, version: Optional[str]) -> Optional[str]:
        """Pick the version directory to run: the pinned one or the latest cached."""
        versions = _subdirectories(package_dir)
        if not versions:
            return None
        if version is not None:
            wanted = version.lower()
            match = next((v for v in versions if v.lower() == wanted), None)
        else:
            match = latest_version_string(versions)
        return os.path.join(package_dir, match) if match else None

    def get_executable_path(self, package_id: str, version: Optional[str] = None) -> Optional[str]:
        package_dir = self._package_dir(package_id)
        if not os.path.isdir(package_dir):
            return None

        version_dir = self._resolve_version_dir(package_dir, version)
        if version_dir is None or not is_tool_package(version_dir):
            return None

        return find_entry_point(version_dir)


def find_entry_point(version_dir: str) -> Optional[str]:
    """Locate the runnable .dll by its sibling ``<name>.runtimeconfig.json``."""
    tools_dir = os.path.join(version_dir, Constants.TOOLS_DIR)
    if not os.path.isdir(tools_dir):
        return None

    pattern = os.path.join(escape(tools_dir), "**", "*" + Constants.RUNTIMECONFIG_SUFFIX)
    descriptors = sorted(glob(pattern, recursive=True))
    if not descriptors:
        return None

    descriptor = descriptors[0]
    name = os.path.basename(descriptor)[: -len(Constants.RUNTIMECONFIG_SUFFIX)]
    entry_point = os.path.join(os.path.dirname(descriptor), name + Constants.ENTRY_POINT_SUFFIX)
    return entry_point if os.path.isfile(entry_point) else None
