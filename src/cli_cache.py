"""CLI handler for the ``pkgrun cache`` subcommands.

Commands write their results to ``output`` and problems to ``error``; each
returns the process exit code.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, Callable, Dict, List, Optional, TextIO

from cache.base import CacheInspector
from common.logging_utils import extra_context, is_debug_enabled
from constants import Constants, ExitCodes
from registry.base import RegistryClient
from versioning.models import InstalledTool, InvalidToolReferenceError, ToolReference
from versioning.parser import is_newer_version, latest_version_string

logger = logging.getLogger(__name__)

_USAGE = f"""
Usage: {Constants.PROG_NAME} cache <command> [options]

Commands:
  list              List all installed tools
  show <id>         Show details for a specific tool
  add <id>[@ver]    Download a tool to cache without running it
  update [<id>]     Update a tool (or all) to latest version
  remove <id>       Remove a specific tool
  clear [-y]        Remove all tools (use -y to skip confirmation)
"""


def _count(n: int, noun: str = "tool") -> str:
    return f"{n} {noun}" if n == 1 else f"{n} {noun}s"


def _group_by_package(tools: List[InstalledTool]) -> Dict[str, List[InstalledTool]]:
    """Group entries by package id, case-insensitively, keeping first-seen spelling and order."""
    groups: Dict[str, List[InstalledTool]] = {}
    keys: Dict[str, str] = {}
    for tool in tools:
        key = keys.setdefault(tool.package_id.lower(), tool.package_id)
        groups.setdefault(key, []).append(tool)
    return groups


class CacheCommandHandler:
    """Implements list/show/add/update/remove/clear over the cache and registry."""

    def __init__(
        self,
        registry_client: RegistryClient,
        cache_inspector: CacheInspector,
        output: Optional[TextIO] = None,
        error: Optional[TextIO] = None,
    ):
        self.registry = registry_client
        self.cache = cache_inspector
        self.output = output if output is not None else sys.stdout
        self.error = error if error is not None else sys.stderr

    def _out(self, text: str = "") -> None:
        self.output.write(text + "\n")

    def _err(self, text: str = "") -> None:
        self.error.write(text + "\n")

    def handle(self, args: Any) -> int:
        """Dispatch parsed ``cache`` arguments to the matching command."""
        command = getattr(args, "CACHE_COMMAND", None)
        package = getattr(args, "PACKAGE", None)
        if is_debug_enabled(logger):
            logger.debug(
                "Cache command",
                extra=extra_context(event="function_entry", component="cli", action=command, target=package),
            )

        if not command:
            self.print_usage()
            return ExitCodes.USAGE_ERROR.value
        if command == "list":
            return self.handle_list()
        if command == "show":
            return self.handle_show(package)
        if command == "add":
            return self.handle_add(package)
        if command == "update":
            return self.handle_update(package)
        if command == "remove":
            return self.handle_remove(package)
        if command == "clear":
            return self.handle_clear(skip_confirmation=bool(getattr(args, "YES", False)))

        self._err(f"Error: Unknown cache command: {command}")
        self.print_usage()
        return ExitCodes.USAGE_ERROR.value

    def print_usage(self) -> None:
        self.error.write(_USAGE)

    def _require_package(self, package_id: Optional[str], usage: str) -> bool:
        if package_id:
            return True
        self._err("Error: Package ID required.")
        self._err(f"Usage: {Constants.PROG_NAME} cache {usage}")
        return False

    def handle_list(self) -> int:
        tools = self.cache.list_installed()
        if not tools:
            self._out("No tools installed.")
            return ExitCodes.SUCCESS.value

        self._out(f"{'Package Id':<40} {'Version':<15} Commands")
        self._out("-" * 70)
        for tool in tools:
            self._out(f"{tool.package_id:<40} {tool.version:<15} {tool.command_name}")
        self._out()
        self._out(f"{_count(len(tools))} installed")
        return ExitCodes.SUCCESS.value

    def handle_show(self, package_id: Optional[str]) -> int:
        if not self._require_package(package_id, "show <package-id>"):
            return ExitCodes.USAGE_ERROR.value

        versions = self.cache.get_tool_versions(package_id)
        if not versions:
            self._out(f"Tool '{package_id}' is not installed.")
            return ExitCodes.FAILURE.value

        self._out(f"Package Id: {versions[0].package_id}")
        self._out(f"Commands:   {versions[0].command_name}")
        self._out(f"Versions:   {', '.join(t.version for t in versions)}")
        return ExitCodes.SUCCESS.value

    def handle_add(self, reference_text: Optional[str]) -> int:
        if not self._require_package(reference_text, "add <package-id>[@version]"):
            return ExitCodes.USAGE_ERROR.value

        try:
            reference = ToolReference.parse(reference_text)
        except InvalidToolReferenceError as e:
            self._err(f"Error: {e}")
            return ExitCodes.USAGE_ERROR.value

        self._out(f"Downloading {reference}...")
        downloaded = self.registry.download_package(reference.package_id, reference.version)
        if downloaded is None:
            self._err(f"Error: Failed to download '{reference}'.")
            return ExitCodes.FAILURE.value

        self._out(f"Added {reference.package_id} ({downloaded})")
        return ExitCodes.SUCCESS.value

    def handle_update(self, package_id: Optional[str] = None) -> int:
        if package_id:
            return self._update_one(package_id)
        return self._update_all()

    def _update_one(self, package_id: str) -> int:
        latest = self.registry.get_latest_version(package_id)
        if latest is None:
            self._err(f"Error: Could not find package '{package_id}' on NuGet.")
            return ExitCodes.FAILURE.value

        self._out(f"Downloading {package_id}@{latest}...")
        downloaded = self.registry.download_package(package_id, latest)
        if downloaded is None:
            self._err(f"Error: Failed to download '{package_id}@{latest}'.")
            return ExitCodes.FAILURE.value

        self._out(f"Updated {package_id} to {downloaded}")
        return ExitCodes.SUCCESS.value

    def _update_all(self) -> int:
        tools = self.cache.list_installed()
        if not tools:
            self._out("No tools installed.")
            return ExitCodes.SUCCESS.value

        updated = 0
        for package_id in _group_by_package(tools):
            latest = self.registry.get_latest_version(package_id)
            if latest is None:
                self._err(f"Warning: Could not check latest version for '{package_id}'")
                continue

            cached = latest_version_string(t.version for t in self.cache.get_tool_versions(package_id))
            if cached is not None and not is_newer_version(latest, cached):
                self._out(f"{package_id} ({cached}) is up to date")
                continue

            self._out(f"Downloading {package_id}@{latest}...")
            downloaded = self.registry.download_package(package_id, latest)
            if downloaded is None:
                self._err(f"Warning: Failed to download '{package_id}@{latest}'")
                continue
            self._out(f"Updated {package_id} to {downloaded}")
            updated += 1

        self._out()
        self._out(f"{_count(updated)} updated")
        return ExitCodes.SUCCESS.value

    def handle_remove(self, package_id: Optional[str]) -> int:
        if not self._require_package(package_id, "remove <package-id>"):
            return ExitCodes.USAGE_ERROR.value

        versions = self.cache.get_tool_versions(package_id)
        if not versions:
            self._err(f"Error: Tool '{package_id}' is not installed.")
            return ExitCodes.FAILURE.value

        if not self.cache.remove_tool(package_id):
            self._err(f"Error: Failed to remove '{package_id}'.")
            return ExitCodes.FAILURE.value

        self._out(f"Removed {package_id} ({', '.join(t.version for t in versions)})")
        return ExitCodes.SUCCESS.value

    def handle_clear(
        self,
        skip_confirmation: bool = False,
        confirmation_reader: Optional[Callable[[], Optional[str]]] = None,
    ) -> int:
        """Remove every cached tool package, once per package id.

        Without ``skip_confirmation`` the user is shown what will go and must
        answer ``y``; ``confirmation_reader`` supplies that answer (stdin by
        default).
        """
        tools = self.cache.list_installed()
        if not tools:
            self._out("No tools installed.")
            return ExitCodes.SUCCESS.value

        groups = _group_by_package(tools)

        if not skip_confirmation:
            self._out(f"This will remove {_count(len(groups))}:")
            for package_id, entries in groups.items():
                self._out(f"  - {package_id} ({', '.join(t.version for t in entries)})")
            self._out()
            self.output.write("Continue? [y/N] ")
            self.output.flush()

            reader = confirmation_reader or _read_line
            response = reader()
            if (response or "").strip().lower() != "y":
                self._out("Cancelled.")
                return ExitCodes.SUCCESS.value

        removed = 0
        for package_id, entries in groups.items():
            if self.cache.remove_tool(package_id):
                self._out(f"Removed {package_id} ({', '.join(t.version for t in entries)})")
                removed += 1
            else:
                self._err(f"Failed to remove {package_id}")

        self._out()
        self._out(f"{_count(removed)} removed")
        return ExitCodes.SUCCESS.value


def _read_line() -> Optional[str]:
    try:
        return input()
    except EOFError:
        return None
