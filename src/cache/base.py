"""Abstract interface for local tool caches."""

from abc import ABC, abstractmethod
from typing import List, Optional

from versioning.models import InstalledTool


class CacheInspector(ABC):
    """Reads (and prunes) the on-disk store of downloaded tool packages.

    Implementations must re-read storage on every call; other processes may
    change the cache between calls.
    """

    @abstractmethod
    def list_installed(self) -> List[InstalledTool]:
        """Return all cached tool versions ordered by package id."""

    @abstractmethod
    def get_tool(self, package_id: str) -> Optional[InstalledTool]:
        """Return the first cached entry for ``package_id``, if any."""

    @abstractmethod
    def get_tool_versions(self, package_id: str) -> List[InstalledTool]:
        """Return every cached entry for ``package_id``."""

    @abstractmethod
    def remove_tool(self, package_id: str) -> bool:
        """Delete all cached versions of ``package_id``."""

    @abstractmethod
    def clear_all(self) -> int:
        """Remove every cached tool; return the number of packages removed."""

    @abstractmethod
    def get_executable_path(self, package_id: str, version: Optional[str] = None) -> Optional[str]:
        """Return the entry point of a cached tool, or None."""
