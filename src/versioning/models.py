"""Data models for tool references, versions and cached tools."""

from dataclasses import dataclass
from enum import Enum
from functools import total_ordering
from typing import Optional

from constants import PkgrunError

# Numeric version components must fit a signed 32-bit integer.
MAX_VERSION_COMPONENT = 2**31 - 1


class InvalidToolReferenceError(PkgrunError, ValueError):
    """Raised when a user-supplied tool reference cannot be parsed."""


@dataclass(frozen=True, eq=False)
class ToolReference:
    """A ``name`` or ``name@version`` token naming a tool package."""
    package_id: str
    version: Optional[str] = None

    @property
    def is_pinned(self) -> bool:
        return self.version is not None

    @classmethod
    def parse(cls, text: Optional[str]) -> "ToolReference":
        # Imported lazily to keep models free of parsing logic
        from versioning.parser import parse_tool_reference  # pylint: disable=import-outside-toplevel
        return parse_tool_reference(text)

    def _key(self):
        return (self.package_id.lower(), self.version)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ToolReference):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __str__(self) -> str:
        return f"{self.package_id}@{self.version}" if self.is_pinned else self.package_id


@total_ordering
@dataclass(frozen=True, eq=False)
class VersionIdentifier:
    """A semantic-version-like value: major.minor.patch with optional prerelease.

    Ordering is by (major, minor, patch); on a tie a release outranks any
    prerelease, and two prerelease labels compare case-insensitively.
    """
    major: int = 0
    minor: int = 0
    patch: int = 0
    prerelease: Optional[str] = None

    @classmethod
    def try_parse(cls, text: Optional[str]) -> Optional["VersionIdentifier"]:
        """Parse ``text``; return None instead of raising on malformed input."""
        from versioning.parser import try_parse_version  # pylint: disable=import-outside-toplevel
        _, version = try_parse_version(text)
        return version

    def compare_to(self, other: "VersionIdentifier") -> int:
        """Return -1, 0 or 1 as this version is lower, equal or greater."""
        mine = (self.major, self.minor, self.patch)
        theirs = (other.major, other.minor, other.patch)
        if mine != theirs:
            return -1 if mine < theirs else 1
        if self.prerelease is None and other.prerelease is None:
            return 0
        if self.prerelease is None:
            return 1
        if other.prerelease is None:
            return -1
        a, b = self.prerelease.lower(), other.prerelease.lower()
        if a == b:
            return 0
        return -1 if a < b else 1

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, VersionIdentifier):
            return NotImplemented
        return self.compare_to(other) == 0

    def __lt__(self, other: "VersionIdentifier") -> bool:
        if not isinstance(other, VersionIdentifier):
            return NotImplemented
        return self.compare_to(other) < 0

    def __hash__(self) -> int:
        label = self.prerelease.lower() if self.prerelease is not None else None
        return hash((self.major, self.minor, self.patch, label))

    def __str__(self) -> str:
        core = f"{self.major}.{self.minor}.{self.patch}"
        return f"{core}-{self.prerelease}" if self.prerelease is not None else core


@dataclass(frozen=True)
class InstalledTool:
    """A tool package version found in the local cache."""
    package_id: str
    version: str  # cache directory name, not necessarily a valid version
    command_name: str


class LookupStatus(Enum):
    """Outcome of a registry call."""
    FOUND = "found"
    NOT_FOUND = "not_found"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class LookupResult:
    """Typed registry outcome; public client methods collapse it to ``value``."""
    status: LookupStatus
    value: Optional[str] = None
    detail: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.status == LookupStatus.FOUND

    @classmethod
    def hit(cls, value: str) -> "LookupResult":
        return cls(LookupStatus.FOUND, value)

    @classmethod
    def miss(cls, status: LookupStatus, detail: Optional[str] = None) -> "LookupResult":
        return cls(status, None, detail)
