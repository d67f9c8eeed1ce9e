"""Token parsing and version comparison utilities."""

import re
from typing import Iterable, Optional, Tuple

from .models import MAX_VERSION_COMPONENT, InvalidToolReferenceError, ToolReference, VersionIdentifier

_NUMERIC = re.compile(r"^[0-9]+$")


def tokenize_rightmost_at(s: str) -> Tuple[str, Optional[str]]:
    """Return (identifier, version or None) using the rightmost-``@`` rule.

    An ``@`` at position 0 is part of the identifier, not a separator.
    """
    at = s.rfind("@")
    if at > 0:
        return s[:at], s[at + 1:]
    return s, None


def parse_tool_reference(text: Optional[str]) -> ToolReference:
    """Parse a ``name`` or ``name@version`` CLI token into a ToolReference.

    A trailing bare ``@`` yields a reference pinned to the empty version,
    which matches no cached version and no published one.

    Raises:
        InvalidToolReferenceError: If the token is missing or blank.
    """
    if text is None or not text.strip():
        raise InvalidToolReferenceError("Tool reference cannot be empty.")

    package_id, version = tokenize_rightmost_at(text)
    return ToolReference(package_id=package_id, version=version)


def _parse_component(part: str) -> Optional[int]:
    if not _NUMERIC.match(part):
        return None
    value = int(part)
    if value > MAX_VERSION_COMPONENT:
        return None
    return value


def try_parse_version(text: Optional[str]) -> Tuple[bool, Optional[VersionIdentifier]]:
    """Parse a version string; never raises.

    Version strings come from cache directory names and registry responses,
    so malformed input is a normal outcome reported as ``(False, None)``.
    """
    if text is None or not text.strip():
        return False, None

    prerelease = None
    core = text
    dash = text.find("-")
    if dash > 0:
        prerelease = text[dash + 1:]
        core = text[:dash]

    parts = core.split(".")
    if not 1 <= len(parts) <= 4:
        return False, None

    numbers = []
    for part in parts:
        value = _parse_component(part)
        if value is None:
            return False, None
        numbers.append(value)

    numbers.extend([0] * (3 - len(numbers)))
    return True, VersionIdentifier(numbers[0], numbers[1], numbers[2], prerelease)


def compare_versions(a: VersionIdentifier, b: VersionIdentifier) -> int:
    """Return -1, 0 or 1 comparing two parsed versions."""
    return a.compare_to(b)


def is_newer_version(candidate: str, baseline: str) -> bool:
    """True if ``candidate`` is strictly newer than ``baseline``.

    Falls back to case-insensitive string comparison when either side is not
    a parseable version.
    """
    ok_candidate, parsed_candidate = try_parse_version(candidate)
    ok_baseline, parsed_baseline = try_parse_version(baseline)
    if ok_candidate and ok_baseline:
        return compare_versions(parsed_candidate, parsed_baseline) > 0
    return candidate.lower() > baseline.lower()


def latest_version_string(candidates: Iterable[str]) -> Optional[str]:
    """Pick the greatest parseable version string.

    When none of the candidates parse, the first candidate is returned; an
    empty input yields None.
    """
    first = None
    best: Optional[Tuple[VersionIdentifier, str]] = None
    for raw in candidates:
        if first is None:
            first = raw
        ok, parsed = try_parse_version(raw)
        if not ok:
            continue
        if best is None or parsed > best[0]:
            best = (parsed, raw)
    if best is not None:
        return best[1]
    return first
