"""NuGet registry package.

This package provides NuGet registry support:
- client.py: latest-version lookup and package download against the V3 flat container
- layout.py: on-disk layout of a downloaded package version in the local cache

Public API is preserved at registry.nuget without shims.
"""

from .client import NuGetRegistryClient  # noqa: F401
from .layout import UnsafeArchiveError  # noqa: F401

__all__ = [
    "NuGetRegistryClient",
    "UnsafeArchiveError",
]
