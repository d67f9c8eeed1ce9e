"""Local tool cache.

- base.py: CacheInspector interface
- nuget_cache.py: scanner for a NuGet global-packages folder
- nuspec.py: package metadata readers
"""

from .base import CacheInspector  # noqa: F401
from .nuget_cache import NuGetCacheInspector, find_entry_point  # noqa: F401

__all__ = [
    "CacheInspector",
    "NuGetCacheInspector",
    "find_entry_point",
]
