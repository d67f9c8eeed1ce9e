"""Process launchers for cached and not-yet-installed tools."""

from .base import ProcessLauncher  # noqa: F401
from .dotnet import DotnetProcessLauncher  # noqa: F401

__all__ = ["ProcessLauncher", "DotnetProcessLauncher"]
