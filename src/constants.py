"""Constants used in the project."""

import os
from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FAILURE = 1
    USAGE_ERROR = 1
    INTERRUPTED = 130


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    PROG_NAME = "pkgrun"
    DIST_NAME = "pkgrun"

    REGISTRY_URL_NUGET_FLAT = "https://api.nuget.org/v3-flatcontainer"
    REQUEST_TIMEOUT = 10  # Timeout in seconds for all HTTP requests

    # Cache layout
    ENV_CACHE_ROOT = "NUGET_PACKAGES"
    DEFAULT_CACHE_DIR = os.path.join("~", ".nuget", "packages")
    TOOL_PACKAGE_TYPE = "DotnetTool"
    NUSPEC_SUFFIX = ".nuspec"
    RUNTIMECONFIG_SUFFIX = ".runtimeconfig.json"
    ENTRY_POINT_SUFFIX = ".dll"
    TOOL_SETTINGS_FILE = "DotnetToolSettings.xml"
    TOOLS_DIR = "tools"
    NUPKG_METADATA_FILE = ".nupkg.metadata"

    # Configuration
    ENV_CONFIG = "PKGRUN_CONFIG"
    ENV_LOG_LEVEL = "PKGRUN_LOG_LEVEL"
    DEFAULT_CONFIG_PATH = os.path.join("~", ".config", "pkgrun", "config.yml")

    LOG_FORMAT = "[%(levelname)s] %(message)s"
    DEFAULT_LOG_LEVEL = "WARNING"

    # How often a blocked child-process wait re-checks for cancellation
    PROCESS_POLL_INTERVAL_SEC = 0.1


class PkgrunError(Exception):
    """Base class for errors raised by pkgrun."""
