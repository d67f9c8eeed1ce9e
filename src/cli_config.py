"""CLI configuration: config file loading, Constants overrides and cache root lookup.

Applies overrides from the user's YAML config and never raises to avoid
breaking the CLI.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Mapping, Optional

import yaml

from constants import Constants

logger = logging.getLogger(__name__)


def default_config_path() -> str:
    """Config path from PKGRUN_CONFIG, else ~/.config/pkgrun/config.yml."""
    return os.path.expanduser(os.environ.get(Constants.ENV_CONFIG) or Constants.DEFAULT_CONFIG_PATH)


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from a YAML file.

    Args:
        config_path: Path to the YAML config file; defaults to ``default_config_path()``.

    Returns:
        Configuration dict; empty when the file is missing or unreadable.
    """
    path = config_path or default_config_path()
    if not os.path.isfile(path):
        return {}

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Failed to load config %s: %s", path, e)
        return {}

    if not isinstance(data, dict):
        logger.warning("Ignoring config %s: top level must be a mapping", path)
        return {}
    return data


def apply_config_overrides(config: Mapping[str, Any]) -> None:
    """Apply registry URL and request timeout overrides to Constants.

    Invalid values are logged and ignored.
    """
    registry_url = config.get("registry_url")
    if isinstance(registry_url, str) and registry_url.strip():
        Constants.REGISTRY_URL_NUGET_FLAT = registry_url.strip().rstrip("/")

    timeout = config.get("request_timeout")
    if timeout is not None:
        try:
            value = float(timeout)
        except (TypeError, ValueError):
            logger.warning("Ignoring invalid request_timeout: %r", timeout)
        else:
            if value > 0:
                Constants.REQUEST_TIMEOUT = value
            else:
                logger.warning("Ignoring non-positive request_timeout: %r", timeout)


def resolve_cache_root(config: Optional[Mapping[str, Any]] = None) -> str:
    """Locate the package cache.

    Priority:
    1. NUGET_PACKAGES environment variable
    2. ``cache_root`` from the config file
    3. ~/.nuget/packages
    """
    env_root = os.environ.get(Constants.ENV_CACHE_ROOT)
    if env_root and env_root.strip():
        return os.path.expanduser(env_root.strip())

    configured = (config or {}).get("cache_root")
    if isinstance(configured, str) and configured.strip():
        return os.path.expanduser(configured.strip())

    return os.path.expanduser(Constants.DEFAULT_CACHE_DIR)
