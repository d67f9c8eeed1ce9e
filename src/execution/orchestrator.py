"""Runs a tool from cache (or through the install-and-run fallback) while
refreshing the cached copy in the background.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Optional, Sequence

from cache.base import CacheInspector
from common.logging_utils import extra_context
from launcher.base import ProcessLauncher
from registry.base import RegistryClient
from versioning.models import ToolReference
from versioning.parser import is_newer_version, latest_version_string

logger = logging.getLogger(__name__)


class ToolOrchestrator:
    """Decides how to run a tool and keeps its cached copy fresh.

    One invocation runs the tool in the foreground and, for unpinned
    references, at most one refresh on a background worker. The exit code is
    whatever the launched process returned; the refresh can neither change
    it nor make the invocation fail.
    """

    def __init__(
        self,
        registry_client: RegistryClient,
        process_launcher: ProcessLauncher,
        cache_inspector: CacheInspector,
    ):
        if registry_client is None:
            raise ValueError("registry_client is required")
        if process_launcher is None:
            raise ValueError("process_launcher is required")
        if cache_inspector is None:
            raise ValueError("cache_inspector is required")
        self.registry = registry_client
        self.launcher = process_launcher
        self.cache = cache_inspector

    @staticmethod
    def is_newer_version(candidate: str, baseline: str) -> bool:
        """True if ``candidate`` is strictly newer than ``baseline``."""
        return is_newer_version(candidate, baseline)

    def execute(
        self,
        reference: ToolReference,
        args: Sequence[str],
        skip_update: bool = False,
        force_update: bool = False,
        cancel_event: Optional[threading.Event] = None,
    ) -> int:
        """Run ``reference`` with ``args`` and return the tool's exit code.

        Args:
            reference: Tool to run; a pinned version disables updates.
            args: Arguments passed through to the tool untouched.
            skip_update: Do not contact the registry at all.
            force_update: Refresh before running instead of in the background.
            cancel_event: Set to abort waits and pending registry calls.
        """
        refresh_cancel = cancel_event if cancel_event is not None else threading.Event()
        wants_update = not reference.is_pinned and not skip_update

        executor: Optional[ThreadPoolExecutor] = None
        refresh: Optional[Future] = None
        if wants_update and force_update:
            logger.info("Checking for updates to %s before running", reference.package_id)
            self.refresh_tool(reference.package_id, refresh_cancel)
        elif wants_update:
            executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="pkgrun-refresh")
            refresh = executor.submit(self.refresh_tool, reference.package_id, refresh_cancel)

        try:
            return self._run_foreground(reference, args, cancel_event)
        except KeyboardInterrupt:
            refresh_cancel.set()
            raise
        finally:
            if executor is not None:
                self._join_refresh(refresh)
                executor.shutdown(wait=True)

    def _run_foreground(
        self,
        reference: ToolReference,
        args: Sequence[str],
        cancel_event: Optional[threading.Event],
    ) -> int:
        entry_point = self.cache.get_executable_path(reference.package_id, reference.version)
        if entry_point is not None:
            logger.info("Running from cache: %s", entry_point)
            return self.launcher.execute_from_cache(entry_point, list(args), cancel_event)

        logger.info("Tool %s not cached; installing and running it", reference)
        return self.launcher.execute(reference, list(args), cancel_event)

    @staticmethod
    def _join_refresh(refresh: Optional[Future]) -> None:
        """Wait for the background refresh so it is not cut off mid-write."""
        if refresh is None:
            return
        try:
            refresh.result()
        except Exception as e:  # pylint: disable=broad-exception-caught
            logger.info("Background update check failed: %s", e)

    def refresh_tool(
        self, package_id: str, cancel_event: Optional[threading.Event] = None
    ) -> Optional[str]:
        """Download the latest published version if it is newer than the cache.

        Never raises. Returns the version downloaded (or found already
        present) by this call, or None when nothing was fetched.
        """
        try:
            cached_versions = [t.version for t in self.cache.get_tool_versions(package_id)]
            cached_version = latest_version_string(cached_versions)

            latest = self.registry.get_latest_version(package_id, cancel_event)
            if latest is None:
                logger.info("Could not check the latest version of %s", package_id)
                return None

            if cached_version is not None and not is_newer_version(latest, cached_version):
                logger.debug("%s %s is up to date", package_id, cached_version)
                return None

            logger.info(
                "Downloading %s@%s in background...",
                package_id,
                latest,
                extra=extra_context(event="refresh", component="orchestrator", cached=cached_version),
            )
            downloaded = self.registry.download_package(package_id, latest, cancel_event)
            if downloaded is not None:
                logger.info("Downloaded %s@%s (will be used on next run)", package_id, downloaded)
            return downloaded
        except Exception as e:  # pylint: disable=broad-exception-caught
            logger.info("Background update check failed: %s", e)
            return None
