"""NuGet registry client: latest-version lookup and package download via the V3 flat container."""
from __future__ import annotations

import logging
import os
import threading
import urllib.parse
import zipfile
from typing import Optional

import requests

from constants import Constants
from common.http_client import HttpClient
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer
from registry.base import RegistryClient
from versioning.models import LookupResult, LookupStatus

from . import layout

logger = logging.getLogger(__name__)

# Shared HTTP JSON headers for this module
HEADERS_JSON = {"Accept": "application/json"}
DOWNLOAD_CHUNK_SIZE = 64 * 1024


def _log_http_pre(url: str, action: str) -> None:
    """Debug-log outbound HTTP request for the NuGet client."""
    if is_debug_enabled(logger):
        logger.debug(
            "HTTP request",
            extra=extra_context(
                event="http_request",
                component="client",
                action=action,
                target=safe_url(url),
                package_manager="nuget",
            ),
        )


def _is_cancelled(cancel_event: Optional[threading.Event]) -> bool:
    return cancel_event is not None and cancel_event.is_set()


class NuGetRegistryClient(RegistryClient):
    """Talks to a NuGet V3 flat-container endpoint and writes into a local cache.

    ``lookup_latest_version`` and ``fetch_package`` keep the distinction
    between "not found", "failed" and "cancelled"; the ``RegistryClient``
    methods collapse all of them to None.
    """

    def __init__(self, http_client: HttpClient, cache_root: str, base_url: Optional[str] = None):
        self.http = http_client
        self.cache_root = cache_root
        self.base_url = (base_url or Constants.REGISTRY_URL_NUGET_FLAT).rstrip("/")

    def _index_url(self, package_id: str) -> str:
        encoded_id = urllib.parse.quote(package_id.lower(), safe="")
        return f"{self.base_url}/{encoded_id}/index.json"

    def _package_url(self, package_id: str, version: str) -> str:
        encoded_id = urllib.parse.quote(package_id.lower(), safe="")
        encoded_version = urllib.parse.quote(version.lower(), safe="")
        return f"{self.base_url}/{encoded_id}/{encoded_version}/{encoded_id}.{encoded_version}.nupkg"

    def lookup_latest_version(
        self, package_id: str, cancel_event: Optional[threading.Event] = None
    ) -> LookupResult:
        """Fetch the version index and take its final entry.

        The registry lists versions in ascending order; the list is not re-sorted.
        """
        if _is_cancelled(cancel_event):
            return LookupResult.miss(LookupStatus.CANCELLED)

        url = self._index_url(package_id)
        _log_http_pre(url, "get_versions")
        status_code, _, data = self.http.get_json(url, context="nuget", headers=HEADERS_JSON)

        if status_code == 0:
            return LookupResult.miss(LookupStatus.FAILED, "request failed")
        if status_code == 404:
            return LookupResult.miss(LookupStatus.NOT_FOUND)
        if status_code != 200:
            return LookupResult.miss(LookupStatus.FAILED, f"HTTP {status_code}")
        if not isinstance(data, dict):
            return LookupResult.miss(LookupStatus.FAILED, "malformed version index")

        versions = data.get("versions")
        if not isinstance(versions, list):
            return LookupResult.miss(LookupStatus.FAILED, "malformed version index")
        if not versions:
            return LookupResult.miss(LookupStatus.NOT_FOUND)

        latest = versions[-1]
        if not isinstance(latest, str) or not latest:
            return LookupResult.miss(LookupStatus.FAILED, "malformed version entry")
        return LookupResult.hit(latest)

    def get_latest_version(
        self, package_id: str, cancel_event: Optional[threading.Event] = None
    ) -> Optional[str]:
        result = self.lookup_latest_version(package_id, cancel_event)
        if not result.found and is_debug_enabled(logger):
            logger.debug(
                "Latest version unavailable",
                extra=extra_context(
                    event="lookup", component="client", outcome=result.status.value,
                    target=package_id, detail=result.detail, package_manager="nuget",
                ),
            )
        return result.value

    def fetch_package(
        self,
        package_id: str,
        version: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> LookupResult:
        """Download ``package_id`` into the cache unless the version is already there."""
        if _is_cancelled(cancel_event):
            return LookupResult.miss(LookupStatus.CANCELLED)

        if version is None:
            latest = self.lookup_latest_version(package_id, cancel_event)
            if not latest.found:
                return latest
            version = latest.value

        if not (layout.is_safe_path_segment(package_id) and layout.is_safe_path_segment(version)):
            logger.warning(
                "Refusing to cache %s@%s: not a safe directory name",
                package_id,
                version,
                extra=extra_context(
                    event="download", component="client", outcome="rejected",
                    target=package_id, package_manager="nuget",
                ),
            )
            return LookupResult.miss(LookupStatus.FAILED, "unsafe package id or version")

        existing = layout.find_version_dir(self.cache_root, package_id, version)
        if existing is not None:
            logger.debug("%s@%s already cached at %s", package_id, version, existing)
            return LookupResult.hit(version)

        if _is_cancelled(cancel_event):
            return LookupResult.miss(LookupStatus.CANCELLED)

        url = self._package_url(package_id, version)
        _log_http_pre(url, "download")
        with Timer() as t:
            res = self.http.safe_get(url, context="nuget", stream=True)
            if res is None:
                return LookupResult.miss(LookupStatus.FAILED, "request failed")
            try:
                if res.status_code == 404:
                    return LookupResult.miss(LookupStatus.NOT_FOUND)
                if res.status_code != 200:
                    return LookupResult.miss(LookupStatus.FAILED, f"HTTP {res.status_code}")
                self._materialize(package_id, version, url, res)
            except (
                requests.RequestException,
                OSError,
                zipfile.BadZipFile,
                RuntimeError,
                NotImplementedError,
                layout.UnsafeArchiveError,
            ) as e:
                logger.warning(
                    "Failed to download %s@%s: %s",
                    package_id,
                    version,
                    e,
                    extra=extra_context(
                        event="download", component="client", outcome="error",
                        target=safe_url(url), package_manager="nuget",
                    ),
                )
                return LookupResult.miss(LookupStatus.FAILED, str(e))
            finally:
                res.close()

        logger.info(
            "Downloaded %s@%s",
            package_id,
            version,
            extra=extra_context(
                event="download", component="client", outcome="success",
                duration_ms=t.duration_ms(), package_manager="nuget",
            ),
        )
        return LookupResult.hit(version)

    def _materialize(self, package_id: str, version: str, url: str, res: requests.Response) -> None:
        version_dir = layout.version_dir_path(self.cache_root, package_id, version)
        file_name = layout.archive_file_name(package_id, version)
        content_hash = layout.write_archive(
            version_dir, file_name, res.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE)
        )
        layout.extract_archive(os.path.join(version_dir, file_name), version_dir)
        layout.write_integrity_files(version_dir, file_name, content_hash, url)

    def download_package(
        self,
        package_id: str,
        version: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> Optional[str]:
        return self.fetch_package(package_id, version, cancel_event).value
