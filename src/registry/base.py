"""Abstract interface for package registries."""

import threading
from abc import ABC, abstractmethod
from typing import Optional


class RegistryClient(ABC):
    """Resolves published versions and downloads packages into the cache.

    Both methods report every failure (network, timeout, malformed response,
    I/O, cancellation) as None; they never raise into the caller.
    """

    @abstractmethod
    def get_latest_version(
        self, package_id: str, cancel_event: Optional[threading.Event] = None
    ) -> Optional[str]:
        """Return the latest published version of ``package_id``, or None."""

    @abstractmethod
    def download_package(
        self,
        package_id: str,
        version: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> Optional[str]:
        """Materialize ``package_id`` (latest when ``version`` is None) in the cache.

        Returns the version now present in the cache, or None.
        """
