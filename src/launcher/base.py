"""Abstract interface for launching tool processes."""

import threading
from abc import ABC, abstractmethod
from typing import Optional, Sequence

from versioning.models import ToolReference


class ProcessLauncher(ABC):
    """Spawns tool processes that inherit this process's stdin, stdout and stderr.

    Both methods block until the child exits and return its exit code, or 1
    when the child could not be started.
    """

    @abstractmethod
    def execute(
        self,
        reference: ToolReference,
        args: Sequence[str],
        cancel_event: Optional[threading.Event] = None,
    ) -> int:
        """Run the install-and-run fallback for ``reference``."""

    @abstractmethod
    def execute_from_cache(
        self,
        entry_point: str,
        args: Sequence[str],
        cancel_event: Optional[threading.Event] = None,
    ) -> int:
        """Run an already cached entry point directly."""
