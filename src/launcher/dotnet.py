"""Process launcher backed by the ``dotnet`` host."""

from __future__ import annotations

import logging
import subprocess
import sys
import threading
from typing import List, Optional, Sequence

from constants import Constants, ExitCodes
from versioning.models import ToolReference

from .base import ProcessLauncher

logger = logging.getLogger(__name__)

_TERMINATE_GRACE_SEC = 5.0


def build_exec_command(dotnet: str, reference: ToolReference, args: Sequence[str]) -> List[str]:
    """``dotnet tool exec -y <ref> [-- args...]``: installs on demand, then runs."""
    cmd = [dotnet, "tool", "exec", "-y", str(reference)]
    if args:
        cmd.append("--")
        cmd.extend(args)
    return cmd


def build_cache_command(dotnet: str, entry_point: str, args: Sequence[str]) -> List[str]:
    """``dotnet <entry point> args...``: runs a cached tool without touching the network."""
    return [dotnet, entry_point, *args]


def _exit_status(code: int) -> int:
    """Map Popen's negative "killed by signal N" code to the shell's 128+N."""
    return 128 - code if code < 0 else code


def _stop(proc: subprocess.Popen) -> int:
    """Terminate ``proc`` if still running and return its exit code."""
    if proc.poll() is None:
        proc.terminate()
        try:
            return _exit_status(proc.wait(timeout=_TERMINATE_GRACE_SEC))
        except subprocess.TimeoutExpired:
            proc.kill()
    return _exit_status(proc.wait())


class DotnetProcessLauncher(ProcessLauncher):
    """Runs tools through ``dotnet`` with inherited standard streams.

    Nothing is captured or re-encoded: the child's stdio are this process's
    stdio, so tools speaking a protocol over stdout work unchanged.
    """

    def __init__(self, dotnet: str = "dotnet"):
        self.dotnet = dotnet

    def execute(
        self,
        reference: ToolReference,
        args: Sequence[str],
        cancel_event: Optional[threading.Event] = None,
    ) -> int:
        return self._run(build_exec_command(self.dotnet, reference, args), cancel_event)

    def execute_from_cache(
        self,
        entry_point: str,
        args: Sequence[str],
        cancel_event: Optional[threading.Event] = None,
    ) -> int:
        return self._run(build_cache_command(self.dotnet, entry_point, args), cancel_event)

    def _run(self, cmd: List[str], cancel_event: Optional[threading.Event]) -> int:
        logger.debug("Running: %s", " ".join(cmd))
        # Anything we buffered must reach the terminal before the child writes
        sys.stdout.flush()
        sys.stderr.flush()
        try:
            proc = subprocess.Popen(cmd)  # noqa: S603
        except OSError as e:
            logger.error("Failed to start %s: %s", cmd[0], e)
            return ExitCodes.FAILURE.value

        try:
            if cancel_event is None:
                return _exit_status(proc.wait())
            while True:
                try:
                    return _exit_status(proc.wait(timeout=Constants.PROCESS_POLL_INTERVAL_SEC))
                except subprocess.TimeoutExpired:
                    if cancel_event.is_set():
                        logger.info("Cancellation requested; stopping %s", cmd[0])
                        return _stop(proc)
        except KeyboardInterrupt:
            # The child got the same SIGINT; give it the chance to exit first
            _stop(proc)
            raise
