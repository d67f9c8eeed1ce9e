"""pkgrun: run .NET tool packages from the local NuGet cache.

Entry point for the ``pkgrun`` command. Wires the HTTP client, registry
client, cache inspector and process launcher together, then either runs a
tool or dispatches a ``cache`` subcommand.
"""

from __future__ import annotations

import argparse
import logging
import sys
import threading
from typing import List, Optional

from args import parse_args
from cache import NuGetCacheInspector
from cli_cache import CacheCommandHandler
from cli_config import apply_config_overrides, load_config, resolve_cache_root
from common.http_client import HttpClient
from common.logging_utils import add_file_handler, configure_logging, extra_context, is_debug_enabled
from constants import ExitCodes
from execution import ToolOrchestrator
from launcher import DotnetProcessLauncher
from registry.nuget import NuGetRegistryClient
from versioning.models import InvalidToolReferenceError, ToolReference

logger = logging.getLogger(__name__)


def _setup_logging(args: argparse.Namespace) -> None:
    """Configure logging based on CLI arguments.

    ``--verbose`` raises the level to INFO; otherwise PKGRUN_LOG_LEVEL applies.
    """
    configure_logging("INFO" if getattr(args, "VERBOSE", False) else None)

    log_file = getattr(args, "LOG_FILE", None)
    if log_file:
        try:
            add_file_handler(log_file)
        except OSError as e:
            logger.warning("Could not open log file %s: %s", log_file, e)
        else:
            logger.info("Logging to file: %s", log_file)


def run_tool(args: argparse.Namespace, orchestrator: ToolOrchestrator) -> int:
    """Parse the tool reference and run it; returns the exit code."""
    try:
        reference = ToolReference.parse(args.TOOL)
    except InvalidToolReferenceError as e:
        sys.stderr.write(f"Error: {e}\n")
        return ExitCodes.USAGE_ERROR.value

    cancel_event = threading.Event()
    try:
        return orchestrator.execute(
            reference,
            list(args.TOOL_ARGS or []),
            skip_update=bool(args.NO_UPDATE),
            force_update=bool(args.UPDATE),
            cancel_event=cancel_event,
        )
    except KeyboardInterrupt:
        cancel_event.set()
        logger.info("Interrupted by user")
        return ExitCodes.INTERRUPTED.value


def main(argv: Optional[List[str]] = None) -> None:
    """Main function of the program."""
    args = parse_args(argv)
    _setup_logging(args)

    config = load_config()
    apply_config_overrides(config)
    cache_root = resolve_cache_root(config)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action=args.MODE, path=cache_root),
        )

    http_client = HttpClient()
    registry_client = NuGetRegistryClient(http_client, cache_root)
    cache_inspector = NuGetCacheInspector(cache_root)

    try:
        if args.MODE == "cache":
            try:
                exit_code = CacheCommandHandler(registry_client, cache_inspector).handle(args)
            except KeyboardInterrupt:
                exit_code = ExitCodes.INTERRUPTED.value
        else:
            orchestrator = ToolOrchestrator(registry_client, DotnetProcessLauncher(), cache_inspector)
            exit_code = run_tool(args, orchestrator)
    finally:
        http_client.close()

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
