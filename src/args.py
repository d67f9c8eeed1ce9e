"""Argument parsing functionality for pkgrun."""

import argparse
import sys
from importlib import metadata
from typing import List, NoReturn, Optional

from constants import Constants, ExitCodes

CACHE_COMMANDS = ("list", "show", "add", "update", "remove", "clear")


class CliArgumentParser(argparse.ArgumentParser):
    """ArgumentParser whose usage errors exit with the project's usage code."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(ExitCodes.USAGE_ERROR.value, f"Error: {message}\n")


def get_version() -> str:
    """Installed distribution version, or 0.0.0 from a source checkout."""
    try:
        return metadata.version(Constants.DIST_NAME)
    except metadata.PackageNotFoundError:
        return "0.0.0"


def build_run_parser() -> CliArgumentParser:
    """Parser for ``pkgrun [options] <name>[@version] [tool-args...]``."""
    parser = CliArgumentParser(
        prog=Constants.PROG_NAME,
        description="pkgrun - run .NET tool packages from the local NuGet cache",
        epilog=(
            "cache commands:\n"
            f"  {Constants.PROG_NAME} cache list|show|add|update|remove|clear ...\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        add_help=True,
    )

    update_group = parser.add_mutually_exclusive_group()
    update_group.add_argument("--update",
                              dest="UPDATE",
                              help="Check for a newer version and download it before running",
                              action="store_true")
    update_group.add_argument("--no-update",
                              dest="NO_UPDATE",
                              help="Do not contact the registry for updates",
                              action="store_true")

    parser.add_argument("--verbose",
                        dest="VERBOSE",
                        help="Show informational log messages on stderr",
                        action="store_true")
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Also write log output to this file",
                        action="store",
                        type=str)
    parser.add_argument("-v", "--version",
                        action="version",
                        version=f"{Constants.PROG_NAME} {get_version()}")

    parser.add_argument("TOOL",
                        help="Tool package to run, as <name> or <name>@<version>",
                        metavar="TOOL")
    parser.add_argument("TOOL_ARGS",
                        help="Arguments passed to the tool unchanged",
                        nargs=argparse.REMAINDER,
                        metavar="ARGS")
    return parser


def build_cache_parser() -> CliArgumentParser:
    """Parser for ``pkgrun cache <command> [...]``."""
    parser = CliArgumentParser(
        prog=f"{Constants.PROG_NAME} cache",
        description="Inspect and manage cached tool packages",
        add_help=True,
    )
    parser.add_argument("CACHE_COMMAND",
                        help="One of: " + ", ".join(CACHE_COMMANDS),
                        nargs="?",
                        metavar="COMMAND")
    parser.add_argument("PACKAGE",
                        help="Package id (or <id>@<version> for add)",
                        nargs="?",
                        metavar="PACKAGE")
    parser.add_argument("-y", "--yes",
                        dest="YES",
                        help="Do not ask for confirmation (clear)",
                        action="store_true")
    parser.add_argument("--verbose",
                        dest="VERBOSE",
                        help="Show informational log messages on stderr",
                        action="store_true")
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Also write log output to this file",
                        action="store",
                        type=str)
    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parses the arguments passed to the program.

    ``cache`` as the first token selects the cache subcommands; anything else
    is a tool invocation. Sets ``MODE`` to ``"cache"`` or ``"run"``.
    """
    argv = list(sys.argv[1:] if argv is None else argv)

    if not argv:
        parser = build_run_parser()
        parser.print_usage(sys.stderr)
        parser.exit(ExitCodes.USAGE_ERROR.value)

    if argv[0] == "cache":
        args = build_cache_parser().parse_args(argv[1:])
        args.MODE = "cache"
        return args

    args = build_run_parser().parse_args(argv)
    args.MODE = "run"
    return args
