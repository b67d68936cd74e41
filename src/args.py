"""Argument parsing functionality for depstash."""

import argparse
from constants import Constants


def _add_common_arguments(parser):
    """Options shared by every command."""
    parser.add_argument("-C", "--cwd",
                        dest="CWD",
                        help="Project directory containing the manifest (default: current directory)",
                        action="store",
                        type=str)
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML)",
                        action="store",
                        type=str)
    parser.add_argument("-m", "--mode",
                        dest="MODE",
                        help="Dependency set to operate on: production (dependencies only) or all",
                        action="store",
                        type=str.lower,
                        choices=Constants.MODES)
    parser.add_argument("--cache-dir",
                        dest="CACHE_DIR",
                        help=f"Archive cache directory, relative to the project (default: {Constants.CACHE_DIR})",
                        action="store",
                        type=str)
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help=f"Set the logging level (default: ${Constants.ENV_LOG_LEVEL} or INFO)",
                        action="store",
                        type=str.upper,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default=None)
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("-v", "--verbose",
                        dest="VERBOSE",
                        help="Report cached archives that are not declared in the manifest.",
                        action="store_true")
    parser.add_argument("-q", "--quiet",
                        dest="QUIET",
                        help="Only output errors.",
                        action="store_true")
    parser.add_argument("--error-on-warnings",
                        dest="ERROR_ON_WARNINGS",
                        help="Exit with a non-zero status code if warnings are present.",
                        action="store_true")


def build_parser():
    """Build the top-level parser with its install and pack commands."""
    parser = argparse.ArgumentParser(
        prog="depstash",
        description=(
            "depstash - Vendor npm dependencies as versioned archives for offline installs"
        ),
        add_help=True,
    )
    commands = parser.add_subparsers(dest="COMMAND", metavar="COMMAND")
    commands.required = True

    install = commands.add_parser(
        "install",
        help="Extract cached archives of declared dependencies into node_modules",
    )
    _add_common_arguments(install)

    pack = commands.add_parser(
        "pack",
        help="Refresh the archive cache from installed dependencies",
    )
    pack.add_argument("TARGET",
                      help="Pack only this declared dependency",
                      nargs="?",
                      default=None)
    pack.add_argument("-n", "--dry-run",
                      dest="DRY_RUN",
                      help="Report the archive changes without writing or deleting anything.",
                      action="store_true")
    _add_common_arguments(pack)

    return parser


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    return build_parser().parse_args(argv)
