"""Argument parsing for the scriptdeps command line."""

import argparse

from scriptdeps.constants import Constants

ACTIONS = ["restore", "deps", "runtime"]


def build_parser():
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="scriptdeps",
        description=(
            "scriptdeps - resolve and restore package dependencies of C# scripts"
        ),
        add_help=True,
    )

    parser.add_argument("action",
                        help="restore: restore only; deps: compile-time dependencies; "
                             "runtime: run-time dependencies for this platform",
                        choices=ACTIONS)
    parser.add_argument("scripts",
                        help="Script files (.csx). For 'deps' a single directory is also accepted.",
                        nargs="+")

    parser.add_argument("-f", "--framework",
                        dest="FRAMEWORK",
                        help=f"Target framework moniker (default: {Constants.DEFAULT_TARGET_FRAMEWORK})",
                        action="store",
                        type=str)
    parser.add_argument("-s", "--source",
                        dest="SOURCES",
                        help="Package source passed to restore (can be used multiple times)",
                        action="append",
                        type=str,
                        default=[])
    parser.add_argument("-x", "--exclude",
                        dest="EXCLUDE",
                        help="Script file name to leave out of the scan (can be used multiple times)",
                        action="append",
                        type=str,
                        default=[])
    parser.add_argument("--direct-only",
                        dest="DIRECT_ONLY",
                        help="Only report packages named by the scripts, not their dependencies",
                        action="store_true")
    parser.add_argument("--no-cache",
                        dest="NO_CACHE",
                        help="Always restore, bypassing the manifest cache",
                        action="store_true")
    parser.add_argument("--rid",
                        dest="RID",
                        help="Runtime identifier to resolve for (default: current platform)",
                        action="store",
                        type=str)
    parser.add_argument("-o", "--output",
                        dest="OUTPUT",
                        help="Write JSON results to this file instead of stdout",
                        action="store",
                        type=str)

    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default='INFO')
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to YAML configuration file",
                        action="store",
                        type=str)
    return parser


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    return build_parser().parse_args(argv)
