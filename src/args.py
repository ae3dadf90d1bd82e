"""Argument parsing functionality for nixadd."""

import argparse

from constants import Mode


def _add_package_arguments(parser, metavar, help_text):
    parser.add_argument("PACKAGES",
                        metavar=metavar,
                        help=help_text,
                        nargs="+",
                        type=str)


def build_parser():
    """Builds the argument parser with the add/remove/search subcommands."""
    parser = argparse.ArgumentParser(
        prog="nixadd",
        description=(
            "nixadd - Add, remove and search packages in a home-manager configuration"
        ),
        add_help=True,
    )

    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to a nixadd settings file (YAML, TOML or JSON)",
                        action="store",
                        type=str)
    parser.add_argument("-f", "--hm-config-file",
                        dest="HM_CONFIG_FILE",
                        help="Path to the home-manager configuration file",
                        action="store",
                        type=str)
    parser.add_argument("--cache-file",
                        dest="CACHE_FILE",
                        help="Path to the package index cache",
                        action="store",
                        type=str)
    parser.add_argument("--max-cache-age",
                        dest="MAX_CACHE_AGE",
                        help="Refresh the package index when older than this (e.g. 12h, 30m, 1d)",
                        action="store",
                        type=str)
    parser.add_argument("-n", "--num-print",
                        dest="NUM_PRINT",
                        help="Number of search results to print",
                        action="store",
                        type=int)
    parser.add_argument("--dry-run",
                        dest="DRY_RUN",
                        help="Show the change as a diff without writing the file",
                        action="store_true")
    parser.add_argument("-y", "--yes",
                        dest="ASSUME_YES",
                        help="Continue without asking when some packages are not found",
                        action="store_true")
    parser.add_argument("--switch",
                        dest="SWITCH",
                        help="Run the switch command after a change",
                        action="store_true")
    parser.add_argument("--commit",
                        dest="COMMIT",
                        help="Commit the changed configuration file with git",
                        action="store_true")
    parser.add_argument("--push",
                        dest="PUSH",
                        help="Push after committing",
                        action="store_true")
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'])
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)

    subparsers = parser.add_subparsers(dest="COMMAND", metavar="COMMAND")
    subparsers.required = True

    add_parser = subparsers.add_parser(Mode.ADD.value,
                                       help="Add packages to home.packages")
    _add_package_arguments(add_parser, "PKG", "Package name, e.g. ripgrep or pkgs.ripgrep")

    remove_parser = subparsers.add_parser(Mode.REMOVE.value,
                                          aliases=["rm"],
                                          help="Remove packages from home.packages")
    _add_package_arguments(remove_parser, "PKG", "Package name, e.g. ripgrep or pkgs.ripgrep")

    search_parser = subparsers.add_parser("search",
                                          help="Search the nixpkgs package index")
    _add_package_arguments(search_parser, "TERM", "Search term matched against names and descriptions")

    return parser


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    args = build_parser().parse_args(argv)
    if args.COMMAND == "rm":
        args.COMMAND = Mode.REMOVE.value
    return args
