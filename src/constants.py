"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    FETCH_ERROR = 2
    EDIT_ERROR = 3
    CONFIG_ERROR = 4
    APPLY_ERROR = 5


class Mode(Enum):
    """Reconciliation modes supported by the program.

    Args:
        Enum (string): Direction of the package list edit.
    """

    ADD = "add"
    REMOVE = "remove"


class Platforms(Enum):
    """Nix systems whose package index keys can be normalized.

    Args:
        Enum (string): Nix system double as used in flake outputs.
    """

    X86_64_LINUX = "x86_64-linux"
    AARCH64_LINUX = "aarch64-linux"
    X86_64_DARWIN = "x86_64-darwin"
    AARCH64_DARWIN = "aarch64-darwin"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    CANONICAL_PREFIX = "pkgs"
    LEGACY_PACKAGES = "legacyPackages"
    PACKAGES_ATTR_PATH = "home.packages"
    ENTRY_INDENT = 4

    # (platform.system(), platform.machine()) -> nix system
    SYSTEM_MAP = {
        ("Linux", "x86_64"): Platforms.X86_64_LINUX,
        ("Linux", "amd64"): Platforms.X86_64_LINUX,
        ("Linux", "aarch64"): Platforms.AARCH64_LINUX,
        ("Linux", "arm64"): Platforms.AARCH64_LINUX,
        ("Darwin", "x86_64"): Platforms.X86_64_DARWIN,
        ("Darwin", "arm64"): Platforms.AARCH64_DARWIN,
        ("Darwin", "aarch64"): Platforms.AARCH64_DARWIN,
    }

    NIX_SEARCH_COMMAND = ["nix", "search", "nixpkgs", "--json", "^"]
    CACHE_SCHEMA_VERSION = 1

    DEFAULT_HM_CONFIG_FILE = "./home.nix"
    DEFAULT_CACHE_FILE = "~/.cache/nixadd/nixpkgs_cache.msgpack"
    DEFAULT_MAX_CACHE_AGE = "12h"
    DEFAULT_NUM_PRINT = 10
    DEFAULT_SWITCH_COMMAND = "home-manager switch"
    DEFAULT_COMMIT_MESSAGE = "nixadd: {mode} {packages}"
    CONFIG_FILE_LOCATIONS = [
        "./nixadd.yml",
        "./nixadd.yaml",
        "./nixadd.toml",
        "~/.config/nixadd/config.yml",
        "~/.config/nixadd/config.yaml",
        "~/.config/nixadd/config.toml",
    ]
    ENV_PREFIX = "NIXADD_"
    ENV_LOG_LEVEL = "NIXADD_LOG_LEVEL"

    LOG_FORMAT = "[%(levelname)s] %(message)s"
    LOG_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
