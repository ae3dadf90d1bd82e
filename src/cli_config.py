"""Runtime settings for nixadd.

Settings are layered with increasing precedence: built-in defaults, a config
file (YAML, TOML or JSON), ``NIXADD_*`` environment variables, then CLI flags.
"""

from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass, fields, replace
from datetime import timedelta
from typing import Any, Dict, Mapping, Optional

import yaml

from common.errors import ConfigError
from constants import Constants, Mode

logger = logging.getLogger(__name__)

_DURATION_PART_RE = re.compile(r"(\d+(?:\.\d+)?)\s*(ms|s|m|h|d|w)")
_DURATION_UNITS = {
    "ms": timedelta(milliseconds=1),
    "s": timedelta(seconds=1),
    "m": timedelta(minutes=1),
    "h": timedelta(hours=1),
    "d": timedelta(days=1),
    "w": timedelta(weeks=1),
}
_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")


def parse_duration(text: str) -> timedelta:
    """Parse durations such as ``12h``, ``90s`` or ``1h30m``.

    Raises:
        ConfigError: If the text is not a sequence of <number><unit> parts.
    """
    value = str(text).strip().lower()
    if not value:
        raise ConfigError("empty duration")
    total = timedelta()
    position = 0
    for match in _DURATION_PART_RE.finditer(value):
        if value[position:match.start()].strip():
            raise ConfigError(f"invalid duration: {text!r}")
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        position = match.end()
    if position == 0 or value[position:].strip():
        raise ConfigError(f"invalid duration: {text!r}")
    return total


@dataclass(frozen=True)
class AppConfig:  # pylint: disable=too-many-instance-attributes
    """Effective settings for one invocation."""

    hm_config_file: str = Constants.DEFAULT_HM_CONFIG_FILE
    cache_file_path: str = Constants.DEFAULT_CACHE_FILE
    max_cache_age: str = Constants.DEFAULT_MAX_CACHE_AGE
    num_print: int = Constants.DEFAULT_NUM_PRINT
    packages_attr: str = Constants.PACKAGES_ATTR_PATH
    switch: bool = False
    switch_command: str = Constants.DEFAULT_SWITCH_COMMAND
    commit: bool = False
    push: bool = False
    commit_message: str = Constants.DEFAULT_COMMIT_MESSAGE

    @property
    def max_cache_duration(self) -> timedelta:
        return parse_duration(self.max_cache_age)

    @property
    def config_path(self) -> str:
        return os.path.expanduser(self.hm_config_file)

    @property
    def cache_path(self) -> str:
        return os.path.expanduser(self.cache_file_path)


def _coerce(name: str, value: Any) -> Any:
    """Convert a raw setting onto the type of the AppConfig field ``name``."""
    default = getattr(AppConfig, name)
    if isinstance(default, bool):
        if isinstance(value, bool):
            return value
        lowered = str(value).strip().lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        raise ConfigError(f"invalid boolean for {name}: {value!r}")
    if isinstance(default, int):
        try:
            return int(value)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"invalid integer for {name}: {value!r}") from exc
    return str(value)


def _apply(config: AppConfig, values: Mapping[str, Any], source: str) -> AppConfig:
    known = {f.name for f in fields(AppConfig)}
    updates = {}
    for key, value in values.items():
        name = str(key).replace("-", "_").lower()
        if name not in known:
            logger.warning("Ignoring unknown setting '%s' from %s", key, source)
            continue
        if value is None:
            continue
        updates[name] = _coerce(name, value)
    return replace(config, **updates) if updates else config


def load_config_file(path: str) -> Dict[str, Any]:
    """Read a YAML, TOML or JSON settings file into a dict.

    Raises:
        ConfigError: If the file cannot be read or parsed.
    """
    lower = path.lower()
    try:
        if lower.endswith(".toml"):
            try:
                import tomllib as toml  # type: ignore
            except ImportError:
                import tomli as toml  # type: ignore
            with open(path, "rb") as handle:
                data = toml.load(handle)
        else:
            with open(path, "r", encoding="utf-8") as handle:
                if lower.endswith(".json"):
                    data = json.load(handle)
                else:
                    data = yaml.safe_load(handle)
    except OSError as exc:
        raise ConfigError(f"cannot read config file {path}: {exc}") from exc
    except (ValueError, yaml.YAMLError) as exc:
        raise ConfigError(f"cannot parse config file {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"config file {path} must contain a mapping")
    return data


def find_config_file() -> Optional[str]:
    """First existing file among the default config locations."""
    for candidate in Constants.CONFIG_FILE_LOCATIONS:
        path = os.path.expanduser(candidate)
        if os.path.isfile(path):
            return path
    return None


def env_settings(environ: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """Settings from NIXADD_* environment variables (the log level excluded)."""
    environ = os.environ if environ is None else environ
    result = {}
    for key, value in environ.items():
        if key.startswith(Constants.ENV_PREFIX) and key != Constants.ENV_LOG_LEVEL:
            result[key[len(Constants.ENV_PREFIX):].lower()] = value
    return result


def cli_settings(args: Any) -> Dict[str, Any]:
    """Settings given explicitly on the command line."""
    mapping = {
        "hm_config_file": "HM_CONFIG_FILE",
        "cache_file_path": "CACHE_FILE",
        "max_cache_age": "MAX_CACHE_AGE",
        "num_print": "NUM_PRINT",
        "switch": "SWITCH",
        "commit": "COMMIT",
        "push": "PUSH",
    }
    result = {}
    for name, dest in mapping.items():
        value = getattr(args, dest, None)
        # store_true flags only override when set
        if value is None or value is False:
            continue
        result[name] = value
    return result


def check_commit_template(template: str) -> None:
    """Reject a commit message template that cannot be rendered.

    Only the ``{mode}`` and ``{packages}`` fields are available.
    """
    try:
        template.format(mode=Mode.ADD.value, packages="")
    except (KeyError, IndexError, ValueError, AttributeError) as exc:
        raise ConfigError(f"invalid commit_message template {template!r}: {exc!r}") from exc


def load_config(args: Any = None, environ: Optional[Mapping[str, str]] = None) -> AppConfig:
    """Build the effective AppConfig for this invocation.

    Raises:
        ConfigError: On unreadable files or invalid values.
    """
    config = AppConfig()

    explicit = getattr(args, "CONFIG", None) if args is not None else None
    path = os.path.expanduser(explicit) if explicit else find_config_file()
    if explicit and not os.path.isfile(path):
        raise ConfigError(f"config file not found: {explicit}")
    if path:
        logger.debug("Loading settings from %s", path)
        config = _apply(config, load_config_file(path), path)

    config = _apply(config, env_settings(environ), "environment")
    if args is not None:
        config = _apply(config, cli_settings(args), "command line")

    # Fail early on bad values rather than after the document is written.
    parse_duration(config.max_cache_age)
    check_commit_template(config.commit_message)
    return config
