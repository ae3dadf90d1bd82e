"""Tests for layered settings loading."""
import json
import logging
import os
from datetime import timedelta

import pytest

from args import parse_args
from cli_config import AppConfig, env_settings, load_config, load_config_file, parse_duration
from common.errors import ConfigError
from constants import Constants


@pytest.fixture(autouse=True)
def _isolate(tmp_path, monkeypatch):
    """Run from an empty directory with no NIXADD_* variables or user config."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    for key in list(os.environ):
        if key.startswith(Constants.ENV_PREFIX):
            monkeypatch.delenv(key)


class TestParseDuration:
    """Duration strings"""

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("12h", timedelta(hours=12)),
            ("30m", timedelta(minutes=30)),
            ("1d", timedelta(days=1)),
            ("90s", timedelta(seconds=90)),
            ("1h30m", timedelta(hours=1, minutes=30)),
            ("2w", timedelta(weeks=2)),
            ("500ms", timedelta(milliseconds=500)),
            (" 1h 5m ", timedelta(hours=1, minutes=5)),
        ],
    )
    def test_valid(self, text, expected):
        assert parse_duration(text) == expected

    @pytest.mark.parametrize("text", ["", "12", "h", "12x", "1h junk", "abc1h"])
    def test_invalid(self, text):
        with pytest.raises(ConfigError):
            parse_duration(text)


class TestLoadConfig:
    """Precedence: defaults < file < environment < CLI."""

    def test_defaults(self):
        config = load_config(parse_args(["search", "x"]), environ={})
        assert config == AppConfig()
        assert config.max_cache_duration == timedelta(hours=12)
        assert config.num_print == 10
        assert config.cache_path == os.path.expanduser(Constants.DEFAULT_CACHE_FILE)

    def test_yaml_file_in_working_directory(self, tmp_path):
        (tmp_path / "nixadd.yml").write_text(
            "hm_config_file: ~/dotfiles/home.nix\nnum_print: 3\nswitch: true\n",
            encoding="utf-8",
        )
        config = load_config(parse_args(["search", "x"]), environ={})
        assert config.hm_config_file == "~/dotfiles/home.nix"
        assert config.config_path == os.path.join(str(tmp_path / "home"), "dotfiles", "home.nix")
        assert config.num_print == 3
        assert config.switch is True

    def test_explicit_toml_file(self, tmp_path):
        path = tmp_path / "settings.toml"
        path.write_text('max_cache_age = "1d"\ncommit = true\n', encoding="utf-8")
        config = load_config(parse_args(["-c", str(path), "search", "x"]), environ={})
        assert config.max_cache_duration == timedelta(days=1)
        assert config.commit is True

    def test_explicit_json_file(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"packages-attr": "home.extraPackages"}), encoding="utf-8")
        config = load_config(parse_args(["--config", str(path), "search", "x"]), environ={})
        assert config.packages_attr == "home.extraPackages"

    def test_environment_overrides_file(self, tmp_path):
        (tmp_path / "nixadd.yaml").write_text("num_print: 3\n", encoding="utf-8")
        config = load_config(
            parse_args(["search", "x"]),
            environ={"NIXADD_NUM_PRINT": "7", "NIXADD_PUSH": "yes"},
        )
        assert config.num_print == 7
        assert config.push is True

    def test_cli_overrides_environment(self):
        args = parse_args(["-n", "2", "-f", "other.nix", "--commit", "search", "x"])
        config = load_config(args, environ={"NIXADD_NUM_PRINT": "7", "NIXADD_HM_CONFIG_FILE": "env.nix"})
        assert config.num_print == 2
        assert config.hm_config_file == "other.nix"
        assert config.commit is True

    def test_unset_cli_flag_does_not_override(self):
        config = load_config(parse_args(["search", "x"]), environ={"NIXADD_SWITCH": "true"})
        assert config.switch is True

    def test_missing_explicit_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_config(parse_args(["-c", str(tmp_path / "nope.yml"), "search", "x"]), environ={})

    def test_invalid_values(self):
        with pytest.raises(ConfigError):
            load_config(parse_args(["search", "x"]), environ={"NIXADD_NUM_PRINT": "many"})
        with pytest.raises(ConfigError):
            load_config(parse_args(["search", "x"]), environ={"NIXADD_SWITCH": "maybe"})
        with pytest.raises(ConfigError):
            load_config(parse_args(["--max-cache-age", "soon", "search", "x"]), environ={})

    def test_unknown_setting_is_ignored(self, tmp_path, caplog):
        caplog.set_level(logging.WARNING)
        (tmp_path / "nixadd.yml").write_text("colour: blue\n", encoding="utf-8")
        config = load_config(parse_args(["search", "x"]), environ={})
        assert config == AppConfig()
        assert "colour" in caplog.text

    @pytest.mark.parametrize("template", ["nixadd: {pkgs}", "nixadd: {0}", "nixadd: {", "{mode.name}"])
    def test_invalid_commit_message_template(self, template):
        with pytest.raises(ConfigError, match="commit_message"):
            load_config(parse_args(["search", "x"]), environ={"NIXADD_COMMIT_MESSAGE": template})

    def test_commit_message_template_with_escaped_braces(self):
        config = load_config(parse_args(["search", "x"]), environ={"NIXADD_COMMIT_MESSAGE": "{{nixadd}} {mode}"})
        assert config.commit_message == "{{nixadd}} {mode}"

class TestConfigFiles:
    """File parsing errors"""

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "c.yml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="mapping"):
            load_config_file(str(path))

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "c.yml"
        path.write_text("a: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="cannot parse"):
            load_config_file(str(path))

    def test_invalid_toml(self, tmp_path):
        path = tmp_path / "c.toml"
        path.write_text("a = \n", encoding="utf-8")
        with pytest.raises(ConfigError, match="cannot parse"):
            load_config_file(str(path))

    def test_empty_file(self, tmp_path):
        path = tmp_path / "c.yml"
        path.write_text("", encoding="utf-8")
        assert load_config_file(str(path)) == {}


def test_env_settings_excludes_log_level():
    env = {"NIXADD_LOG_LEVEL": "DEBUG", "NIXADD_NUM_PRINT": "4", "OTHER": "x"}
    assert env_settings(env) == {"num_print": "4"}
