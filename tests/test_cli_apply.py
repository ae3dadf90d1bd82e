"""Tests for the switch and git steps run after a change."""
import os
from unittest.mock import MagicMock, patch

import pytest

from cli_apply import apply_changes, commit_message
from cli_config import AppConfig
from common.errors import ApplyError
from constants import Mode


def _ok(*_args, **_kwargs):
    return MagicMock(returncode=0, stdout="", stderr="")


class TestApplyChanges:
    """apply_changes"""

    def test_nothing_enabled_runs_nothing(self, tmp_path):
        config = AppConfig(hm_config_file=str(tmp_path / "home.nix"))
        with patch("cli_apply.subprocess.run", side_effect=_ok) as run:
            apply_changes(config, ["pkgs.jq"], Mode.ADD)
        run.assert_not_called()

    def test_switch(self, tmp_path):
        config = AppConfig(
            hm_config_file=str(tmp_path / "home.nix"),
            switch=True,
            switch_command="home-manager switch --flake '.#me'",
        )
        with patch("cli_apply.subprocess.run", side_effect=_ok) as run:
            apply_changes(config, ["pkgs.jq"], Mode.ADD)
        assert run.call_args_list[0].args[0] == ["home-manager", "switch", "--flake", ".#me"]

    def test_commit_and_push(self, tmp_path):
        config = AppConfig(hm_config_file=str(tmp_path / "home.nix"), commit=True, push=True)
        with patch("cli_apply.subprocess.run", side_effect=_ok) as run:
            apply_changes(config, ["pkgs.jq", "pkgs.htop"], Mode.REMOVE)
        commands = [c.args[0] for c in run.call_args_list]
        assert commands == [
            ["git", "add", "--", "home.nix"],
            ["git", "commit", "-m", "nixadd: remove pkgs.jq pkgs.htop"],
            ["git", "push"],
        ]
        for call in run.call_args_list:
            assert call.kwargs["cwd"] == os.path.abspath(str(tmp_path))

    def test_push_without_commit_is_skipped(self, tmp_path):
        config = AppConfig(hm_config_file=str(tmp_path / "home.nix"), push=True)
        with patch("cli_apply.subprocess.run", side_effect=_ok) as run:
            apply_changes(config, ["pkgs.jq"], Mode.ADD)
        run.assert_not_called()

    def test_failure_stops_later_steps(self, tmp_path):
        config = AppConfig(hm_config_file=str(tmp_path / "home.nix"), switch=True, commit=True)
        failed = MagicMock(returncode=1, stdout="", stderr="activation failed")
        with patch("cli_apply.subprocess.run", return_value=failed) as run:
            with pytest.raises(ApplyError, match="activation failed"):
                apply_changes(config, ["pkgs.jq"], Mode.ADD)
        assert run.call_count == 1

    def test_missing_executable(self, tmp_path):
        config = AppConfig(hm_config_file=str(tmp_path / "home.nix"), switch=True)
        with patch("cli_apply.subprocess.run", side_effect=FileNotFoundError("home-manager")):
            with pytest.raises(ApplyError, match="could not run"):
                apply_changes(config, ["pkgs.jq"], Mode.ADD)

    def test_empty_switch_command(self, tmp_path):
        config = AppConfig(hm_config_file=str(tmp_path / "home.nix"), switch=True, switch_command="  ")
        with pytest.raises(ApplyError, match="empty"):
            apply_changes(config, ["pkgs.jq"], Mode.ADD)

    def test_bad_template_fails_before_any_step(self, tmp_path):
        config = AppConfig(
            hm_config_file=str(tmp_path / "home.nix"),
            switch=True,
            commit=True,
            commit_message="nixadd: {pkgs}",
        )
        with patch("cli_apply.subprocess.run", side_effect=_ok) as run:
            with pytest.raises(ApplyError, match="template"):
                apply_changes(config, ["pkgs.jq"], Mode.ADD)
        run.assert_not_called()


def test_commit_message_template():
    assert commit_message("{mode}: {packages}", Mode.ADD, ["pkgs.a", "pkgs.b"]) == "add: pkgs.a pkgs.b"
