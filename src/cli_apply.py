"""Post-edit steps: home-manager switch and git commit/push.

Only invoked after a reconciliation actually rewrote the configuration file.
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
from typing import List, Optional, Sequence

from cli_config import AppConfig
from common.errors import ApplyError
from common.logging_utils import Timer, extra_context, is_debug_enabled
from constants import Mode

logger = logging.getLogger(__name__)


def _run(command: Sequence[str], cwd: Optional[str] = None) -> None:
    """Run ``command`` and raise ApplyError unless it exits with status 0."""
    logger.info("Running: %s", " ".join(command))
    with Timer() as t:
        try:
            result = subprocess.run(
                list(command),
                cwd=cwd,
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as exc:
            raise ApplyError(f"could not run '{command[0]}': {exc}") from exc
    if is_debug_enabled(logger):
        logger.debug(
            "Command finished",
            extra=extra_context(
                event="subprocess",
                component="apply",
                action=command[0],
                outcome="success" if result.returncode == 0 else "failure",
                duration_ms=t.duration_ms(),
            ),
        )
    if result.returncode != 0:
        detail = (result.stderr or result.stdout or "").strip()
        raise ApplyError(
            f"'{' '.join(command)}' exited with status {result.returncode}"
            + (f": {detail}" if detail else "")
        )


def commit_message(template: str, mode: Mode, keys: List[str]) -> str:
    """Render the commit message template with ``{mode}`` and ``{packages}``.

    Raises:
        ApplyError: If the template refers to other fields or is malformed.
    """
    try:
        return template.format(mode=mode.value, packages=" ".join(keys))
    except (KeyError, IndexError, ValueError, AttributeError) as exc:
        raise ApplyError(f"invalid commit message template {template!r}: {exc!r}") from exc


def apply_changes(config: AppConfig, keys: List[str], mode: Mode) -> None:
    """Run the enabled switch and git steps for a written change.

    Raises:
        ApplyError: If any step fails; later steps are not attempted.
    """
    path = os.path.abspath(config.config_path)
    workdir = os.path.dirname(path)
    # A bad template fails before any step runs.
    message = commit_message(config.commit_message, mode, keys) if config.commit else None

    if config.switch:
        command = shlex.split(config.switch_command)
        if not command:
            raise ApplyError("switch command is empty")
        _run(command)

    if config.commit:
        _run(["git", "add", "--", os.path.basename(path)], cwd=workdir)
        _run(["git", "commit", "-m", message], cwd=workdir)
        if config.push:
            _run(["git", "push"], cwd=workdir)
    elif config.push:
        logger.warning("--push has no effect without --commit")
