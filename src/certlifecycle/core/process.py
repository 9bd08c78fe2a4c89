"""Thin wrapper around :func:`subprocess.run` for external tools.

Every collaborator (certbot, docker, crontab) shells out through
:func:`run_command` so commands are logged uniformly and tests can patch
a single seam.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from pathlib import Path

log = logging.getLogger(__name__)


def format_command(cmd: Sequence[str]) -> str:
    """Render *cmd* as a copy-pasteable shell string."""
    return " ".join(shlex.quote(part) for part in cmd)


def run_command(
    cmd: Sequence[str],
    *,
    timeout: float | None = None,
    cwd: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    input_text: str | None = None,
) -> subprocess.CompletedProcess[str]:
    """Run *cmd* and capture its output as text.

    Raises
    ------
    FileNotFoundError
        If the executable does not exist.
    subprocess.TimeoutExpired
        If *timeout* elapses.

    """
    log.debug("Running: %s", format_command(cmd))
    result = subprocess.run(  # noqa: S603
        list(cmd),
        capture_output=True,
        text=True,
        timeout=timeout,
        cwd=cwd,
        env=dict(env) if env is not None else None,
        input=input_text,
        check=False,
    )
    if result.returncode != 0:
        log.debug(
            "Command exited %d: %s",
            result.returncode,
            (result.stderr or result.stdout or "").strip(),
        )
    return result
