"""Docker Compose orchestrator."""

from __future__ import annotations

import logging
import subprocess
from typing import TYPE_CHECKING

from certlifecycle.core.process import run_command
from certlifecycle.orchestrator.base import Orchestrator, OrchestratorError

if TYPE_CHECKING:
    from certlifecycle.config.settings import OrchestratorSettings

log = logging.getLogger(__name__)


class DockerCompose(Orchestrator):
    """Builds ``docker compose restart`` invocations and inspects ``docker ps``.

    Parameters
    ----------
    settings:
        The ``orchestrator`` configuration section.

    """

    def __init__(self, settings: OrchestratorSettings) -> None:
        self._settings = settings

    def restart_invocation(self, service: str) -> str:
        return f"{self._settings.compose_command} restart {service}"

    def is_running(self, container: str) -> bool:
        result = self._run([self._settings.docker_binary, "ps", "--format", "{{.Names}}"])
        if result.returncode != 0:
            output = (result.stderr or result.stdout or "").strip()
            msg = f"docker ps failed: {output or result.returncode}"
            raise OrchestratorError(msg)
        names = result.stdout.split()
        log.debug("Running containers: %s", ", ".join(names) or "none")
        return any(container in name for name in names)

    def _run(self, cmd: list[str]) -> subprocess.CompletedProcess[str]:
        try:
            return run_command(cmd, timeout=self._settings.timeout_seconds)
        except FileNotFoundError as exc:
            msg = f"executable not found: {cmd[0]}"
            raise OrchestratorError(msg) from exc
        except subprocess.TimeoutExpired as exc:
            msg = f"{' '.join(cmd)} timed out after {self._settings.timeout_seconds}s"
            raise OrchestratorError(msg) from exc
