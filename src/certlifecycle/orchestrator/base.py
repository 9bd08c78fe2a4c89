"""Abstract base class for container orchestrators.

The orchestrator supplies the command deploy hooks run to restart a
service and reports whether the service's container is up.
"""

from __future__ import annotations

import abc


class OrchestratorError(Exception):
    """Raised when the orchestrator command fails or is unavailable."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(detail)


class Orchestrator(abc.ABC):
    """Base class for orchestrator implementations."""

    @abc.abstractmethod
    def is_running(self, container: str) -> bool:
        """Return True when a running container matches *container*.

        Raises
        ------
        OrchestratorError
            If the container runtime cannot be queried.

        """

    @abc.abstractmethod
    def restart_invocation(self, service: str) -> str:
        """Shell command line that restarts *service*.

        Written verbatim into deploy hooks and looked for by validation.
        """
