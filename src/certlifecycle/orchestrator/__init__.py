"""Container orchestrator subsystem."""

from certlifecycle.orchestrator.base import Orchestrator, OrchestratorError
from certlifecycle.orchestrator.compose import DockerCompose

__all__ = ["DockerCompose", "Orchestrator", "OrchestratorError"]
