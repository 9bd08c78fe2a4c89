"""Configuration subsystem for certlifecycle.

Public API::

    from certlifecycle.config import LifecycleConfig

    cfg = LifecycleConfig(config_file="config.yaml")
    cfg.settings.service("onprem").domain
"""

from certlifecycle.config.lifecycle_config import (
    ConfigValidationError,
    LifecycleConfig,
)
from certlifecycle.config.settings import (
    CertbotSettings,
    LifecycleSettings,
    LoggingSettings,
    OrchestratorSettings,
    RenewalSettings,
    ScheduleSettings,
    ServiceSettings,
    build_settings,
)

__all__ = [
    "CertbotSettings",
    "ConfigValidationError",
    "LifecycleConfig",
    "LifecycleSettings",
    "LoggingSettings",
    "OrchestratorSettings",
    "RenewalSettings",
    "ScheduleSettings",
    "ServiceSettings",
    "build_settings",
]
