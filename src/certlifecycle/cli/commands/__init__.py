"""CLI subcommand handlers.

:func:`build_manager` and :func:`build_validator` wire the configured
collaborators (certbot, Docker Compose, crontab) into the services.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from certlifecycle.config.settings import LifecycleSettings
    from certlifecycle.services.lifecycle import CertificateLifecycleManager
    from certlifecycle.services.validation import RenewalValidator


def build_manager(settings: LifecycleSettings) -> CertificateLifecycleManager:
    from certlifecycle.ca.certbot import CertbotClient
    from certlifecycle.orchestrator.compose import DockerCompose
    from certlifecycle.scheduler.crontab import CrontabStore
    from certlifecycle.services.lifecycle import CertificateLifecycleManager

    return CertificateLifecycleManager(
        ca=CertbotClient(settings.certbot),
        orchestrator=DockerCompose(settings.orchestrator),
        schedule=CrontabStore(settings.schedule),
        schedule_settings=settings.schedule,
        renewal_settings=settings.renewal,
    )


def build_validator(settings: LifecycleSettings) -> RenewalValidator:
    from certlifecycle.ca.certbot import CertbotClient
    from certlifecycle.orchestrator.compose import DockerCompose
    from certlifecycle.scheduler.crontab import CrontabStore
    from certlifecycle.services.validation import RenewalValidator

    return RenewalValidator(
        ca=CertbotClient(settings.certbot),
        orchestrator=DockerCompose(settings.orchestrator),
        schedule=CrontabStore(settings.schedule),
        renewal_settings=settings.renewal,
    )
