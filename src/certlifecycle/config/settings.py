"""Typed, frozen dataclasses for every configuration section.

This module is the **single source of truth** for default values.
JSON Schema defaults exist only for documentation -- these builders
are what the application actually reads.

Access pattern::

    from certlifecycle.config import LifecycleConfig

    cfg = LifecycleConfig(config_file="/etc/certlifecycle/config.yaml")
    svc = cfg.settings.service("minio")
    print(svc.domain, svc.deploy_dir)
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from certlifecycle.core.types import DomainMatch, ServiceKind

# ---------------------------------------------------------------------------
# Certbot
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CertbotSettings:
    """Certificate authority client (certbot) invocation settings."""

    binary: str
    config_dir: str
    auto_install: bool
    install_command: tuple[tuple[str, ...], ...]
    challenge_port: int
    preflight_port_check: bool
    timeout_seconds: int


_DEFAULT_INSTALL_COMMAND: tuple[tuple[str, ...], ...] = (
    ("apt-get", "update"),
    ("apt-get", "install", "-y", "certbot"),
)


def _build_certbot(data: dict | None) -> CertbotSettings:
    d = data or {}
    install = d.get("install_command")
    return CertbotSettings(
        binary=d.get("binary", "/usr/bin/certbot"),
        config_dir=d.get("config_dir", "/etc/letsencrypt"),
        auto_install=d.get("auto_install", True),
        install_command=(
            tuple(tuple(step) for step in install) if install else _DEFAULT_INSTALL_COMMAND
        ),
        challenge_port=d.get("challenge_port", 80),
        preflight_port_check=d.get("preflight_port_check", True),
        timeout_seconds=d.get("timeout_seconds", 600),
    )


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class OrchestratorSettings:
    """Docker / Docker Compose invocation settings."""

    docker_binary: str
    compose_command: str
    timeout_seconds: int


def _build_orchestrator(data: dict | None) -> OrchestratorSettings:
    d = data or {}
    return OrchestratorSettings(
        docker_binary=d.get("docker_binary", "docker"),
        compose_command=d.get("compose_command", "docker compose"),
        timeout_seconds=d.get("timeout_seconds", 120),
    )


# ---------------------------------------------------------------------------
# Schedule
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ScheduleSettings:
    """Daily renewal-check schedule (crontab)."""

    crontab_binary: str
    hour: int
    minute: int


def _build_schedule(data: dict | None) -> ScheduleSettings:
    d = data or {}
    return ScheduleSettings(
        crontab_binary=d.get("crontab_binary", "crontab"),
        hour=d.get("hour", 3),
        minute=d.get("minute", 0),
    )


# ---------------------------------------------------------------------------
# Renewal
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RenewalSettings:
    """Deploy-hook and validation behaviour."""

    domain_match: DomainMatch
    expiry_warning_days: int
    link_global_hook: bool


def _build_renewal(data: dict | None) -> RenewalSettings:
    d = data or {}
    return RenewalSettings(
        domain_match=DomainMatch(d.get("domain_match", "token")),
        expiry_warning_days=d.get("expiry_warning_days", 30),
        link_global_hook=d.get("link_global_hook", True),
    )


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LoggingSettings:
    """Application logging configuration (level, format, optional file)."""

    level: str
    format: str
    file: str | None
    max_file_size_bytes: int
    backup_count: int


def _build_logging(data: dict | None) -> LoggingSettings:
    d = data or {}
    return LoggingSettings(
        level=d.get("level", "INFO"),
        format=d.get("format", "text"),
        file=d.get("file"),
        max_file_size_bytes=d.get("max_file_size_bytes", 10485760),
        backup_count=d.get("backup_count", 5),
    )


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------

HOOK_SCRIPT_NAME = "cert-deploy-hook.sh"
RENEWAL_LOG_NAME = "certificate-renewal.log"


@dataclass(frozen=True)
class ServiceSettings:
    """One Docker Compose service whose certificate is managed.

    ``deploy_dir`` is resolved against ``base_dir`` when relative.
    """

    name: str
    kind: ServiceKind
    display_name: str
    domain: str
    base_dir: str
    deploy_dir: str
    key_file: str
    cert_file: str
    compose_service: str
    container_name: str
    global_hook_name: str

    @property
    def scripts_dir(self) -> Path:
        return Path(self.base_dir) / "scripts"

    @property
    def hook_path(self) -> Path:
        return self.scripts_dir / HOOK_SCRIPT_NAME

    @property
    def renewal_log_path(self) -> Path:
        return Path(self.base_dir) / RENEWAL_LOG_NAME

    @property
    def key_path(self) -> Path:
        return Path(self.deploy_dir) / self.key_file

    @property
    def cert_path(self) -> Path:
        return Path(self.deploy_dir) / self.cert_file


# Per-kind conventions taken from the service images' expectations:
# MinIO reads ``private.key``/``public.crt`` from its certs directory,
# the OnPrem service mounts ``certs/ssl`` as ``server.key``/``server.crt``.
_SERVICE_PRESETS: dict[ServiceKind, dict[str, str]] = {
    ServiceKind.MINIO: {
        "display_name": "MinIO",
        "deploy_dir": "certs/minio",
        "key_file": "private.key",
        "cert_file": "public.crt",
        "compose_service": "minio",
        "container_name": "minio",
        "global_hook_name": "minio-cert-deploy.sh",
    },
    ServiceKind.ONPREM: {
        "display_name": "OnPrem",
        "deploy_dir": "certs/ssl",
        "key_file": "server.key",
        "cert_file": "server.crt",
        "compose_service": "onprem",
        "container_name": "onprem",
        "global_hook_name": "onprem-cert-deploy.sh",
    },
}


def _build_service(data: dict) -> ServiceSettings:
    kind = ServiceKind(data.get("kind", data["name"]))
    preset = _SERVICE_PRESETS[kind]
    base_dir = Path(data["base_dir"])
    deploy_dir = Path(data.get("deploy_dir", preset["deploy_dir"]))
    if not deploy_dir.is_absolute():
        deploy_dir = base_dir / deploy_dir
    return ServiceSettings(
        name=data["name"],
        kind=kind,
        display_name=data.get("display_name", preset["display_name"]),
        domain=data.get("domain", ""),
        base_dir=str(base_dir),
        deploy_dir=str(deploy_dir),
        key_file=data.get("key_file", preset["key_file"]),
        cert_file=data.get("cert_file", preset["cert_file"]),
        compose_service=data.get("compose_service", preset["compose_service"]),
        container_name=data.get("container_name", preset["container_name"]),
        global_hook_name=data.get("global_hook_name", preset["global_hook_name"]),
    )


# ---------------------------------------------------------------------------
# Root settings aggregate
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LifecycleSettings:
    certbot: CertbotSettings
    orchestrator: OrchestratorSettings
    schedule: ScheduleSettings
    renewal: RenewalSettings
    logging: LoggingSettings
    services: tuple[ServiceSettings, ...]

    def service(self, name: str) -> ServiceSettings:
        """Return the service named *name*.

        Raises :class:`KeyError` when no such service is configured.
        """
        for svc in self.services:
            if svc.name == name:
                return svc
        known = ", ".join(s.name for s in self.services) or "none"
        msg = f"unknown service '{name}' (configured: {known})"
        raise KeyError(msg)


def build_settings(data: dict) -> LifecycleSettings:
    """Build the full typed settings tree from raw config data.

    Called once during :class:`LifecycleConfig` initialisation after
    schema validation and environment-variable resolution.
    """
    return LifecycleSettings(
        certbot=_build_certbot(data.get("certbot")),
        orchestrator=_build_orchestrator(data.get("orchestrator")),
        schedule=_build_schedule(data.get("schedule")),
        renewal=_build_renewal(data.get("renewal")),
        logging=_build_logging(data.get("logging")),
        services=tuple(_build_service(s) for s in data.get("services") or []),
    )
