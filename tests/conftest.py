"""Root conftest for the certlifecycle test suite."""

from __future__ import annotations

import sys
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
import yaml

# ---------------------------------------------------------------------------
# Make ``src/`` importable without installing the package
# ---------------------------------------------------------------------------
_SRC = str(Path(__file__).resolve().parent.parent / "src")
if _SRC not in sys.path:
    sys.path.insert(0, _SRC)

from cryptography import x509  # noqa: E402
from cryptography.hazmat.primitives import hashes, serialization  # noqa: E402
from cryptography.hazmat.primitives.asymmetric import ec  # noqa: E402
from cryptography.x509.oid import NameOID  # noqa: E402

from certlifecycle.ca.base import CAClient, CAClientError, Lineage  # noqa: E402
from certlifecycle.config.settings import build_settings  # noqa: E402
from certlifecycle.orchestrator.base import Orchestrator, OrchestratorError  # noqa: E402
from certlifecycle.scheduler.base import ScheduleStore, ScheduleStoreError  # noqa: E402

NOW = datetime(2026, 1, 1, tzinfo=UTC)
DOMAIN = "share.example.com"


# ---------------------------------------------------------------------------
# Certificates
# ---------------------------------------------------------------------------


def make_cert_pem(
    domain: str = DOMAIN,
    *,
    not_after: datetime | None = None,
) -> tuple[bytes, bytes]:
    """Return ``(key_pem, cert_pem)`` for a self-signed cert ending at *not_after*."""
    not_after = not_after or NOW + timedelta(days=90)
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, domain)])
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_after - timedelta(days=90))
        .not_valid_after(not_after)
        .add_extension(x509.SubjectAlternativeName([x509.DNSName(domain)]), critical=False)
        .sign(key, hashes.SHA256())
    )
    key_pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )
    return key_pem, cert.public_bytes(serialization.Encoding.PEM)


# ---------------------------------------------------------------------------
# In-memory collaborators
# ---------------------------------------------------------------------------


class FakeCAClient(CAClient):
    """CA client whose lineages are plain directories under *config_dir*."""

    def __init__(self, config_dir: Path) -> None:
        self.config_dir = config_dir
        self.installed = True
        self.obtain_error: CAClientError | None = None
        self.renew_error: CAClientError | None = None
        self.obtain_days = 90
        self.calls: list[tuple] = []

    @property
    def binary(self) -> str:
        return "/usr/bin/certbot"

    @property
    def live_dir(self) -> Path:
        return self.config_dir / "live"

    @property
    def global_hook_dir(self) -> Path:
        return self.config_dir / "renewal-hooks" / "deploy"

    def add_lineage(self, domain: str = DOMAIN, *, days: int = 90) -> Lineage:
        live = self.live_dir / domain
        live.mkdir(parents=True, exist_ok=True)
        key_pem, cert_pem = make_cert_pem(domain, not_after=NOW + timedelta(days=days))
        (live / "privkey.pem").write_bytes(key_pem)
        (live / "fullchain.pem").write_bytes(cert_pem)
        return self._lineage(domain)

    def _lineage(self, domain: str) -> Lineage:
        live = self.live_dir / domain
        return Lineage(
            name=domain,
            domains=(domain,),
            live_dir=live,
            privkey_path=live / "privkey.pem",
            fullchain_path=live / "fullchain.pem",
        )

    def ensure_installed(self) -> None:
        self.calls.append(("ensure_installed",))
        self.installed = True

    def list_lineages(self) -> list[Lineage]:
        if not self.live_dir.is_dir():
            return []
        return [self._lineage(p.name) for p in sorted(self.live_dir.iterdir()) if p.is_dir()]

    def find_lineage(self, domain: str) -> Lineage | None:
        if (self.live_dir / domain).is_dir():
            return self._lineage(domain)
        return None

    def obtain(self, domain: str) -> Lineage:
        self.calls.append(("obtain", domain))
        if self.obtain_error is not None:
            raise self.obtain_error
        return self.add_lineage(domain, days=self.obtain_days)

    def renew_command(self, domain, *, deploy_hook=None, quiet=False, dry_run=False, force=False):
        cmd = [self.binary, "renew", "--cert-name", domain]
        if deploy_hook is not None:
            cmd += ["--deploy-hook", str(deploy_hook)]
        if dry_run:
            cmd.append("--dry-run")
        if force:
            cmd.append("--force-renewal")
        if quiet:
            cmd.append("--quiet")
        return cmd

    def renew(self, domain, *, deploy_hook=None, quiet=False, dry_run=False, force=False):
        self.calls.append(("renew", domain, deploy_hook, dry_run, force))
        if self.renew_error is not None:
            raise self.renew_error
        return "renewed\n"


class FakeOrchestrator(Orchestrator):
    def __init__(self) -> None:
        self.running: set[str] = set()
        self.error: OrchestratorError | None = None

    def is_running(self, container: str) -> bool:
        if self.error is not None:
            raise self.error
        return any(container in name for name in self.running)

    def restart_invocation(self, service: str) -> str:
        return f"docker compose restart {service}"


class FakeScheduleStore(ScheduleStore):
    def __init__(self, entries: list[str] | None = None) -> None:
        self.entries: list[str] = list(entries or [])
        self.error: ScheduleStoreError | None = None

    def list_entries(self) -> list[str]:
        if self.error is not None:
            raise self.error
        return list(self.entries)

    def add_entry(self, line: str) -> None:
        if self.error is not None:
            raise self.error
        self.entries.append(line)

    def remove_entries(self, lines) -> None:
        doomed = set(lines)
        self.entries = [e for e in self.entries if e not in doomed]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def fake_ca(tmp_path: Path) -> FakeCAClient:
    return FakeCAClient(tmp_path / "letsencrypt")


@pytest.fixture()
def fake_orchestrator() -> FakeOrchestrator:
    return FakeOrchestrator()


@pytest.fixture()
def fake_schedule() -> FakeScheduleStore:
    return FakeScheduleStore()


@pytest.fixture()
def config_data(tmp_path: Path) -> dict:
    """Raw configuration with one OnPrem and one MinIO service under *tmp_path*."""
    return {
        "certbot": {"config_dir": str(tmp_path / "letsencrypt")},
        "services": [
            {"name": "onprem", "domain": DOMAIN, "base_dir": str(tmp_path / "onprem")},
            {
                "name": "minio",
                "domain": "minio.example.com",
                "base_dir": str(tmp_path / "minio"),
            },
        ],
    }


@pytest.fixture()
def settings(config_data: dict):
    return build_settings(config_data)


@pytest.fixture()
def onprem(settings):
    return settings.service("onprem")


@pytest.fixture()
def minio(settings):
    return settings.service("minio")


@pytest.fixture()
def tmp_config_file(tmp_path: Path, config_data: dict) -> Path:
    """Write *config_data* to a temp YAML file and return its path."""
    cfg = tmp_path / "config.yaml"
    cfg.write_text(
        yaml.safe_dump(config_data, default_flow_style=False, sort_keys=False),
        encoding="utf-8",
    )
    return cfg


@pytest.fixture()
def now() -> datetime:
    return NOW


@pytest.fixture()
def domain() -> str:
    return DOMAIN


@pytest.fixture()
def cert_factory():
    """Return :func:`make_cert_pem`."""
    return make_cert_pem


# ---------------------------------------------------------------------------
# Logger cleanup -- autouse so configure_logging() in one test cannot hide
# records from caplog in the next
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def fresh_logging():
    yield
    import logging

    root = logging.getLogger("certlifecycle")
    root.handlers.clear()
    root.propagate = True
    root.setLevel(logging.NOTSET)
