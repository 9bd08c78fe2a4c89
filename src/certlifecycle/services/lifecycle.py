"""Certificate lifecycle manager.

Takes one service from "no certificate" to "renewing itself":

1. :meth:`~CertificateLifecycleManager.provision` copies an existing
   lineage into the service's deploy directory, or obtains a new one
   through the CA client first.  :meth:`provision_manual` accepts an
   operator-supplied pair instead.
2. :meth:`~CertificateLifecycleManager.configure_renewal` writes the
   deploy hook, links it into the CA client's global hook directory and
   installs the daily renewal-check schedule entry.
3. :meth:`~CertificateLifecycleManager.renew_now` runs the same renewal
   check on demand.

Every collaborator failure is re-raised as one of the
:mod:`certlifecycle.errors` types with the underlying exception chained.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from certlifecycle.ca.base import CAClientError
from certlifecycle.ca.cert_utils import read_not_after
from certlifecycle.core.domains import is_valid_domain
from certlifecycle.core.fs import (
    EXECUTABLE_MODE,
    PRIVATE_FILE_MODE,
    PUBLIC_FILE_MODE,
    atomic_symlink,
    copy_file_atomic,
    is_nonempty_file,
    write_file_atomic,
)
from certlifecycle.core.types import LifecycleState
from certlifecycle.errors import (
    ConfigurationFailed,
    LifecycleError,
    ProvisionFailed,
    RenewalFailed,
)
from certlifecycle.hooks.renderer import HookRenderer
from certlifecycle.logging import log_context
from certlifecycle.models.certificate import CertificatePair
from certlifecycle.scheduler.base import ScheduleStoreError, entries_for, renewal_entry

if TYPE_CHECKING:
    from datetime import datetime
    from pathlib import Path

    from certlifecycle.ca.base import CAClient, Lineage
    from certlifecycle.config.settings import (
        RenewalSettings,
        ScheduleSettings,
        ServiceSettings,
    )
    from certlifecycle.orchestrator.base import Orchestrator
    from certlifecycle.scheduler.base import ScheduleStore

log = logging.getLogger(__name__)


def resolve_domain(
    service: ServiceSettings,
    domain: str | None,
    error_cls: type[LifecycleError] = LifecycleError,
) -> str:
    """Return *domain*, or the service's configured domain, validated.

    Raises
    ------
    LifecycleError
        (as *error_cls*) when no domain is known or it is not a DNS name.

    """
    resolved = (domain or service.domain or "").strip()
    if not resolved:
        msg = (
            f"no domain for service '{service.name}'; set services[].domain "
            "in the configuration or pass --domain"
        )
        raise error_cls(msg)
    if not is_valid_domain(resolved):
        msg = f"'{resolved}' is not a valid domain name"
        raise error_cls(msg)
    return resolved


class CertificateLifecycleManager:
    """Provisions certificates and wires up their automatic renewal.

    Parameters
    ----------
    ca:
        Certificate authority client holding the lineages.
    orchestrator:
        Container orchestrator used to restart services.
    schedule:
        Scheduling store receiving the daily renewal check.
    schedule_settings:
        Time of day for the renewal check.
    renewal_settings:
        Hook matching mode and global-hook linking.
    renderer:
        Deploy hook renderer; a default one is created when omitted.

    """

    def __init__(
        self,
        ca: CAClient,
        orchestrator: Orchestrator,
        schedule: ScheduleStore,
        schedule_settings: ScheduleSettings,
        renewal_settings: RenewalSettings,
        renderer: HookRenderer | None = None,
    ) -> None:
        self._ca = ca
        self._orchestrator = orchestrator
        self._schedule = schedule
        self._schedule_settings = schedule_settings
        self._renewal = renewal_settings
        self._renderer = renderer or HookRenderer()

    # -- provisioning -------------------------------------------------------

    def provision(self, service: ServiceSettings, domain: str | None = None) -> CertificatePair:
        """Install a CA-issued certificate for *service*.

        An existing lineage for the domain is reused; otherwise the CA
        client is installed if needed and a new certificate is obtained.
        Failures are not retried.

        Raises
        ------
        ProvisionFailed
            On any CA client failure, port conflict, missing lineage
            file, or when the deploy directory cannot be written.

        """
        domain = resolve_domain(service, domain, ProvisionFailed)
        with log_context(service=service.name, domain=domain):
            try:
                lineage = self._ca.find_lineage(domain)
                if lineage is None:
                    log.info("No existing certificate for %s, requesting one", domain)
                    self._ca.ensure_installed()
                    lineage = self._ca.obtain(domain)
                else:
                    log.info("Using existing certificate lineage %s", lineage.live_dir)
            except CAClientError as exc:
                msg = f"could not obtain a certificate for {domain}: {exc.detail}"
                raise ProvisionFailed(msg) from exc

            if not lineage.is_complete():
                msg = (
                    f"certificate lineage {lineage.live_dir} is missing "
                    "privkey.pem or fullchain.pem"
                )
                raise ProvisionFailed(msg)

            pair = self._install_pair(service, lineage)
            log.info("Installed certificate into %s", service.deploy_dir)
            return pair

    def provision_manual(self, service: ServiceSettings) -> CertificatePair:
        """Accept an operator-supplied key and certificate already in place.

        The key file's permissions are tightened to owner-only.

        Raises
        ------
        ProvisionFailed
            If either file is missing or empty.

        """
        with log_context(service=service.name, domain=service.domain or None):
            missing = [
                str(p) for p in (service.key_path, service.cert_path) if not is_nonempty_file(p)
            ]
            if missing:
                msg = f"manual certificate files missing or empty: {', '.join(missing)}"
                raise ProvisionFailed(msg)
            try:
                service.key_path.chmod(PRIVATE_FILE_MODE)
            except OSError as exc:
                msg = f"cannot set permissions on {service.key_path}: {exc}"
                raise ProvisionFailed(msg) from exc
            log.info("Using manually provided certificate in %s", service.deploy_dir)
            return CertificatePair(
                key_path=service.key_path,
                cert_path=service.cert_path,
                not_after=self._not_after(service.cert_path),
            )

    def _install_pair(self, service: ServiceSettings, lineage: Lineage) -> CertificatePair:
        try:
            copy_file_atomic(lineage.privkey_path, service.key_path, PRIVATE_FILE_MODE)
            copy_file_atomic(lineage.fullchain_path, service.cert_path, PUBLIC_FILE_MODE)
        except OSError as exc:
            msg = f"cannot install certificate into {service.deploy_dir}: {exc}"
            raise ProvisionFailed(msg) from exc
        return CertificatePair(
            key_path=service.key_path,
            cert_path=service.cert_path,
            not_after=self._not_after(service.cert_path),
        )

    @staticmethod
    def _not_after(cert_path: Path) -> datetime | None:
        try:
            return read_not_after(cert_path)
        except CAClientError as exc:
            log.warning("Cannot read certificate expiry: %s", exc.detail)
            return None

    # -- renewal configuration ---------------------------------------------

    def global_hook_path(self, service: ServiceSettings) -> Path:
        return self._ca.global_hook_dir / service.global_hook_name

    def renewal_command(self, service: ServiceSettings, domain: str) -> list[str]:
        """The renewal-check command scheduled for *service*."""
        return self._ca.renew_command(domain, deploy_hook=service.hook_path, quiet=True)

    def configure_renewal(
        self,
        service: ServiceSettings,
        domain: str | None = None,
        lineage_dir: Path | None = None,
    ) -> None:
        """Write the deploy hook and install the renewal schedule entry.

        Safe to repeat: the hook is overwritten, the global link replaced
        and any existing schedule entries for the domain are swapped for
        exactly one new entry.

        Raises
        ------
        ConfigurationFailed
            If the hook, the link or the schedule entry cannot be written.

        """
        domain = resolve_domain(service, domain, ConfigurationFailed)
        with log_context(service=service.name, domain=domain):
            if lineage_dir is None:
                lineage_dir = self._lineage_dir(domain)
            self._write_hook(service, domain, lineage_dir)
            if self._renewal.link_global_hook:
                self._link_global_hook(service)
            self._install_schedule_entry(service, domain)
            log.info("Automatic renewal configured for %s", domain)

    def _lineage_dir(self, domain: str) -> Path:
        try:
            lineage = self._ca.find_lineage(domain)
        except CAClientError as exc:
            msg = f"cannot look up certificate lineage for {domain}: {exc.detail}"
            raise ConfigurationFailed(msg) from exc
        if lineage is not None:
            return lineage.live_dir
        fallback = self._ca.live_dir / domain
        log.warning(
            "No certificate lineage for %s yet; the hook will deploy from %s",
            domain,
            fallback,
        )
        return fallback

    def _write_hook(self, service: ServiceSettings, domain: str, lineage_dir: Path) -> None:
        content = self._renderer.render(
            service,
            domain=domain,
            lineage_dir=lineage_dir,
            restart_command=self._orchestrator.restart_invocation(service.compose_service),
            domain_match=self._renewal.domain_match,
        )
        try:
            write_file_atomic(service.hook_path, content.encode(), EXECUTABLE_MODE)
        except OSError as exc:
            msg = f"cannot write deploy hook {service.hook_path}: {exc}"
            raise ConfigurationFailed(msg) from exc
        log.info("Wrote deploy hook %s", service.hook_path)

    def _link_global_hook(self, service: ServiceSettings) -> None:
        link = self.global_hook_path(service)
        try:
            atomic_symlink(link, service.hook_path)
        except OSError as exc:
            msg = f"cannot link deploy hook into {link.parent}: {exc}"
            raise ConfigurationFailed(msg) from exc
        log.info("Linked %s -> %s", link, service.hook_path)

    def _install_schedule_entry(self, service: ServiceSettings, domain: str) -> None:
        line = renewal_entry(
            self.renewal_command(service, domain),
            hour=self._schedule_settings.hour,
            minute=self._schedule_settings.minute,
        )
        try:
            existing = entries_for(self._schedule.list_entries(), domain)
            if existing == [line]:
                log.info("Renewal schedule entry already present")
                return
            if existing:
                self._schedule.remove_entries(existing)
                log.warning("Replaced %d existing schedule entries for %s", len(existing), domain)
            self._schedule.add_entry(line)
        except ScheduleStoreError as exc:
            msg = f"cannot install renewal schedule entry: {exc.detail}"
            raise ConfigurationFailed(msg) from exc

    # -- manual renewal -----------------------------------------------------

    def renew_now(
        self,
        service: ServiceSettings,
        domain: str | None = None,
        *,
        force: bool = False,
    ) -> str:
        """Run the renewal check now, deploying through the service hook.

        Returns the CA client's output.

        Raises
        ------
        RenewalFailed
            If the hook is missing or the CA client fails.

        """
        domain = resolve_domain(service, domain, RenewalFailed)
        with log_context(service=service.name, domain=domain):
            if not service.hook_path.is_file():
                msg = (
                    f"deploy hook {service.hook_path} not found; "
                    f"run 'configure {service.name}' first"
                )
                raise RenewalFailed(msg)
            try:
                output = self._ca.renew(domain, deploy_hook=service.hook_path, force=force)
            except CAClientError as exc:
                msg = f"renewal of {domain} failed: {exc.detail}"
                raise RenewalFailed(msg) from exc
            log.info("Renewal check for %s completed", domain)
            return output

    # -- state --------------------------------------------------------------

    def deployed_pair(self, service: ServiceSettings) -> CertificatePair | None:
        """Return the deployed pair, or ``None`` unless both files are non-empty."""
        if not (is_nonempty_file(service.key_path) and is_nonempty_file(service.cert_path)):
            return None
        return CertificatePair(
            key_path=service.key_path,
            cert_path=service.cert_path,
            not_after=self._not_after(service.cert_path),
        )

    def state(self, service: ServiceSettings, domain: str | None = None) -> LifecycleState:
        """Derive the lifecycle state of *service* from what is on disk.

        Collaborator failures while probing are logged and treated as
        "not present".
        """
        domain = resolve_domain(service, domain)
        if self.deployed_pair(service) is None:
            return LifecycleState.UNPROVISIONED

        if service.hook_path.is_file():
            try:
                scheduled = bool(entries_for(self._schedule.list_entries(), domain))
            except ScheduleStoreError as exc:
                log.warning("Cannot read renewal schedule: %s", exc.detail)
                scheduled = False
            if scheduled:
                return LifecycleState.RENEWAL_CONFIGURED

        try:
            lineage = self._ca.find_lineage(domain)
        except CAClientError as exc:
            log.warning("Cannot look up certificate lineage: %s", exc.detail)
            lineage = None
        if lineage is None:
            return LifecycleState.PROVISIONED_MANUAL
        return LifecycleState.PROVISIONED_CA
