"""Renewal setup validation.

:meth:`RenewalValidator.validate` is read-only and reports every check,
so a single run shows the operator everything that is wrong:

==================  =====================================================
``lineage``         the CA client knows a lineage for the domain
``hook-exists``     deploy hook present (local, else global directory)
``hook-executable`` hook has the execute bit
``hook-domain``     hook body references the domain
``hook-restart``    hook body restarts the service
``hook-link``       global hook directory links to the local hook (skipped
                    when only the global hook exists)
``schedule-entry``  a schedule entry references the domain
``schedule-hook``   that entry passes ``--deploy-hook``
``expiry``          more than ``expiry_warning_days`` left (else warn)
``deployed-pair``   key and certificate present in the deploy directory
``scripts-dir``     the service's scripts directory exists
``renewal-log``     the renewal log exists (warn before first renewal)
``service-running`` the service container is up (warn)
==================  =====================================================

The active tests, :meth:`RenewalValidator.dry_run_renewal` and
:meth:`RenewalValidator.test_deploy_hook`, touch real state and only run
when the operator asks for them.
"""

from __future__ import annotations

import logging
import os
import subprocess
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from certlifecycle.ca.base import CAClientError
from certlifecycle.ca.cert_utils import days_remaining, read_not_after
from certlifecycle.core.fs import backup_file, restore_backup
from certlifecycle.core.process import run_command
from certlifecycle.core.types import CheckStatus
from certlifecycle.logging import log_context
from certlifecycle.models.validation import CheckResult, ValidationReport
from certlifecycle.orchestrator.base import OrchestratorError
from certlifecycle.scheduler.base import ScheduleStoreError, entries_for, has_deploy_hook
from certlifecycle.services.lifecycle import resolve_domain

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from certlifecycle.ca.base import CAClient, Lineage
    from certlifecycle.config.settings import RenewalSettings, ServiceSettings
    from certlifecycle.orchestrator.base import Orchestrator
    from certlifecycle.scheduler.base import ScheduleStore

log = logging.getLogger(__name__)

_HOOK_CHECKS = ("hook-executable", "hook-domain", "hook-restart", "hook-link")
_DEFAULT_HOOK_TIMEOUT = 300


def _utcnow() -> datetime:
    return datetime.now(UTC)


class RenewalValidator:
    """Checks that automatic renewal is wired up for a service.

    Parameters
    ----------
    ca:
        Certificate authority client holding the lineages.
    orchestrator:
        Container orchestrator, for the restart invocation and liveness.
    schedule:
        Scheduling store holding the renewal check.
    renewal_settings:
        Expiry warning threshold and global-hook linking.
    clock:
        Returns the current time; injectable for tests.
    hook_timeout:
        Seconds a directly invoked deploy hook may run.

    """

    def __init__(
        self,
        ca: CAClient,
        orchestrator: Orchestrator,
        schedule: ScheduleStore,
        renewal_settings: RenewalSettings,
        clock: Callable[[], datetime] = _utcnow,
        hook_timeout: int = _DEFAULT_HOOK_TIMEOUT,
    ) -> None:
        self._ca = ca
        self._orchestrator = orchestrator
        self._schedule = schedule
        self._renewal = renewal_settings
        self._clock = clock
        self._hook_timeout = hook_timeout

    # -- read-only validation -----------------------------------------------

    def validate(self, service: ServiceSettings, domain: str | None = None) -> ValidationReport:
        """Run every read-only check and return the full report."""
        domain = resolve_domain(service, domain)
        results: list[CheckResult] = []

        with log_context(service=service.name, domain=domain):
            lineage, lineage_result = self._check_lineage(domain)
            results.append(lineage_result)

            hook, hook_result = self._check_hook_exists(service)
            results.append(hook_result)
            if hook is None:
                results.extend(
                    CheckResult(name, CheckStatus.SKIP, "no deploy hook found")
                    for name in _HOOK_CHECKS
                )
            else:
                results.extend(self._check_hook(service, domain, hook))

            results.extend(self._check_schedule(domain))
            results.append(self._check_expiry(lineage))
            results.append(self._check_deployed_pair(service))
            results.append(self._check_scripts_dir(service))
            results.append(self._check_renewal_log(service))
            results.append(self._check_service_running(service))

            for r in results:
                log.debug("%s: %s (%s)", r.name, r.status, r.message)

        return ValidationReport(service=service.name, domain=domain, results=tuple(results))

    def _check_lineage(self, domain: str) -> tuple[Lineage | None, CheckResult]:
        try:
            lineage = self._ca.find_lineage(domain)
        except CAClientError as exc:
            return None, CheckResult("lineage", CheckStatus.FAIL, exc.detail)
        if lineage is None:
            return None, CheckResult(
                "lineage",
                CheckStatus.FAIL,
                f"no certificate lineage for {domain}",
            )
        return lineage, CheckResult(
            "lineage",
            CheckStatus.PASS,
            f"lineage {lineage.name} in {lineage.live_dir}",
        )

    def _check_hook_exists(self, service: ServiceSettings) -> tuple[Path | None, CheckResult]:
        if service.hook_path.is_file():
            return service.hook_path, CheckResult(
                "hook-exists",
                CheckStatus.PASS,
                f"deploy hook at {service.hook_path}",
            )
        global_hook = self._ca.global_hook_dir / service.global_hook_name
        if global_hook.is_file():
            return global_hook, CheckResult(
                "hook-exists",
                CheckStatus.PASS,
                f"deploy hook at {global_hook} (global hook directory)",
            )
        return None, CheckResult(
            "hook-exists",
            CheckStatus.FAIL,
            f"no deploy hook at {service.hook_path} or {global_hook}",
        )

    def _check_hook(self, service: ServiceSettings, domain: str, hook: Path) -> list[CheckResult]:
        results = []
        if os.access(hook, os.X_OK):
            results.append(CheckResult("hook-executable", CheckStatus.PASS, "hook is executable"))
        else:
            results.append(
                CheckResult("hook-executable", CheckStatus.FAIL, f"{hook} is not executable"),
            )

        try:
            body = hook.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            body = ""
            log.warning("Cannot read deploy hook %s: %s", hook, exc)

        if domain.lower().rstrip(".") in body.lower():
            results.append(
                CheckResult("hook-domain", CheckStatus.PASS, f"hook references {domain}"),
            )
        else:
            results.append(
                CheckResult("hook-domain", CheckStatus.FAIL, f"hook does not reference {domain}"),
            )

        restart = self._orchestrator.restart_invocation(service.compose_service)
        if restart in body:
            results.append(CheckResult("hook-restart", CheckStatus.PASS, f"hook runs '{restart}'"))
        else:
            results.append(
                CheckResult("hook-restart", CheckStatus.FAIL, f"hook does not run '{restart}'"),
            )

        if hook == service.hook_path:
            results.append(self._check_hook_link(service))
        else:
            results.append(CheckResult("hook-link", CheckStatus.SKIP, "global hook in use"))
        return results

    def _check_hook_link(self, service: ServiceSettings) -> CheckResult:
        if not self._renewal.link_global_hook:
            return CheckResult(
                "hook-link",
                CheckStatus.SKIP,
                "global hook linking disabled (renewal.link_global_hook)",
            )
        link = self._ca.global_hook_dir / service.global_hook_name
        if not link.is_symlink():
            status_msg = "is not a symlink" if link.exists() else "does not exist"
            return CheckResult("hook-link", CheckStatus.FAIL, f"{link} {status_msg}")
        if link.resolve() != service.hook_path.resolve():
            return CheckResult(
                "hook-link",
                CheckStatus.FAIL,
                f"{link} points to {os.readlink(link)}, expected {service.hook_path}",
            )
        return CheckResult("hook-link", CheckStatus.PASS, f"{link} -> {service.hook_path}")

    def _check_schedule(self, domain: str) -> list[CheckResult]:
        try:
            entries = entries_for(self._schedule.list_entries(), domain)
        except ScheduleStoreError as exc:
            return [
                CheckResult("schedule-entry", CheckStatus.FAIL, exc.detail),
                CheckResult("schedule-hook", CheckStatus.SKIP, "schedule unreadable"),
            ]
        if not entries:
            return [
                CheckResult(
                    "schedule-entry",
                    CheckStatus.FAIL,
                    f"no renewal schedule entry for {domain}",
                ),
                CheckResult("schedule-hook", CheckStatus.SKIP, "no schedule entry"),
            ]
        results = [CheckResult("schedule-entry", CheckStatus.PASS, entries[0])]
        if any(has_deploy_hook(line) for line in entries):
            results.append(
                CheckResult("schedule-hook", CheckStatus.PASS, "entry passes --deploy-hook"),
            )
        else:
            results.append(
                CheckResult(
                    "schedule-hook",
                    CheckStatus.FAIL,
                    "schedule entry has no --deploy-hook; "
                    "renewed certificates will not be deployed",
                ),
            )
        return results

    def _check_expiry(self, lineage: Lineage | None) -> CheckResult:
        if lineage is None:
            return CheckResult("expiry", CheckStatus.SKIP, "no lineage")
        if not lineage.fullchain_path.is_file():
            return CheckResult(
                "expiry",
                CheckStatus.SKIP,
                f"{lineage.fullchain_path} not found",
            )
        try:
            not_after = read_not_after(lineage.fullchain_path)
        except CAClientError as exc:
            return CheckResult("expiry", CheckStatus.WARN, exc.detail)

        days = days_remaining(not_after, self._clock())
        threshold = self._renewal.expiry_warning_days
        if days > threshold:
            return CheckResult(
                "expiry",
                CheckStatus.PASS,
                f"certificate valid for {days} more days",
            )
        if days < 0:
            return CheckResult(
                "expiry",
                CheckStatus.WARN,
                f"certificate expired {-days} days ago",
            )
        return CheckResult(
            "expiry",
            CheckStatus.WARN,
            f"certificate expires in {days} days (threshold {threshold})",
        )

    def _check_deployed_pair(self, service: ServiceSettings) -> CheckResult:
        missing = [str(p) for p in (service.key_path, service.cert_path) if not p.is_file()]
        if missing:
            return CheckResult("deployed-pair", CheckStatus.FAIL, f"missing: {', '.join(missing)}")
        return CheckResult(
            "deployed-pair",
            CheckStatus.PASS,
            f"{service.key_file} and {service.cert_file} in {service.deploy_dir}",
        )

    def _check_scripts_dir(self, service: ServiceSettings) -> CheckResult:
        if service.scripts_dir.is_dir():
            return CheckResult("scripts-dir", CheckStatus.PASS, str(service.scripts_dir))
        return CheckResult(
            "scripts-dir",
            CheckStatus.FAIL,
            f"{service.scripts_dir} does not exist",
        )

    def _check_renewal_log(self, service: ServiceSettings) -> CheckResult:
        if service.renewal_log_path.is_file():
            return CheckResult("renewal-log", CheckStatus.PASS, str(service.renewal_log_path))
        return CheckResult(
            "renewal-log",
            CheckStatus.WARN,
            f"{service.renewal_log_path} not found (normal before the first renewal)",
        )

    def _check_service_running(self, service: ServiceSettings) -> CheckResult:
        try:
            running = self._orchestrator.is_running(service.container_name)
        except OrchestratorError as exc:
            return CheckResult("service-running", CheckStatus.WARN, exc.detail)
        if running:
            return CheckResult(
                "service-running",
                CheckStatus.PASS,
                f"container {service.container_name} is running",
            )
        return CheckResult(
            "service-running",
            CheckStatus.WARN,
            f"container {service.container_name} is not running",
        )

    # -- active tests -------------------------------------------------------

    def dry_run_renewal(self, service: ServiceSettings, domain: str | None = None) -> CheckResult:
        """Ask the CA client to simulate a renewal of the lineage."""
        domain = resolve_domain(service, domain)
        with log_context(service=service.name, domain=domain):
            log.info("Running renewal dry run for %s", domain)
            try:
                self._ca.renew(domain, dry_run=True)
            except CAClientError as exc:
                return CheckResult("dry-run", CheckStatus.FAIL, exc.detail)
            return CheckResult("dry-run", CheckStatus.PASS, "renewal dry run succeeded")

    def test_deploy_hook(
        self,
        service: ServiceSettings,
        domain: str | None = None,
        *,
        restore: bool = True,
    ) -> CheckResult:
        """Invoke the deploy hook directly as certbot would after a renewal.

        The hook is the one ``hook-exists`` resolves: the service's local
        script, else the copy in the global hook directory.

        The deployed pair is backed up to ``*.bak`` first.  With *restore*
        the backups are moved back afterwards; otherwise they are left in
        place next to the freshly deployed files.
        """
        domain = resolve_domain(service, domain)
        with log_context(service=service.name, domain=domain):
            hook, found = self._check_hook_exists(service)
            if hook is None:
                return CheckResult("hook-test", CheckStatus.FAIL, found.message)
            try:
                lineage = self._ca.find_lineage(domain)
            except CAClientError as exc:
                return CheckResult("hook-test", CheckStatus.FAIL, exc.detail)
            if lineage is None:
                return CheckResult(
                    "hook-test",
                    CheckStatus.FAIL,
                    f"no certificate lineage for {domain} to deploy from",
                )

            backups: list[tuple[Path, Path]] = []
            for path in (service.key_path, service.cert_path):
                backup = backup_file(path)
                if backup is not None:
                    backups.append((backup, path))
            try:
                return self._run_hook(service, domain, hook, lineage)
            finally:
                if restore:
                    for backup, path in backups:
                        restore_backup(backup, path)
                    log.info("Restored %d backed up certificate files", len(backups))
                elif backups:
                    log.info("Kept backups: %s", ", ".join(str(b) for b, _ in backups))

    def _run_hook(
        self,
        service: ServiceSettings,
        domain: str,
        hook: Path,
        lineage: Lineage,
    ) -> CheckResult:
        env = {
            **os.environ,
            "RENEWED_DOMAINS": domain,
            "RENEWED_LINEAGE": str(lineage.live_dir),
        }
        log.info("Invoking deploy hook %s", hook)
        try:
            result = run_command([str(hook)], env=env, timeout=self._hook_timeout)
        except (OSError, subprocess.TimeoutExpired) as exc:
            return CheckResult("hook-test", CheckStatus.FAIL, f"cannot run {hook}: {exc}")
        if result.returncode != 0:
            output = (result.stderr or result.stdout or "").strip()
            return CheckResult(
                "hook-test",
                CheckStatus.FAIL,
                f"hook exited {result.returncode}: {output}",
            )

        try:
            running = self._orchestrator.is_running(service.container_name)
        except OrchestratorError as exc:
            return CheckResult("hook-test", CheckStatus.FAIL, exc.detail)
        if not running:
            return CheckResult(
                "hook-test",
                CheckStatus.FAIL,
                f"hook ran but container {service.container_name} is not running",
            )
        return CheckResult(
            "hook-test",
            CheckStatus.PASS,
            f"hook deployed the certificate and {service.container_name} is running",
        )
