"""validate subcommand: renewal setup report plus optional active tests."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from certlifecycle.cli.commands import build_validator
from certlifecycle.core.types import CheckStatus
from certlifecycle.models.validation import ValidationReport

if TYPE_CHECKING:
    from certlifecycle.config.settings import ServiceSettings
    from certlifecycle.models.validation import CheckResult

log = logging.getLogger(__name__)

_LABELS = {
    CheckStatus.PASS: "PASS",
    CheckStatus.FAIL: "FAIL",
    CheckStatus.WARN: "WARN",
    CheckStatus.SKIP: "SKIP",
}


def run_validate(config, service: ServiceSettings, args) -> int:
    """Validate the renewal setup of *service*.  Exit status 1 on any failure."""
    validator = build_validator(config.settings)
    report = validator.validate(service, args.domain)

    extra: list[CheckResult] = []
    if args.dry_run_renewal:
        extra.append(validator.dry_run_renewal(service, args.domain))
    if args.test_hook:
        extra.append(
            validator.test_deploy_hook(service, args.domain, restore=not args.no_restore),
        )
    if extra:
        report = ValidationReport(
            service=report.service,
            domain=report.domain,
            results=report.results + tuple(extra),
        )

    print_report(report)
    return 1 if report.failed else 0


def format_report(report: ValidationReport) -> str:
    width = max((len(r.name) for r in report.results), default=0)
    lines = [f"Renewal validation for {report.service} ({report.domain})"]
    lines.extend(
        f"  [{_LABELS[r.status]}] {r.name.ljust(width)}  {r.message}" for r in report.results
    )
    counts = report.counts()
    lines.append(
        f"Summary: {counts[CheckStatus.PASS]} passed, {counts[CheckStatus.FAIL]} failed, "
        f"{counts[CheckStatus.WARN]} warnings, {counts[CheckStatus.SKIP]} skipped",
    )
    return "\n".join(lines)


def print_report(report: ValidationReport) -> None:
    print(format_report(report))  # noqa: T201
