"""Validation result entities."""

from __future__ import annotations

from dataclasses import dataclass, field

from certlifecycle.core.types import CheckStatus


@dataclass(frozen=True)
class CheckResult:
    name: str
    status: CheckStatus
    message: str


@dataclass(frozen=True)
class ValidationReport:
    """Ordered results of one validation pass for a service/domain."""

    service: str
    domain: str
    results: tuple[CheckResult, ...] = field(default_factory=tuple)

    @property
    def failed(self) -> bool:
        return any(r.status == CheckStatus.FAIL for r in self.results)

    def result(self, name: str) -> CheckResult:
        """Return the result of the check called *name*.

        Raises :class:`KeyError` when no such check ran.
        """
        for r in self.results:
            if r.name == name:
                return r
        raise KeyError(name)

    def by_status(self, status: CheckStatus) -> list[CheckResult]:
        return [r for r in self.results if r.status == status]

    def counts(self) -> dict[CheckStatus, int]:
        return {s: len(self.by_status(s)) for s in CheckStatus}
