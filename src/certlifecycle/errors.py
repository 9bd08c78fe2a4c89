"""Error taxonomy for the certificate lifecycle.

Operations raise one of the :class:`LifecycleError` subclasses; the
underlying collaborator failure (certbot, docker, crontab) is chained as
``__cause__`` so the operator sees both the step that failed and why.

Validation findings are *not* exceptions -- they are collected as
:class:`~certlifecycle.core.types.CheckStatus` results so a single pass
reports everything.
"""

from __future__ import annotations


class LifecycleError(Exception):
    """Base class for fatal lifecycle errors.

    Parameters
    ----------
    detail:
        Human-readable description of the failure.

    """

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(detail)


class ProvisionFailed(LifecycleError):
    """Certificate issuance or lookup failed (network, port conflict, rate limit)."""


class ConfigurationFailed(LifecycleError):
    """The deploy hook or the renewal schedule could not be written."""


class RenewalFailed(LifecycleError):
    """An operator-requested renewal run failed."""
