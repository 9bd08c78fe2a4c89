"""Enumerated types shared across the lifecycle modules.

All enums inherit from :class:`enum.StrEnum` so their ``.value`` is a
plain string that renders cleanly in reports and JSON log lines.
"""

from __future__ import annotations

from enum import StrEnum

# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------


class ServiceKind(StrEnum):
    MINIO = "minio"
    ONPREM = "onprem"


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


class LifecycleState(StrEnum):
    UNPROVISIONED = "unprovisioned"
    PROVISIONED_MANUAL = "provisioned-manual"
    PROVISIONED_CA = "provisioned-ca"
    RENEWAL_CONFIGURED = "renewal-configured"


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class CheckStatus(StrEnum):
    PASS = "pass"
    FAIL = "fail"
    WARN = "warn"
    SKIP = "skip"


# ---------------------------------------------------------------------------
# Hook domain matching
# ---------------------------------------------------------------------------


class DomainMatch(StrEnum):
    TOKEN = "token"
    SUBSTRING = "substring"
