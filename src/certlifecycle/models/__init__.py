"""Entity models for certlifecycle.

All models are frozen dataclasses.
"""

from certlifecycle.models.certificate import CertificatePair
from certlifecycle.models.validation import CheckResult, ValidationReport

__all__ = ["CertificatePair", "CheckResult", "ValidationReport"]
