"""Lifecycle and validation services."""

from certlifecycle.services.lifecycle import CertificateLifecycleManager, resolve_domain
from certlifecycle.services.validation import RenewalValidator

__all__ = ["CertificateLifecycleManager", "RenewalValidator", "resolve_domain"]
