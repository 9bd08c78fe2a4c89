"""Certificate inspection helpers.

Expiry is read from the first (leaf) certificate of a PEM chain.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from cryptography import x509

from certlifecycle.ca.base import CAClientError

if TYPE_CHECKING:
    from pathlib import Path


def load_leaf_certificate(path: Path) -> x509.Certificate:
    """Parse the leaf certificate at the top of the PEM chain at *path*.

    Raises
    ------
    CAClientError
        If the file cannot be read or holds no PEM certificate.

    """
    try:
        data = path.read_bytes()
    except OSError as exc:
        msg = f"cannot read certificate {path}: {exc}"
        raise CAClientError(msg) from exc
    try:
        certs = x509.load_pem_x509_certificates(data)
    except ValueError as exc:
        msg = f"{path} does not contain a PEM certificate: {exc}"
        raise CAClientError(msg) from exc
    return certs[0]


def read_not_after(path: Path) -> datetime:
    """Return the ``notAfter`` of the leaf certificate at *path* (UTC)."""
    return load_leaf_certificate(path).not_valid_after_utc


def days_remaining(not_after: datetime, now: datetime | None = None) -> int:
    """Whole days from *now* until *not_after*, rounded down.

    Negative once the certificate has expired.
    """
    now = now or datetime.now(UTC)
    return (not_after - now).days
