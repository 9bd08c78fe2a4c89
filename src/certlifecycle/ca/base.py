"""Abstract base class for certificate authority clients.

A CA client owns the certificate lineages on this host: it lists them,
obtains new ones and renews existing ones.  The lifecycle manager treats
it as a black box; the only implementation shipped is
:class:`~certlifecycle.ca.certbot.CertbotClient`.
"""

from __future__ import annotations

import abc
from dataclasses import dataclass
from pathlib import Path


class CAClientError(Exception):
    """Raised by CA clients when an external invocation fails.

    Parameters
    ----------
    detail:
        Human-readable description of the failure.
    retryable:
        Whether the failure is transient and the operation may be retried.

    """

    def __init__(self, detail: str, *, retryable: bool = False) -> None:
        self.detail = detail
        self.retryable = retryable
        super().__init__(detail)


@dataclass(frozen=True)
class Lineage:
    """One certificate lineage held by the CA client.

    Attributes
    ----------
    name:
        Lineage (certificate) name, normally the primary domain.
    domains:
        Every DNS name covered by the certificate.
    live_dir:
        Directory holding the current ``privkey.pem`` / ``fullchain.pem``.
    privkey_path:
        Path to the current private key.
    fullchain_path:
        Path to the current leaf + intermediates chain.

    """

    name: str
    domains: tuple[str, ...]
    live_dir: Path
    privkey_path: Path
    fullchain_path: Path

    def is_complete(self) -> bool:
        """Return True when both the key and the chain exist on disk."""
        return self.privkey_path.is_file() and self.fullchain_path.is_file()


class CAClient(abc.ABC):
    """Base class for CA client implementations."""

    @property
    @abc.abstractmethod
    def binary(self) -> str:
        """Path of the client executable, as written into schedule entries."""

    @property
    @abc.abstractmethod
    def live_dir(self) -> Path:
        """Directory holding one subdirectory per lineage."""

    @property
    @abc.abstractmethod
    def global_hook_dir(self) -> Path:
        """Directory whose executables run after every successful renewal."""

    @abc.abstractmethod
    def ensure_installed(self) -> None:
        """Install the client when it is missing.

        Raises
        ------
        CAClientError
            If the client is missing and cannot be installed.

        """

    @abc.abstractmethod
    def list_lineages(self) -> list[Lineage]:
        """Return every lineage the client knows about."""

    @abc.abstractmethod
    def find_lineage(self, domain: str) -> Lineage | None:
        """Return the lineage named *domain*, or ``None``."""

    @abc.abstractmethod
    def obtain(self, domain: str) -> Lineage:
        """Obtain a new certificate for *domain*.

        Raises
        ------
        CAClientError
            On any issuance failure, including a missing key or chain
            after the client reported success.

        """

    @abc.abstractmethod
    def renew_command(
        self,
        domain: str,
        *,
        deploy_hook: str | Path | None = None,
        quiet: bool = False,
        dry_run: bool = False,
        force: bool = False,
    ) -> list[str]:
        """Return the argv that :meth:`renew` runs, for scheduling."""

    @abc.abstractmethod
    def renew(
        self,
        domain: str,
        *,
        deploy_hook: str | Path | None = None,
        quiet: bool = False,
        dry_run: bool = False,
        force: bool = False,
    ) -> str:
        """Run a renewal check for the lineage named *domain*.

        Returns the client's combined output.

        Raises
        ------
        CAClientError
            If the renewal (or dry run) fails.

        """
