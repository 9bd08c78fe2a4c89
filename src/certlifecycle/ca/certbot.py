"""Certbot CA client.

Drives the ``certbot`` executable as a subprocess:

- ``certbot certificates`` to enumerate lineages,
- ``certbot certonly --standalone`` to obtain a certificate through the
  HTTP-01 challenge on port 80,
- ``certbot renew --cert-name`` for scheduled, manual and dry-run renewals.

Lineages live under ``<config_dir>/live/<name>/``.
"""

from __future__ import annotations

import logging
import re
import shutil
import socket
import subprocess
from pathlib import Path
from typing import TYPE_CHECKING

from certlifecycle.ca.base import CAClient, CAClientError, Lineage
from certlifecycle.core.process import format_command, run_command

if TYPE_CHECKING:
    from collections.abc import Sequence

    from certlifecycle.config.settings import CertbotSettings

log = logging.getLogger(__name__)

_DEFAULT_CONFIG_DIR = "/etc/letsencrypt"
_BLOCK_RE = re.compile(r"(?m)^\s*Certificate Name:\s*")
_BIND_FAILURE_MARKERS = ("Could not bind", "Address already in use")


def parse_certificates_output(text: str) -> list[Lineage]:
    """Parse the output of ``certbot certificates`` into lineages.

    Blocks without both a certificate path and a private key path are
    ignored.
    """
    lineages: list[Lineage] = []
    for block in _BLOCK_RE.split(text)[1:]:
        lines = block.splitlines()
        if not lines:
            continue
        name = lines[0].strip()
        domains: tuple[str, ...] = ()
        cert_path = ""
        key_path = ""
        for raw in lines[1:]:
            line = raw.strip()
            if line.startswith("Domains:"):
                domains = tuple(line.split("Domains:", 1)[1].split())
            elif line.startswith("Certificate Path:"):
                cert_path = line.split("Certificate Path:", 1)[1].strip()
            elif line.startswith("Private Key Path:"):
                key_path = line.split("Private Key Path:", 1)[1].strip()
        if not (name and cert_path and key_path):
            continue
        fullchain = Path(cert_path)
        lineages.append(
            Lineage(
                name=name,
                domains=domains or (name,),
                live_dir=fullchain.parent,
                privkey_path=Path(key_path),
                fullchain_path=fullchain,
            ),
        )
    return lineages


def port_in_use(port: int, host: str = "127.0.0.1", timeout: float = 1.0) -> bool:
    """Return True when something accepts TCP connections on *host*:*port*."""
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except OSError:
        return False


class CertbotClient(CAClient):
    """:class:`CAClient` backed by the certbot command-line tool.

    Parameters
    ----------
    settings:
        The ``certbot`` configuration section.

    """

    def __init__(self, settings: CertbotSettings) -> None:
        self._settings = settings
        self._config_dir = Path(settings.config_dir)

    # -- properties ---------------------------------------------------------

    @property
    def binary(self) -> str:
        return self._settings.binary

    @property
    def config_dir(self) -> Path:
        return self._config_dir

    @property
    def live_dir(self) -> Path:
        return self._config_dir / "live"

    @property
    def global_hook_dir(self) -> Path:
        return self._config_dir / "renewal-hooks" / "deploy"

    # -- installation -------------------------------------------------------

    def is_installed(self) -> bool:
        return shutil.which(self.binary) is not None

    def ensure_installed(self) -> None:
        if self.is_installed():
            return
        if not self._settings.auto_install:
            msg = f"certbot not found at {self.binary} and certbot.auto_install is disabled"
            raise CAClientError(msg)

        log.info("certbot not found at %s, installing", self.binary)
        for step in self._settings.install_command:
            result = self._run(step, what="certbot installation")
            if result.returncode != 0:
                msg = (
                    f"certbot installation step failed ({format_command(step)}): "
                    f"{_tail(result)}"
                )
                raise CAClientError(msg)

        if not self.is_installed():
            msg = f"certbot installation finished but {self.binary} is still missing"
            raise CAClientError(msg)
        log.info("certbot installed")

    # -- lineages -----------------------------------------------------------

    def list_lineages(self) -> list[Lineage]:
        result = self._run(
            [self.binary, "certificates", *self._common_args()],
            what="certbot certificates",
        )
        if result.returncode != 0:
            msg = f"certbot certificates failed: {_tail(result)}"
            raise CAClientError(msg)
        return parse_certificates_output(f"{result.stdout}\n{result.stderr}")

    def find_lineage(self, domain: str) -> Lineage | None:
        """Return the lineage for *domain*.

        The live directory named after the domain wins; otherwise the
        lineage list is searched by name, then by covered domain.  A
        missing certbot means no lineage.
        """
        live = self.live_dir / domain
        if live.is_dir():
            return Lineage(
                name=domain,
                domains=(domain,),
                live_dir=live,
                privkey_path=live / "privkey.pem",
                fullchain_path=live / "fullchain.pem",
            )

        if not self.is_installed():
            log.debug("certbot not installed; no lineage for %s", domain)
            return None

        lineages = self.list_lineages()
        for lineage in lineages:
            if lineage.name == domain:
                return lineage
        for lineage in lineages:
            if domain in lineage.domains:
                return lineage
        return None

    # -- issuance -----------------------------------------------------------

    def check_challenge_port(self) -> None:
        """Fail when another process is listening on the challenge port.

        Raises
        ------
        CAClientError
            If the port accepts connections.

        """
        port = self._settings.challenge_port
        if port_in_use(port):
            msg = (
                f"port {port} is in use; certbot's standalone HTTP-01 challenge "
                "needs it free -- stop the process listening on it and retry"
            )
            raise CAClientError(msg, retryable=True)

    def obtain(self, domain: str) -> Lineage:
        if self._settings.preflight_port_check:
            self.check_challenge_port()

        cmd = [
            self.binary,
            "certonly",
            "--non-interactive",
            "--agree-tos",
            "--standalone",
            "-d",
            domain,
            "--register-unsafely-without-email",
            *self._common_args(),
        ]
        if self._settings.challenge_port != 80:
            cmd += ["--http-01-port", str(self._settings.challenge_port)]

        log.info("Requesting certificate for %s", domain)
        result = self._run(cmd, what="certbot certonly")
        if result.returncode != 0:
            output = _tail(result)
            if any(marker in output for marker in _BIND_FAILURE_MARKERS):
                msg = (
                    f"certbot could not bind port {self._settings.challenge_port} "
                    f"for {domain}: {output}"
                )
                raise CAClientError(msg, retryable=True)
            msg = f"certbot failed to obtain a certificate for {domain}: {output}"
            raise CAClientError(msg)

        lineage = self.find_lineage(domain)
        if lineage is None or not lineage.is_complete():
            where = lineage.live_dir if lineage is not None else self.live_dir / domain
            msg = f"certbot reported success but privkey.pem/fullchain.pem are missing in {where}"
            raise CAClientError(msg)
        log.info("Certificate for %s obtained in %s", domain, lineage.live_dir)
        return lineage

    # -- renewal ------------------------------------------------------------

    def renew_command(
        self,
        domain: str,
        *,
        deploy_hook: str | Path | None = None,
        quiet: bool = False,
        dry_run: bool = False,
        force: bool = False,
    ) -> list[str]:
        """Build the ``certbot renew`` invocation for *domain*."""
        cmd = [self.binary, "renew", "--cert-name", domain]
        if deploy_hook is not None:
            cmd += ["--deploy-hook", str(deploy_hook)]
        if dry_run:
            cmd.append("--dry-run")
        if force:
            cmd.append("--force-renewal")
        if quiet:
            cmd.append("--quiet")
        cmd += self._common_args()
        return cmd

    def renew(
        self,
        domain: str,
        *,
        deploy_hook: str | Path | None = None,
        quiet: bool = False,
        dry_run: bool = False,
        force: bool = False,
    ) -> str:
        cmd = self.renew_command(
            domain,
            deploy_hook=deploy_hook,
            quiet=quiet,
            dry_run=dry_run,
            force=force,
        )
        what = "certbot renew --dry-run" if dry_run else "certbot renew"
        result = self._run(cmd, what=what)
        if result.returncode != 0:
            msg = f"{what} failed for {domain}: {_tail(result)}"
            raise CAClientError(msg)
        return f"{result.stdout}{result.stderr}"

    # -- internals ----------------------------------------------------------

    def _common_args(self) -> list[str]:
        if str(self._config_dir) == _DEFAULT_CONFIG_DIR:
            return []
        return ["--config-dir", str(self._config_dir)]

    def _run(self, cmd: Sequence[str], *, what: str) -> subprocess.CompletedProcess[str]:
        try:
            return run_command(cmd, timeout=self._settings.timeout_seconds)
        except FileNotFoundError as exc:
            msg = f"{what}: executable not found ({cmd[0]})"
            raise CAClientError(msg) from exc
        except subprocess.TimeoutExpired as exc:
            msg = f"{what} timed out after {self._settings.timeout_seconds}s"
            raise CAClientError(msg, retryable=True) from exc


def _tail(result: subprocess.CompletedProcess[str], limit: int = 2000) -> str:
    output = (result.stderr or "").strip() or (result.stdout or "").strip()
    if not output:
        return f"exit status {result.returncode}"
    return output[-limit:]
