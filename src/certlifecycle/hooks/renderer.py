"""Jinja2 renderer for per-service certbot deploy hooks.

The hook is a standalone bash script so that certbot can run it without
this package being importable (cron runs certbot with a minimal
environment).
"""

from __future__ import annotations

import shlex
from typing import TYPE_CHECKING

from jinja2 import Environment, PackageLoader, StrictUndefined

from certlifecycle.core.types import DomainMatch

if TYPE_CHECKING:
    from pathlib import Path

    from certlifecycle.config.settings import ServiceSettings

HOOK_TEMPLATE = "cert-deploy-hook.sh.j2"


class HookRenderer:
    """Renders the deploy hook script for one service."""

    def __init__(self) -> None:
        self._env = Environment(
            loader=PackageLoader("certlifecycle.hooks", "templates"),
            autoescape=False,  # noqa: S701
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
            undefined=StrictUndefined,
        )
        self._env.filters["shquote"] = lambda value: shlex.quote(str(value))

    def render(
        self,
        service: ServiceSettings,
        *,
        domain: str,
        lineage_dir: str | Path,
        restart_command: str,
        domain_match: DomainMatch = DomainMatch.TOKEN,
    ) -> str:
        """Render the hook script for *service* and *domain*.

        Parameters
        ----------
        service:
            Service whose certificate files and container the hook manages.
        domain:
            Domain whose renewals trigger the hook.
        lineage_dir:
            Live lineage directory, used when certbot does not set
            ``RENEWED_LINEAGE`` (direct invocation).
        restart_command:
            Shell command restarting the service, run from ``base_dir``.
        domain_match:
            How ``RENEWED_DOMAINS`` is matched against *domain*.

        """
        template = self._env.get_template(HOOK_TEMPLATE)
        return template.render(
            service_name=service.name,
            display_name=service.display_name,
            domain=domain.lower().rstrip("."),
            base_dir=service.base_dir,
            deploy_dir=service.deploy_dir,
            key_file=service.key_file,
            cert_file=service.cert_file,
            log_path=str(service.renewal_log_path),
            lineage_dir=str(lineage_dir),
            restart_command=restart_command,
            domain_match=DomainMatch(domain_match).value,
        )
