"""provision / configure / setup / renew / status subcommands."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from certlifecycle.ca.cert_utils import days_remaining
from certlifecycle.cli.commands import build_manager
from certlifecycle.services.lifecycle import resolve_domain

if TYPE_CHECKING:
    from certlifecycle.config.settings import ServiceSettings
    from certlifecycle.models.certificate import CertificatePair
    from certlifecycle.services.lifecycle import CertificateLifecycleManager

log = logging.getLogger(__name__)


def run_lifecycle(config, service: ServiceSettings, args) -> int:
    """Handle the lifecycle subcommands.  Returns the exit status."""
    manager = build_manager(config.settings)
    command = args.command

    if command == "provision":
        _provision(manager, service, args)
    elif command == "configure":
        _configure(manager, service, args)
    elif command == "setup":
        _provision(manager, service, args)
        _configure(manager, service, args)
    elif command == "renew":
        output = manager.renew_now(service, args.domain, force=args.force)
        if output.strip():
            print(output.rstrip())  # noqa: T201
        print(f"Renewal check for {service.display_name} completed")  # noqa: T201
    elif command == "status":
        _status(manager, service, args)
    else:
        return 1
    return 0


def _provision(manager: CertificateLifecycleManager, service: ServiceSettings, args) -> None:
    if args.manual:
        pair = manager.provision_manual(service)
    else:
        pair = manager.provision(service, args.domain)
    _print_pair(pair)


def _configure(manager: CertificateLifecycleManager, service: ServiceSettings, args) -> None:
    manager.configure_renewal(service, args.domain)
    print(f"Deploy hook:    {service.hook_path}")  # noqa: T201
    print(f"Renewal log:    {service.renewal_log_path}")  # noqa: T201
    print("Automatic renewal configured")  # noqa: T201


def _print_pair(pair: CertificatePair) -> None:
    print(f"Private key:    {pair.key_path}")  # noqa: T201
    print(f"Certificate:    {pair.cert_path}")  # noqa: T201
    if pair.not_after is not None:
        print(f"Expires:        {pair.not_after:%Y-%m-%d %H:%M} UTC")  # noqa: T201


def _status(manager: CertificateLifecycleManager, service: ServiceSettings, args) -> None:
    domain = resolve_domain(service, args.domain)
    state = manager.state(service, domain)
    print(f"Service:        {service.name} ({service.display_name})")  # noqa: T201
    print(f"Domain:         {domain}")  # noqa: T201
    print(f"State:          {state}")  # noqa: T201

    pair = manager.deployed_pair(service)
    if pair is None:
        print(f"Certificate:    not deployed in {service.deploy_dir}")  # noqa: T201
    else:
        _print_pair(pair)
        if pair.not_after is not None:
            days = days_remaining(pair.not_after, datetime.now(UTC))
            print(f"Days remaining: {days}")  # noqa: T201

    hook = "present" if service.hook_path.is_file() else "missing"
    print(f"Deploy hook:    {service.hook_path} ({hook})")  # noqa: T201
