"""certlifecycle command-line entry point.

Usage::

    certlifecycle -c /etc/certlifecycle/config.yaml --validate-only
    certlifecycle -c config.yaml provision minio
    certlifecycle -c config.yaml provision onprem --manual
    certlifecycle -c config.yaml configure minio
    certlifecycle -c config.yaml setup onprem --domain share.example.com
    certlifecycle -c config.yaml renew minio --force
    certlifecycle -c config.yaml validate minio --dry-run-renewal --test-hook
    certlifecycle -c config.yaml status onprem
    python -m certlifecycle -c config.yaml status minio
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

log = logging.getLogger(__name__)


def _get_version() -> str:
    from certlifecycle import __version__

    return __version__


def _add_service_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("service", help="Service name from the configuration (e.g. minio, onprem).")
    parser.add_argument(
        "--domain",
        default=None,
        help="Domain to use instead of the service's configured domain.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="certlifecycle",
        description="Let's Encrypt certificate lifecycle automation for Docker Compose services",
    )
    parser.add_argument(
        "-c",
        "--config",
        required=True,
        metavar="PATH",
        help="Path to the configuration file (YAML or JSON).",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=False,
        help="Enable debug output (full tracebacks, verbose logging).",
    )
    parser.add_argument(
        "--validate-only",
        action="store_true",
        default=False,
        help="Validate the configuration file and exit.",
    )
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s {_get_version()}",
    )

    subparsers = parser.add_subparsers(dest="command")

    # provision
    provision_parser = subparsers.add_parser(
        "provision",
        help="Install a certificate for a service (existing lineage or new issuance)",
    )
    _add_service_args(provision_parser)
    provision_parser.add_argument(
        "--manual",
        action="store_true",
        default=False,
        help="Use a key/certificate already placed in the deploy directory.",
    )

    # configure
    configure_parser = subparsers.add_parser(
        "configure",
        help="Write the deploy hook and install the daily renewal check",
    )
    _add_service_args(configure_parser)

    # setup
    setup_parser = subparsers.add_parser("setup", help="provision followed by configure")
    _add_service_args(setup_parser)
    setup_parser.add_argument("--manual", action="store_true", default=False)

    # renew
    renew_parser = subparsers.add_parser("renew", help="Run the renewal check now")
    _add_service_args(renew_parser)
    renew_parser.add_argument(
        "--force",
        action="store_true",
        default=False,
        help="Renew even if the certificate is not due.",
    )

    # validate
    validate_parser = subparsers.add_parser(
        "validate",
        help="Check that automatic renewal is wired up",
    )
    _add_service_args(validate_parser)
    validate_parser.add_argument(
        "--dry-run-renewal",
        action="store_true",
        default=False,
        help="Also run a renewal dry run against the CA.",
    )
    validate_parser.add_argument(
        "--test-hook",
        action="store_true",
        default=False,
        help="Also invoke the deploy hook directly (restarts the service).",
    )
    validate_parser.add_argument(
        "--no-restore",
        action="store_true",
        default=False,
        help="Keep the certificates deployed by --test-hook instead of restoring backups.",
    )

    # status
    status_parser = subparsers.add_parser("status", help="Show the lifecycle state")
    _add_service_args(status_parser)

    return parser


def _print_error(message: str) -> None:
    """Print a user-facing error to stderr."""
    print(f"error: {message}", file=sys.stderr)  # noqa: T201


def main(argv: list[str] | None = None) -> None:
    """CLI entry point.  Parses arguments, loads config, runs the command."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    # -- resolve config path ---
    config_path = Path(args.config)
    if not config_path.is_file():
        _print_error(f"configuration file not found: {config_path}")
        sys.exit(1)

    # -- bootstrap logging early (basic stderr until config is loaded) ---
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    # -- load & validate config ---
    from certlifecycle.config import ConfigValidationError, LifecycleConfig

    try:
        config = LifecycleConfig(config_file=config_path)
    except ConfigValidationError as exc:
        _print_error(str(exc))
        sys.exit(1)

    # -- replace bootstrap logging with structured logging ---
    from certlifecycle.logging import configure_logging

    configure_logging(config.settings.logging)
    if args.debug:
        logging.getLogger("certlifecycle").setLevel(logging.DEBUG)

    if args.validate_only:
        _print_settings_summary(config)
        sys.exit(0)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    try:
        service = config.settings.service(args.service)
    except KeyError as exc:
        _print_error(exc.args[0])
        sys.exit(1)

    # -- dispatch subcommand ---
    from certlifecycle.errors import LifecycleError

    try:
        if args.command == "validate":
            from certlifecycle.cli.commands.validate import run_validate

            code = run_validate(config, service, args)
        else:
            from certlifecycle.cli.commands.lifecycle import run_lifecycle

            code = run_lifecycle(config, service, args)
    except LifecycleError as exc:
        if args.debug:
            raise
        _print_error(exc.detail)
        sys.exit(1)

    sys.exit(code)


def _print_settings_summary(config) -> None:
    """Print a short summary of the loaded configuration."""
    s = config.settings
    print(f"Configuration OK: {len(s.services)} service(s)")  # noqa: T201
    print(f"  certbot:   {s.certbot.binary} (config dir {s.certbot.config_dir})")  # noqa: T201
    print(  # noqa: T201
        f"  schedule:  daily at {s.schedule.hour:02d}:{s.schedule.minute:02d} "
        f"via {s.schedule.crontab_binary}",
    )
    print(f"  hook:      domain match '{s.renewal.domain_match}'")  # noqa: T201
    for svc in s.services:
        print(  # noqa: T201
            f"  - {svc.name} ({svc.display_name}): domain={svc.domain or '-'} "
            f"base={svc.base_dir} deploy={svc.deploy_dir}",
        )
