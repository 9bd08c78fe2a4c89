"""Configuration loader for certlifecycle.

Lifecycle::

    # 1. CLI loads the file once at startup
    cfg = LifecycleConfig(config_file="/etc/certlifecycle/config.yaml")

    # 2. Typed access
    cfg.settings.schedule.hour
    cfg.settings.service("minio").deploy_dir

Loading order: read YAML/JSON, resolve ``${VAR}`` references, validate
against the bundled JSON Schema, run cross-field checks, build the frozen
settings tree.
"""

from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml
from jsonschema import Draft202012Validator

from certlifecycle.config.settings import LifecycleSettings, build_settings
from certlifecycle.core.domains import is_valid_domain
from certlifecycle.core.types import ServiceKind

_SCHEMA_PATH = Path(__file__).parent / "schema.json"

_ENV_RE = re.compile(
    r"^\$\{([^}:]+?)(?::-(.*))?\}$",
    re.DOTALL,
)

_KNOWN_KINDS = frozenset(k.value for k in ServiceKind)

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Validation error collector
# ---------------------------------------------------------------------------


class ConfigValidationError(Exception):
    """Raised when schema or cross-field validation finds one or more problems."""

    def __init__(self, errors: list[str]) -> None:
        """Store *errors* and build a human-readable message."""
        self.errors = errors
        body = "\n".join(f"  - {e}" for e in errors)
        super().__init__(f"Configuration validation failed:\n{body}")


# ---------------------------------------------------------------------------
# Environment variable resolution
# ---------------------------------------------------------------------------


def _resolve_value(value: str, path: str) -> str:
    """Replace ``${VAR}`` or ``${VAR:-default}`` with env var value."""
    match = _ENV_RE.match(value)
    if match is None:
        return value
    var_name = match.group(1)
    fallback = match.group(2)
    resolved = os.environ.get(var_name)
    if resolved is not None:
        return resolved
    if fallback is not None:
        return fallback
    raise ConfigValidationError(
        [
            f"Environment variable '${{{var_name}}}' referenced "
            f"at '{path}' is not set and has no default",
        ],
    )


def _resolve_env_vars(
    data: Any,  # noqa: ANN401
    path: str = "",
) -> None:
    """Walk *data* in-place and resolve ``${VAR}``/``${VAR:-default}`` strings."""
    if isinstance(data, dict):
        for key in data:
            child_path = f"{path}.{key}" if path else key
            if isinstance(data[key], str):
                data[key] = _resolve_value(data[key], child_path)
            elif isinstance(data[key], (dict, list)):
                _resolve_env_vars(data[key], child_path)
    elif isinstance(data, list):
        for idx, item in enumerate(data):
            child_path = f"{path}[{idx}]"
            if isinstance(item, str):
                data[idx] = _resolve_value(item, child_path)
            elif isinstance(item, (dict, list)):
                _resolve_env_vars(item, child_path)


def _load_schema() -> dict:
    with _SCHEMA_PATH.open(encoding="utf-8") as f:
        return json.load(f)


# ---------------------------------------------------------------------------
# Config class
# ---------------------------------------------------------------------------


class LifecycleConfig:
    """Loaded, validated configuration.

    After construction the typed settings tree is available at
    :pyattr:`settings` and the raw dict via :pyattr:`data` /
    :pymeth:`get`.
    """

    def __init__(self, *, config_file: str | Path) -> None:
        self._source = Path(config_file)
        self._data = self._load()
        self._validate_schema()
        self.additional_checks()
        self._settings: LifecycleSettings = build_settings(self._data)

    # -- lifecycle ------------------------------------------------------------

    def _load(self) -> dict:
        """Read the config file then resolve ``${VAR}`` env-var references.

        Env-var resolution runs **before** schema validation so that
        substituted values are checked against the schema's constraints.
        """
        try:
            with self._source.open(encoding="utf-8") as f:
                if self._source.suffix in (".yaml", ".yml"):
                    data = yaml.safe_load(f)
                else:
                    data = json.load(f)
        except (OSError, yaml.YAMLError, json.JSONDecodeError) as exc:
            raise ConfigValidationError(
                [f"cannot read configuration file {self._source}: {exc}"],
            ) from exc

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigValidationError(
                [f"{self._source}: top level must be a mapping"],
            )
        _resolve_env_vars(data)
        return data

    def _validate_schema(self) -> None:
        validator = Draft202012Validator(_load_schema())
        errors = [
            f"{'.'.join(str(p) for p in err.absolute_path) or '<root>'}: {err.message}"
            for err in sorted(validator.iter_errors(self._data), key=lambda e: list(e.path))
        ]
        if errors:
            raise ConfigValidationError(errors)

    # -- typed access -------------------------------------------------------

    @property
    def settings(self) -> LifecycleSettings:
        """Fully-typed, frozen settings tree."""
        return self._settings

    # -- cross-field validation ---------------------------------------------

    def additional_checks(self) -> None:
        """Semantic & cross-field validation, run after the schema passes."""
        errors: list[str] = []
        warnings: list[str] = []

        services = self._data.get("services") or []
        seen_names: set[str] = set()
        seen_base_dirs: dict[str, str] = {}

        for idx, svc in enumerate(services):
            name = svc.get("name", "")
            if name in seen_names:
                errors.append(f"services[{idx}].name '{name}' is duplicated")
            seen_names.add(name)

            if "kind" not in svc and name not in _KNOWN_KINDS:
                errors.append(
                    f"services[{idx}].kind is required when the service name "
                    f"is not one of {sorted(_KNOWN_KINDS)}",
                )

            domain = svc.get("domain", "")
            if domain and not is_valid_domain(domain):
                errors.append(
                    f"services[{idx}].domain '{domain}' is not a valid DNS name",
                )
            elif not domain:
                warnings.append(
                    f"services[{idx}] ('{name}') has no domain -- "
                    "it must be supplied with --domain on every command",
                )

            base_dir = svc.get("base_dir", "")
            if base_dir and not Path(base_dir).is_absolute():
                errors.append(
                    f"services[{idx}].base_dir must be an absolute path (got '{base_dir}')",
                )
            if base_dir in seen_base_dirs:
                errors.append(
                    f"services[{idx}].base_dir '{base_dir}' is shared with service "
                    f"'{seen_base_dirs[base_dir]}' -- hooks and renewal logs would collide",
                )
            seen_base_dirs[base_dir] = name

        certbot = self._data.get("certbot") or {}
        if certbot.get("config_dir") and not Path(certbot["config_dir"]).is_absolute():
            errors.append("certbot.config_dir must be an absolute path")

        renewal = self._data.get("renewal") or {}
        if renewal.get("domain_match") == "substring":
            warnings.append(
                "renewal.domain_match is 'substring' -- a hook for example.com "
                "also fires for renewals of sub.example.com",
            )

        for w in warnings:
            log.warning("Config warning: %s", w)

        if errors:
            raise ConfigValidationError(errors)

    def __repr__(self) -> str:
        """Return a developer-friendly representation."""
        return f"<LifecycleConfig config_file={self._source}>"
