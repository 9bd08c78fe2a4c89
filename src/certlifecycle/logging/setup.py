"""Structured logging configuration for certlifecycle.

Provides JSON and text formatters, a service-context filter that
stamps the service and domain currently being worked on onto every
log record, and a one-call ``configure_logging`` function driven by
config settings.
"""

from __future__ import annotations

import json
import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

    from certlifecycle.config.settings import LoggingSettings

# Attributes that are part of the standard LogRecord; everything
# else is considered "extra" and gets included in structured output.
_STANDARD_ATTRS = frozenset(
    {
        "args",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "message",
        "module",
        "msecs",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "taskName",
        "thread",
        "threadName",
        # Context attributes (handled explicitly):
        "service",
        "domain",
    }
)

_current_service: ContextVar[str | None] = ContextVar("certlifecycle_service", default=None)
_current_domain: ContextVar[str | None] = ContextVar("certlifecycle_domain", default=None)


@contextmanager
def log_context(*, service: str | None = None, domain: str | None = None) -> Iterator[None]:
    """Tag every record logged inside the block with *service* / *domain*."""
    svc_token = _current_service.set(service)
    dom_token = _current_domain.set(domain)
    try:
        yield
    finally:
        _current_domain.reset(dom_token)
        _current_service.reset(svc_token)


# ---------------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------------


class StructuredFormatter(logging.Formatter):
    """JSON-lines formatter for machine consumption.

    Every record becomes a single JSON object on one line containing
    the standard fields plus any *extra* attributes passed by the
    caller or injected by filters.
    """

    def format(self, record: logging.LogRecord) -> str:
        record.message = record.getMessage()

        data: dict = {
            "timestamp": datetime.fromtimestamp(
                record.created,
                tz=UTC,
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.message,
        }

        service = getattr(record, "service", None)
        if service not in (None, "-"):
            data["service"] = service

        domain = getattr(record, "domain", None)
        if domain not in (None, "-"):
            data["domain"] = domain

        # Caller-supplied extra fields
        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and not key.startswith("_"):
                data.setdefault(key, value)

        if record.exc_info and record.exc_info[0] is not None:
            data["exception"] = self.formatException(record.exc_info)

        if record.stack_info:
            data["stack_info"] = self.formatStack(record.stack_info)

        return json.dumps(data, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable formatter for console use."""

    _FMT = "%(asctime)s %(levelname)-8s [%(service)s] %(domain)s %(name)s: %(message)s"

    def __init__(self) -> None:
        super().__init__(fmt=self._FMT, datefmt="%Y-%m-%d %H:%M:%S")


# ---------------------------------------------------------------------------
# Filter
# ---------------------------------------------------------------------------


class ServiceContextFilter(logging.Filter):
    """Inject the active service / domain into every log record.

    Values come from :func:`log_context`; outside of one both attributes
    fall back to ``"-"``.  Values passed explicitly through ``extra=``
    win over the context.
    """

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        if not hasattr(record, "service"):
            record.service = _current_service.get() or "-"  # type: ignore[attr-defined]
        if not hasattr(record, "domain"):
            record.domain = _current_domain.get() or "-"  # type: ignore[attr-defined]
        return True


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def configure_logging(settings: LoggingSettings) -> logging.Logger:
    """Configure the ``certlifecycle`` logger hierarchy from settings.

    Replaces any bootstrap handlers with properly formatted output on
    stderr, plus a rotating file handler when ``settings.file`` is set.

    Returns the root ``certlifecycle`` logger.
    """
    level = getattr(logging, settings.level.upper(), logging.INFO)

    root = logging.getLogger("certlifecycle")
    root.setLevel(level)
    root.handlers.clear()
    root.propagate = False

    formatter: logging.Formatter
    formatter = StructuredFormatter() if settings.format == "json" else TextFormatter()

    ctx_filter = ServiceContextFilter()

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    console.addFilter(ctx_filter)
    root.addHandler(console)

    if settings.file:
        try:
            from logging.handlers import RotatingFileHandler

            fh = RotatingFileHandler(
                settings.file,
                maxBytes=settings.max_file_size_bytes,
                backupCount=settings.backup_count,
            )
            fh.setFormatter(formatter)
            fh.addFilter(ctx_filter)
            root.addHandler(fh)
        except OSError as exc:
            root.warning(
                "Could not open log file %s: %s",
                settings.file,
                exc,
            )

    return root
