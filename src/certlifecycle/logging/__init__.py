"""Logging subsystem for certlifecycle.

Public API::

    from certlifecycle.logging import configure_logging, log_context

    configure_logging(settings.logging)
    with log_context(service="minio", domain="minio.example.com"):
        ...
"""

from certlifecycle.logging.setup import configure_logging, log_context

__all__ = ["configure_logging", "log_context"]
