"""Certificate authority client subsystem.

Public API::

    from certlifecycle.ca import CertbotClient

    ca = CertbotClient(settings.certbot)
    lineage = ca.find_lineage("minio.example.com")
"""

from certlifecycle.ca.base import CAClient, CAClientError, Lineage
from certlifecycle.ca.certbot import CertbotClient

__all__ = ["CAClient", "CAClientError", "CertbotClient", "Lineage"]
