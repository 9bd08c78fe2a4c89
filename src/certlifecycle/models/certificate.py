"""Deployed certificate pair entity."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime
    from pathlib import Path


@dataclass(frozen=True)
class CertificatePair:
    key_path: Path
    cert_path: Path
    not_after: datetime | None = None
