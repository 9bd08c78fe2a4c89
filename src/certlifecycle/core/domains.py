"""Domain-name helpers.

Validation of operator-supplied domains and the ``RENEWED_DOMAINS``
membership test the deploy hook performs.  The hook itself is a bash
script, so :func:`renewed_domains_match` is the reference behaviour the
rendered script must agree with.
"""

from __future__ import annotations

import re

from certlifecycle.core.types import DomainMatch

_LABEL_RE = re.compile(r"^[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?$")
_MAX_DOMAIN_LENGTH = 253
_SEPARATORS_RE = re.compile(r"[\s,]+")


def is_valid_domain(domain: str) -> bool:
    """Return ``True`` if *domain* is a syntactically valid DNS name."""
    if not domain or len(domain) > _MAX_DOMAIN_LENGTH:
        return False
    name = domain[:-1] if domain.endswith(".") else domain
    labels = name.split(".")
    if len(labels) < 2:  # noqa: PLR2004
        return False
    return all(_LABEL_RE.match(label) for label in labels)


def split_renewed_domains(value: str | None) -> list[str]:
    """Split a ``RENEWED_DOMAINS`` value on spaces and/or commas."""
    if not value:
        return []
    return [d for d in _SEPARATORS_RE.split(value.strip()) if d]


def renewed_domains_match(
    domain: str,
    renewed_domains: str | None,
    mode: DomainMatch = DomainMatch.TOKEN,
) -> bool:
    """Return whether *domain* is part of a ``RENEWED_DOMAINS`` value.

    ``TOKEN`` compares whole, case-insensitive domain tokens.
    ``SUBSTRING`` reproduces plain containment, under which
    ``example.com`` also matches a renewal of ``sub.example.com``.
    """
    if not renewed_domains:
        return False
    if mode == DomainMatch.SUBSTRING:
        return domain in renewed_domains
    wanted = domain.lower().rstrip(".")
    return any(d.lower().rstrip(".") == wanted for d in split_renewed_domains(renewed_domains))
