"""Abstract base class for the host scheduling store, plus entry helpers.

A schedule entry is one crontab-format line.  Entries are matched to a
domain by command-line token, so ``example.com`` never matches an entry
for ``sub.example.com``.
"""

from __future__ import annotations

import abc
import shlex
from typing import TYPE_CHECKING

from certlifecycle.core.process import format_command

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence


class ScheduleStoreError(Exception):
    """Raised when the scheduling store cannot be read or written."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(detail)


class ScheduleStore(abc.ABC):
    """Base class for scheduling store implementations."""

    @abc.abstractmethod
    def list_entries(self) -> list[str]:
        """Return every entry, comments and variable assignments included."""

    @abc.abstractmethod
    def add_entry(self, line: str) -> None:
        """Append *line* to the store."""

    @abc.abstractmethod
    def remove_entries(self, lines: Iterable[str]) -> None:
        """Remove every entry equal to one of *lines*."""


# ---------------------------------------------------------------------------
# Entry helpers
# ---------------------------------------------------------------------------


def renewal_entry(command: Sequence[str], *, hour: int = 3, minute: int = 0) -> str:
    """Build a daily crontab line running *command* at *hour*:*minute*."""
    return f"{minute} {hour} * * * {format_command(command)}"


def _tokens(line: str) -> list[str]:
    try:
        return shlex.split(line)
    except ValueError:
        return line.split()


def is_comment(line: str) -> bool:
    return line.lstrip().startswith("#")


def references(line: str, domain: str) -> bool:
    """Return True when the command in *line* names *domain* as an argument."""
    if is_comment(line):
        return False
    return any(tok == domain or tok.endswith(f"={domain}") for tok in _tokens(line))


def has_deploy_hook(line: str) -> bool:
    return any(
        tok == "--deploy-hook" or tok.startswith("--deploy-hook=") for tok in _tokens(line)
    )


def entries_for(entries: Iterable[str], domain: str) -> list[str]:
    """Return the entries of *entries* that reference *domain*."""
    return [line for line in entries if references(line, domain)]
