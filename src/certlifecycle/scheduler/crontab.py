"""Crontab-backed scheduling store for the invoking user."""

from __future__ import annotations

import logging
import subprocess
from typing import TYPE_CHECKING

from certlifecycle.core.process import run_command
from certlifecycle.scheduler.base import ScheduleStore, ScheduleStoreError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from certlifecycle.config.settings import ScheduleSettings

log = logging.getLogger(__name__)

_TIMEOUT_SECONDS = 30


class CrontabStore(ScheduleStore):
    """Reads with ``crontab -l`` and rewrites the whole table with ``crontab -``.

    A user without a crontab is treated as having an empty one.
    """

    def __init__(self, settings: ScheduleSettings) -> None:
        self._binary = settings.crontab_binary

    def list_entries(self) -> list[str]:
        result = self._run([self._binary, "-l"])
        if result.returncode != 0:
            if "no crontab" in (result.stderr or "").lower():
                return []
            msg = f"crontab -l failed: {(result.stderr or '').strip() or result.returncode}"
            raise ScheduleStoreError(msg)
        return [line for line in result.stdout.splitlines() if line.strip()]

    def add_entry(self, line: str) -> None:
        entries = self.list_entries()
        entries.append(line)
        self._write(entries)
        log.info("Added crontab entry: %s", line)

    def remove_entries(self, lines: Iterable[str]) -> None:
        doomed = set(lines)
        if not doomed:
            return
        entries = self.list_entries()
        kept = [line for line in entries if line not in doomed]
        if len(kept) == len(entries):
            return
        self._write(kept)
        log.info("Removed %d crontab entries", len(entries) - len(kept))

    def _write(self, entries: list[str]) -> None:
        content = "".join(f"{line}\n" for line in entries)
        result = self._run([self._binary, "-"], input_text=content)
        if result.returncode != 0:
            msg = f"crontab install failed: {(result.stderr or '').strip() or result.returncode}"
            raise ScheduleStoreError(msg)

    def _run(
        self,
        cmd: list[str],
        input_text: str | None = None,
    ) -> subprocess.CompletedProcess[str]:
        try:
            return run_command(cmd, timeout=_TIMEOUT_SECONDS, input_text=input_text)
        except FileNotFoundError as exc:
            msg = f"executable not found: {cmd[0]}"
            raise ScheduleStoreError(msg) from exc
        except subprocess.TimeoutExpired as exc:
            msg = f"{cmd[0]} timed out after {_TIMEOUT_SECONDS}s"
            raise ScheduleStoreError(msg) from exc
