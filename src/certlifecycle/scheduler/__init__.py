"""Scheduling store subsystem."""

from certlifecycle.scheduler.base import (
    ScheduleStore,
    ScheduleStoreError,
    entries_for,
    has_deploy_hook,
    references,
    renewal_entry,
)
from certlifecycle.scheduler.crontab import CrontabStore

__all__ = [
    "CrontabStore",
    "ScheduleStore",
    "ScheduleStoreError",
    "entries_for",
    "has_deploy_hook",
    "references",
    "renewal_entry",
]
