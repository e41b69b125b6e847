"""Five-field cron schedules evaluated in UTC.

Fields are ``minute hour day-of-month month day-of-week``; expressions are
parsed and iterated by croniter, so lists, ranges, steps and names work as
in classic cron. When both day fields are restricted a day matches if
either does.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

from croniter import CroniterError, croniter


@dataclass(frozen=True)
class CronSchedule:
    expression: str

    @classmethod
    def parse(cls, expression: str) -> CronSchedule:
        parts = expression.split()
        if len(parts) != 5:
            raise ValueError(f"Cron expression must have 5 fields, got {len(parts)}: {expression!r}")
        if not croniter.is_valid(expression):
            raise ValueError(f"Invalid cron expression {expression!r}")
        return cls(expression=" ".join(parts))

    def matches(self, moment: datetime) -> bool:
        return croniter.match(self.expression, _as_utc(moment))

    def next_after(self, moment: datetime) -> datetime:
        """Return the first matching minute strictly after *moment* (UTC)."""
        try:
            return croniter(self.expression, _as_utc(moment)).get_next(datetime)
        except CroniterError as exc:
            raise ValueError(f"Cron expression {self.expression!r} never fires") from exc


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)
