"""
Weekly Grouping

Buckets a published instance list into calendar weeks with totals, the
shape the paychecks and deposits screens render. Instances without a
date go into a separate "undated" bucket instead of being dropped.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable

from pydantic import BaseModel, Field

from household_tracker.models.finance import Instance

MONDAY = 0
SUNDAY = 6


def week_start(day: date, week_starts_on: int = SUNDAY) -> date:
    """First day of the week containing `day` (weekday numbers as date.weekday())."""
    return day - timedelta(days=(day.weekday() - week_starts_on) % 7)


class WeekGroup(BaseModel):
    """Instances falling in one calendar week."""

    start_date: date
    end_date: date
    instances: list[Instance] = Field(default_factory=list)
    total: Decimal = Decimal("0")

    @property
    def label(self) -> str:
        """e.g. "Jan 7 - Jan 13"."""
        return f"{self.start_date:%b} {self.start_date.day} - {self.end_date:%b} {self.end_date.day}"


class WeeklyBreakdown(BaseModel):
    """All week groups (oldest first) plus the undated bucket."""

    groups: list[WeekGroup] = Field(default_factory=list)
    undated: list[Instance] = Field(default_factory=list)
    undated_total: Decimal = Decimal("0")

    @property
    def total(self) -> Decimal:
        return sum((g.total for g in self.groups), self.undated_total)


def group_by_week(
    instances: Iterable[Instance],
    week_starts_on: int = SUNDAY,
) -> WeeklyBreakdown:
    """
    Group instances by calendar week.

    Groups are sorted oldest first; inside a group instances are ordered
    by date, keeping their original relative order for equal dates.
    """
    if not 0 <= week_starts_on <= 6:
        raise ValueError(f"week_starts_on must be 0-6, got {week_starts_on}")

    weeks: dict[date, list[Instance]] = {}
    undated: list[Instance] = []

    for instance in instances:
        if instance.date is None:
            undated.append(instance)
            continue
        weeks.setdefault(week_start(instance.date, week_starts_on), []).append(instance)

    groups = []
    for start in sorted(weeks):
        members = sorted(weeks[start], key=lambda i: i.date)
        groups.append(WeekGroup(
            start_date=start,
            end_date=start + timedelta(days=6),
            instances=members,
            total=sum((i.amount for i in members), Decimal("0")),
        ))

    return WeeklyBreakdown(
        groups=groups,
        undated=undated,
        undated_total=sum((i.amount for i in undated), Decimal("0")),
    )
