"""
Helpers for recurring activity occurrences.

A repeating activity is stored once; each occurrence is addressed publicly by
a composite id ``{activity uuid}-{YYYYMMDD}`` and internally by the pair
``(activity_id, occurrence_date)``.
"""

from __future__ import annotations

import calendar
import re
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta
from typing import Optional, Union

from clubhub.db import ActivityRecord, as_utc
from clubhub.errors import InvalidOccurrenceId

UUID_PATTERN = r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}"
OCCURRENCE_ID_PATTERN = re.compile(
    rf"^(?P<uuid>{UUID_PATTERN})(?:-(?P<day>\d{{8}}))?$", re.IGNORECASE
)
DATE_SUFFIX_FORMAT = "%Y%m%d"

DayLike = Union[date, datetime]


@dataclass(frozen=True)
class OccurrenceRef:
    activity_id: str
    occurrence_date: Optional[date] = None

    @property
    def is_occurrence(self) -> bool:
        return self.occurrence_date is not None

    @property
    def public_id(self) -> str:
        if self.occurrence_date is None:
            return self.activity_id
        return compose_occurrence_id(self.activity_id, self.occurrence_date)


def as_day(value: DayLike) -> date:
    if isinstance(value, datetime):
        return as_utc(value).date()
    return value


def compose_occurrence_id(activity_id: str, day: DayLike) -> str:
    if not re.fullmatch(UUID_PATTERN, activity_id or "", flags=re.IGNORECASE):
        raise InvalidOccurrenceId(f"Not an activity UUID: {activity_id!r}")
    return f"{activity_id.lower()}-{as_day(day).strftime(DATE_SUFFIX_FORMAT)}"


def parse_occurrence_id(value: str) -> OccurrenceRef:
    match = OCCURRENCE_ID_PATTERN.match((value or "").strip())
    if not match:
        raise InvalidOccurrenceId(f"Could not extract a valid activity UUID from ID: {value!r}")
    activity_id = match.group("uuid").lower()
    suffix = match.group("day")
    if suffix is None:
        return OccurrenceRef(activity_id=activity_id)
    try:
        day = datetime.strptime(suffix, DATE_SUFFIX_FORMAT).date()
    except ValueError as exc:
        raise InvalidOccurrenceId(f"Invalid occurrence date in ID: {value!r}") from exc
    return OccurrenceRef(activity_id=activity_id, occurrence_date=day)


def base_activity_id(value: str) -> str:
    return parse_occurrence_id(value).activity_id


def _add_months(day: date, months: int) -> date:
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def _sunday_based_weekday(day: date) -> int:
    # 0 = Sunday ... 6 = Saturday
    return (day.weekday() + 1) % 7


def occurrence_instance(activity: ActivityRecord, day: DayLike) -> ActivityRecord:
    """Return a virtual copy of ``activity`` moved to ``day``, keeping its time of day."""
    day = as_day(day)
    start = as_utc(activity.start_time)
    new_start = datetime.combine(day, start.timetz())
    delta = new_start - start
    end_time = as_utc(activity.end_time) + delta if activity.end_time else None
    return replace(
        activity,
        id=compose_occurrence_id(activity.id, day),
        start_time=new_start,
        end_time=end_time,
        lineup_players=list(activity.lineup_players),
        parent_activity_id=activity.id,
        is_recurring_instance=True,
    )


def _occurrence_days(activity: ActivityRecord, until: date):
    first = as_utc(activity.start_time).date()
    if activity.repeat_type == "daily":
        step = 0
        while True:
            day = first + timedelta(days=step)
            if day > until:
                return
            yield day
            step += 1
    elif activity.repeat_type == "weekly" and activity.repeat_days:
        allowed = set(activity.repeat_days)
        day = first
        while day <= until:
            if day == first or _sunday_based_weekday(day) in allowed:
                yield day
            day += timedelta(days=1)
    elif activity.repeat_type == "weekly":
        day = first
        while day <= until:
            yield day
            day += timedelta(weeks=1)
    elif activity.repeat_type == "monthly":
        months = 0
        while True:
            # Offsets are taken from the first day so month-end starts do not drift.
            day = _add_months(first, months)
            if day > until:
                return
            yield day
            months += 1
    else:
        day = first
        while day <= until:
            yield day
            day += timedelta(days=1)


def expand_occurrences(
    activity: ActivityRecord, range_start: DayLike, range_end: DayLike
) -> list[ActivityRecord]:
    """
    Generate the virtual instances of a repeating activity that fall within
    ``[range_start, range_end]`` (inclusive, by calendar day).

    The stored occurrence itself is never included.
    """
    if (
        not activity.is_repeating
        or not activity.repeat_type
        or not activity.repeat_until
        or not activity.id
    ):
        return []

    start_day = as_day(range_start)
    end_day = as_day(range_end)
    until_day = as_day(activity.repeat_until)
    first_day = as_day(activity.start_time)

    if first_day > end_day or start_day > until_day:
        return []

    instances = []
    for day in _occurrence_days(activity, until_day):
        if day == first_day:
            continue
        if day < start_day:
            continue
        if day > end_day:
            break
        instances.append(occurrence_instance(activity, day))
    return instances
