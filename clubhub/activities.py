"""
Scheduled activities (trainings, games, tournaments) and their recurring occurrences.
"""

from __future__ import annotations

import logging
from dataclasses import fields, replace
from datetime import datetime
from typing import Optional

from clubhub.db import ActivityRecord, DbClient, as_utc
from clubhub.errors import NotFoundError, ValidationFailed
from clubhub.occurrences import (
    as_day,
    expand_occurrences,
    occurrence_instance,
    parse_occurrence_id,
)

logger = logging.getLogger(__name__)

ACTIVITY_TYPES = ("training", "game", "tournament", "other")
REPEAT_TYPES = ("daily", "weekly", "monthly")

EDITABLE_FIELDS = {
    f.name
    for f in fields(ActivityRecord)
    if f.name
    not in {
        "id",
        "club_id",
        "created_by",
        "created_at",
        "parent_activity_id",
        "is_recurring_instance",
        "team_name",
    }
}
DATETIME_FIELDS = ("start_time", "end_time", "repeat_until")
REQUIRED_FIELDS = (
    "title",
    "type",
    "start_time",
    "location",
    "is_public",
    "is_repeating",
    "lineup_players",
)


def _normalize(values: dict) -> dict:
    values = dict(values)
    for key in DATETIME_FIELDS:
        if isinstance(values.get(key), datetime):
            values[key] = as_utc(values[key])
    return values


def _validate(activity: ActivityRecord) -> ActivityRecord:
    if not activity.title or not activity.title.strip():
        raise ValidationFailed("Please enter a title")
    if activity.type not in ACTIVITY_TYPES:
        raise ValidationFailed(f"Unknown activity type: {activity.type}")
    if activity.end_time and activity.end_time < activity.start_time:
        raise ValidationFailed("End time must be after start time")
    if not activity.is_repeating:
        return activity
    if activity.repeat_type not in REPEAT_TYPES:
        raise ValidationFailed("Please choose how the activity repeats")
    if not activity.repeat_until:
        raise ValidationFailed("Please choose when the repeat ends")
    if as_day(activity.repeat_until) < as_day(activity.start_time):
        raise ValidationFailed("Repeat end must not be before the first occurrence")
    if activity.repeat_days:
        if any(day not in range(7) for day in activity.repeat_days):
            raise ValidationFailed("Repeat days must be between 0 (Sunday) and 6 (Saturday)")
        activity.repeat_days = sorted(set(activity.repeat_days))
    elif activity.repeat_type == "weekly":
        activity.repeat_days = [(as_day(activity.start_time).weekday() + 1) % 7]
    return activity


def _check_team(db: DbClient, club_id: str, team_id: Optional[str]) -> None:
    if team_id is None:
        return
    team = db.get_team(team_id)
    if not team or team.club_id != club_id:
        raise NotFoundError("Team not found")


def _stored_activity(
    db: DbClient, club_id: str, activity_id: str, allow_occurrence: bool = False
) -> ActivityRecord:
    ref = parse_occurrence_id(activity_id)
    if ref.is_occurrence and not allow_occurrence:
        raise ValidationFailed("Edit or delete the recurring activity itself, not one occurrence")
    activity = db.get_activity(ref.activity_id)
    if not activity or activity.club_id != club_id:
        raise NotFoundError("Activity not found")
    return activity


def create_activity(
    db: DbClient, club_id: str, created_by: str, data: dict
) -> ActivityRecord:
    unknown = set(data) - EDITABLE_FIELDS
    if unknown:
        raise ValidationFailed(f"Unknown fields: {sorted(unknown)}")
    activity = ActivityRecord(club_id=club_id, created_by=created_by, **_normalize(data))
    _check_team(db, club_id, activity.team_id)
    stored = db.add_activity(_validate(activity))
    logger.info("Created %s activity %s in club %s", stored.type, stored.id, club_id)
    return stored


def update_activity(
    db: DbClient, club_id: str, activity_id: str, changes: dict
) -> ActivityRecord:
    unknown = set(changes) - EDITABLE_FIELDS
    if unknown:
        raise ValidationFailed(f"Unknown fields: {sorted(unknown)}")
    cleared = sorted(key for key in REQUIRED_FIELDS if key in changes and changes[key] is None)
    if cleared:
        raise ValidationFailed(f"Fields cannot be cleared: {cleared}")
    current = _stored_activity(db, club_id, activity_id)
    changes = _normalize(changes)
    _check_team(db, club_id, changes.get("team_id"))
    merged = _validate(replace(current, **changes))
    changes = {key: getattr(merged, key) for key in set(changes) | {"repeat_days"}}
    updated = db.update_activity(current.id, changes)
    if not updated:
        raise NotFoundError("Activity not found")
    return updated


def delete_activity(db: DbClient, club_id: str, activity_id: str) -> None:
    activity = _stored_activity(db, club_id, activity_id)
    db.delete_activity(activity.id)
    db.delete_events(activity.id)
    logger.info("Deleted activity %s", activity.id)


def get_activities(db: DbClient, club_id: str) -> list[ActivityRecord]:
    return db.list_activities(club_id=club_id)


def get_team_activities(db: DbClient, club_id: str, team_id: str) -> list[ActivityRecord]:
    return db.list_activities(club_id=club_id, team_id=team_id)


def _attach_team_names(db: DbClient, activities: list[ActivityRecord]) -> None:
    names: dict[str, Optional[str]] = {}
    for activity in activities:
        if not activity.team_id:
            continue
        if activity.team_id not in names:
            team = db.get_team(activity.team_id)
            names[activity.team_id] = team.name if team else None
        activity.team_name = names[activity.team_id]


def get_activities_by_date_range(
    db: DbClient,
    club_id: str,
    start: datetime,
    end: datetime,
    team_id: Optional[str] = None,
) -> list[ActivityRecord]:
    """
    Stored activities plus the virtual occurrences of repeating ones whose
    start falls in ``[start, end]`` by calendar day, ordered by start time.
    """
    start = as_utc(start)
    end = as_utc(end)
    stored = db.list_activities(club_id=club_id, team_id=team_id, since=start)

    expanded = list(stored)
    for activity in stored:
        if activity.is_repeating:
            expanded.extend(expand_occurrences(activity, start, end))

    start_day, end_day = start.date(), end.date()
    in_range = [
        activity
        for activity in expanded
        if start_day <= as_day(activity.start_time) <= end_day
    ]
    in_range.sort(key=lambda activity: activity.start_time)
    _attach_team_names(db, in_range)
    return in_range


def get_activity_by_id(db: DbClient, club_id: str, activity_id: str) -> ActivityRecord:
    """
    Look up a stored activity, or build the virtual instance for a composite
    occurrence id from its parent.
    """
    ref = parse_occurrence_id(activity_id)
    activity = db.get_activity(ref.activity_id)
    if not activity or activity.club_id != club_id:
        if ref.is_occurrence:
            raise NotFoundError("Parent activity not found")
        raise NotFoundError("Activity not found")
    if ref.is_occurrence:
        activity = occurrence_instance(activity, ref.occurrence_date)
    _attach_team_names(db, [activity])
    return activity


def update_game_score(
    db: DbClient, club_id: str, activity_id: str, home_score: int, away_score: int
) -> ActivityRecord:
    if home_score < 0 or away_score < 0:
        raise ValidationFailed("Scores cannot be negative")
    activity = _stored_activity(db, club_id, activity_id, allow_occurrence=True)
    updated = db.update_activity(
        activity.id, {"home_score": home_score, "away_score": away_score}
    )
    if not updated:
        raise NotFoundError("Activity not found")
    return updated
