"""
Attendance taking and reporting.

Records are keyed by ``(activity_id, occurrence_date, player_id)``; a recurring
occurrence is addressed through its composite id and never shares records with
another occurrence of the same activity.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Iterable, Mapping, Optional

from clubhub.db import ActivityRecord, AttendanceRecord, DbClient, as_utc
from clubhub.errors import ValidationFailed
from clubhub.occurrences import as_day, compose_occurrence_id, parse_occurrence_id

logger = logging.getLogger(__name__)

STATUSES = ("present", "absent", "excused")
ALL_TYPES = "all"


@dataclass
class AttendanceFormEntry:
    activity_id: str
    player_id: str
    player_name: str
    status: Optional[str] = None


@dataclass
class AttendanceStat:
    activity_id: str
    player_id: str
    status: str
    activity_title: str
    activity_type: str
    occurrence_date: date
    recorded_at: Optional[datetime] = None


@dataclass
class AttendanceSummary:
    total: int = 0
    present: int = 0
    absent: int = 0
    excused: int = 0
    attendance_rate: float = 0.0
    trend: list[tuple[date, float]] = field(default_factory=list)


def fetch_attendance(db: DbClient, activity_ref: str) -> list[AttendanceRecord]:
    ref = parse_occurrence_id(activity_ref)
    return db.list_attendance(ref.activity_id, ref.occurrence_date)


def save_attendance(
    db: DbClient,
    activity_ref: str,
    statuses: Mapping[str, Optional[str]],
    recorded_by: Optional[str] = None,
) -> list[AttendanceRecord]:
    """Upsert one record per player; players mapped to ``None`` are left untouched."""
    ref = parse_occurrence_id(activity_ref)
    records = []
    for player_id, status in statuses.items():
        if status is None:
            continue
        if status not in STATUSES:
            raise ValidationFailed(f"Unknown attendance status: {status}")
        records.append(
            AttendanceRecord(
                activity_id=ref.activity_id,
                occurrence_date=ref.occurrence_date,
                player_id=player_id,
                status=status,
                recorded_by=recorded_by,
            )
        )
    if records:
        db.upsert_attendance(records)
        logger.info("Saved %d attendance records for %s", len(records), ref.public_id)
    return records


def initialize_attendance_form(
    db: DbClient, activity_id: str, team_id: str, day: Optional[date] = None
) -> list[AttendanceFormEntry]:
    ref = parse_occurrence_id(activity_id)
    day = day or ref.occurrence_date
    form_id = compose_occurrence_id(ref.activity_id, day) if day else ref.activity_id
    return [
        AttendanceFormEntry(activity_id=form_id, player_id=player.id, player_name=player.name)
        for player in db.list_players(team_id=team_id)
    ]


def _in_window(day: date, start: Optional[date], end: Optional[date]) -> bool:
    if start and day < start:
        return False
    if end and day > end:
        return False
    return True


def _enrich(
    records: Iterable[AttendanceRecord],
    activities: Mapping[str, ActivityRecord],
    start: Optional[date],
    end: Optional[date],
    activity_type: Optional[str],
) -> list[AttendanceStat]:
    stats = []
    for record in records:
        activity = activities.get(record.activity_id)
        if activity is None:
            continue
        if activity_type and activity_type != ALL_TYPES and activity.type != activity_type:
            continue
        day = record.occurrence_date or as_day(activity.start_time)
        if not _in_window(day, start, end):
            continue
        stats.append(
            AttendanceStat(
                activity_id=(
                    compose_occurrence_id(activity.id, record.occurrence_date)
                    if record.occurrence_date
                    else activity.id
                ),
                player_id=record.player_id,
                status=record.status,
                activity_title=activity.title,
                activity_type=activity.type,
                occurrence_date=day,
                recorded_at=as_utc(record.recorded_at),
            )
        )
    stats.sort(key=lambda stat: stat.occurrence_date)
    return stats


def _load_activities(db: DbClient, activity_ids: Iterable[str]) -> dict[str, ActivityRecord]:
    activities = {}
    for activity_id in set(activity_ids):
        activity = db.get_activity(activity_id)
        if activity:
            activities[activity_id] = activity
    return activities


def fetch_player_attendance_stats(
    db: DbClient,
    player_id: str,
    start: Optional[date] = None,
    end: Optional[date] = None,
    activity_type: Optional[str] = None,
) -> list[AttendanceStat]:
    records = db.list_attendance_for_players([player_id])
    activities = _load_activities(db, (record.activity_id for record in records))
    return _enrich(records, activities, start, end, activity_type)


def fetch_team_attendance_stats(
    db: DbClient,
    team_id: str,
    start: Optional[date] = None,
    end: Optional[date] = None,
    activity_type: Optional[str] = None,
) -> list[AttendanceStat]:
    players = db.list_players(team_id=team_id)
    if not players:
        return []
    activities = {activity.id: activity for activity in db.list_activities(team_id=team_id)}
    if not activities:
        return []
    records = [
        record
        for record in db.list_attendance_for_players(player.id for player in players)
        if record.activity_id in activities
    ]
    return _enrich(records, activities, start, end, activity_type)


def _rate(present: int, total: int) -> float:
    if not total:
        return 0.0
    return round(present / total * 100, 1)


def summarize_attendance(records: Iterable) -> AttendanceSummary:
    """
    Totals per status, the overall attendance rate (percent, one decimal) and a
    per-day rate trend. Accepts stats or raw records.
    """
    summary = AttendanceSummary()
    by_day: dict[date, list[str]] = defaultdict(list)
    for record in records:
        summary.total += 1
        if record.status == "present":
            summary.present += 1
        elif record.status == "absent":
            summary.absent += 1
        elif record.status == "excused":
            summary.excused += 1
        day = record.occurrence_date
        if day is None:
            day = as_day(record.recorded_at)
        by_day[day].append(record.status)

    summary.attendance_rate = _rate(summary.present, summary.total)
    summary.trend = [
        (day, _rate(statuses.count("present"), len(statuses)))
        for day, statuses in sorted(by_day.items())
    ]
    return summary
