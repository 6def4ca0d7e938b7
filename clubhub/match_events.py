"""
Goals, assists, cards and man-of-the-match awards recorded for a game.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable, Optional

from clubhub.db import DbClient, EventRecord, new_id, utcnow
from clubhub.errors import ValidationFailed
from clubhub.occurrences import base_activity_id

logger = logging.getLogger(__name__)

EVENT_TYPES = ("goal", "assist", "yellow_card", "red_card", "man_of_the_match")
HALVES = ("first", "second")
LEGACY_EVENT_TYPES = {"yellow": "yellow_card", "red": "red_card"}


def migrate_event_type(event_type: Optional[str]) -> str:
    """Map legacy card names onto current types; anything unrecognized counts as a goal."""
    if event_type in EVENT_TYPES:
        return event_type
    if event_type in LEGACY_EVENT_TYPES:
        return LEGACY_EVENT_TYPES[event_type]
    logger.debug("Unknown event type %r treated as goal", event_type)
    return "goal"


def _check(event: EventRecord) -> None:
    if event.event_type not in EVENT_TYPES:
        raise ValidationFailed(f"Unknown event type: {event.event_type}")
    if event.half is not None and event.half not in HALVES:
        raise ValidationFailed(f"Unknown half: {event.half}")
    if event.minute is not None and event.minute < 0:
        raise ValidationFailed("Minute cannot be negative")


def get_events_for_activity(db: DbClient, activity_id: str) -> list[EventRecord]:
    events = db.list_events(base_activity_id(activity_id))
    return [replace(event, event_type=migrate_event_type(event.event_type)) for event in events]


def add_event(db: DbClient, activity_id: str, event: EventRecord, user_id: Optional[str] = None) -> EventRecord:
    event = replace(
        event,
        activity_id=base_activity_id(activity_id),
        created_by=user_id or event.created_by,
    )
    _check(event)
    return db.add_events([event])[0]


def replace_events_for_activity(
    db: DbClient,
    activity_id: str,
    events: Iterable[EventRecord],
    user_id: Optional[str] = None,
) -> list[EventRecord]:
    """Drop every event of the activity and store ``events`` under fresh ids."""
    base_id = base_activity_id(activity_id)
    fresh = [
        replace(
            event,
            id=new_id(),
            activity_id=base_id,
            created_by=user_id,
            created_at=utcnow(),
        )
        for event in events
    ]
    for event in fresh:
        _check(event)

    removed = db.delete_events(base_id)
    logger.info("Replacing %d events with %d for activity %s", removed, len(fresh), base_id)
    if not fresh:
        return []
    return db.add_events(fresh)


def delete_events_for_activity(db: DbClient, activity_id: str) -> int:
    return db.delete_events(base_activity_id(activity_id))
