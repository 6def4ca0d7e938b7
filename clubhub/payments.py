"""
Monthly payment status per player.

Stored statuses are ``paid``/``not_paid``; callers see ``paid``/``unpaid``.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timezone
from typing import Optional

from clubhub.db import DbClient, PaymentRecord, PlayerRecord
from clubhub.errors import NotFoundError, ValidationFailed

logger = logging.getLogger(__name__)

PAID = "paid"
NOT_PAID = "not_paid"
UNPAID = "unpaid"


def to_display_status(stored: Optional[str]) -> str:
    return PAID if stored == PAID else UNPAID


def to_stored_status(display: str) -> str:
    if display == PAID:
        return PAID
    if display in (UNPAID, NOT_PAID):
        return NOT_PAID
    raise ValidationFailed(f"Unknown payment status: {display}")


def previous_month(year: int, month: int) -> tuple[int, int]:
    if month == 1:
        return year - 1, 12
    return year, month - 1


def get_player_payment_status(db: DbClient, player_id: str, today: date) -> Optional[str]:
    """
    Current month, then previous month, then the legacy player column. A value
    found only in the legacy column is written back as this month's record.
    """
    current = db.get_monthly_payment(player_id, today.year, today.month)
    if current:
        return to_display_status(current.status)

    year, month = previous_month(today.year, today.month)
    previous = db.get_monthly_payment(player_id, year, month)
    if previous:
        return to_display_status(previous.status)

    player = db.get_player(player_id)
    if not player:
        return None
    status = to_display_status(player.payment_status)
    db.upsert_monthly_payment(
        PaymentRecord(
            player_id=player_id,
            year=today.year,
            month=today.month,
            status=to_stored_status(status),
        )
    )
    logger.info("Migrated legacy payment status for player %s", player_id)
    return status


def update_player_payment_status(
    db: DbClient,
    player_id: str,
    status: str,
    updated_by: Optional[str],
    today: date,
) -> PlayerRecord:
    stored = to_stored_status(status)
    if not db.get_player(player_id):
        raise NotFoundError("Player not found")
    db.upsert_monthly_payment(
        PaymentRecord(
            player_id=player_id,
            year=today.year,
            month=today.month,
            status=stored,
            updated_by=updated_by,
        )
    )
    paid_at = datetime.combine(today, time(), tzinfo=timezone.utc) if stored == PAID else None
    return db.update_player(
        player_id, {"payment_status": stored, "last_payment_date": paid_at}
    )


def get_payment_history(db: DbClient, player_id: str, today: date) -> list[PaymentRecord]:
    """Records of last year and this year, newest month first."""
    return db.list_monthly_payments(player_id, since_year=today.year - 1)
