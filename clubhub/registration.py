"""
Parent self-registration and child enrollment through team access codes.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from clubhub.auth import hash_password, normalize_code, normalize_email, start_session, validate_password
from clubhub.db import ChildRecord, DbClient, ParentRecord, PlayerRecord, TeamRecord
from clubhub.errors import AlreadyRegistered, InvalidTeamCode, NotFoundError, ValidationFailed
from clubhub.sessions import PARENT, Session, SessionStore

logger = logging.getLogger(__name__)

VISA_STATUSES = ("valid", "expired", "pending", "none")


def verify_team_code(db: DbClient, code: str) -> TeamRecord:
    code = normalize_code(code)
    if not code:
        raise InvalidTeamCode()
    team = db.get_team_by_access_code(code)
    if not team or not team.is_active:
        raise InvalidTeamCode()
    club = db.get_club(team.club_id)
    if not club or not club.is_active:
        raise InvalidTeamCode()
    return team


def register_parent(
    db: DbClient,
    store: SessionStore,
    *,
    name: str,
    email: str,
    phone_number: str,
    password: str,
) -> tuple[ParentRecord, Session]:
    """Create a parent account and log it in."""
    name = (name or "").strip()
    email = normalize_email(email)
    phone_number = (phone_number or "").strip()
    if not name:
        raise ValidationFailed("Please enter your name")
    if not email:
        raise ValidationFailed("Please enter your email")
    if not phone_number:
        raise ValidationFailed("Please enter your phone number")
    validate_password(password)

    if db.get_parent_by_email(email):
        raise AlreadyRegistered("This email is already registered. Please try logging in instead.")
    if db.get_parent_by_phone(phone_number):
        raise AlreadyRegistered("This phone number is already registered. Please try logging in instead.")

    parent = db.add_parent(
        ParentRecord(
            name=name,
            email=email,
            phone_number=phone_number,
            password_hash=hash_password(password),
        )
    )
    logger.info("Registered parent %s", parent.id)
    session = start_session(
        store,
        db,
        role=PARENT,
        user_id=parent.id,
        profile_id=parent.id,
        name=parent.name,
    )
    return parent, session


def add_child(
    db: DbClient,
    parent_id: str,
    *,
    name: str,
    team_code: str,
    birth_date: Optional[date] = None,
    medical_visa_status: Optional[str] = None,
    medical_visa_issue_date: Optional[date] = None,
) -> ChildRecord:
    """
    Enroll a child: validates the team code, creates an active player in the
    team's club and links it to a new parent-child row.
    """
    name = (name or "").strip()
    if not name:
        raise ValidationFailed("Please enter the child's name")
    if medical_visa_status is not None and medical_visa_status not in VISA_STATUSES:
        raise ValidationFailed(f"Unknown medical visa status: {medical_visa_status}")
    if medical_visa_status == "valid" and not medical_visa_issue_date:
        raise ValidationFailed("Please enter the medical visa issue date")
    if not db.get_parent(parent_id):
        raise NotFoundError("Parent not found")

    team = verify_team_code(db, team_code)
    child = db.add_child(
        ChildRecord(
            parent_id=parent_id,
            team_id=team.id,
            full_name=name,
            birth_date=birth_date,
            medical_visa_status=medical_visa_status,
            medical_visa_issue_date=medical_visa_issue_date,
        )
    )
    try:
        player = db.add_player(
            PlayerRecord(
                club_id=team.club_id,
                team_id=team.id,
                name=name,
                birth_date=birth_date,
                parent_id=parent_id,
            )
        )
        linked = db.update_child(child.id, {"player_id": player.id})
    except Exception:
        # A child without a player row must stay inactive.
        logger.exception("Enrolling child %s failed; deactivating it", child.id)
        db.update_child(child.id, {"is_active": False})
        raise
    logger.info("Enrolled child %s as player %s in team %s", child.id, player.id, team.id)
    return linked


def list_children(db: DbClient, parent_id: str) -> list[ChildRecord]:
    return db.list_children(parent_id)
