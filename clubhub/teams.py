"""
Team, coach and player management for club administrators.
"""

from __future__ import annotations

import logging
import secrets
import string
from datetime import date
from typing import Callable, Optional

from clubhub.db import CoachRecord, DbClient, PlayerRecord, TeamRecord
from clubhub.errors import NotFoundError, PermissionDenied, ValidationFailed

logger = logging.getLogger(__name__)

ACCESS_CODE_LENGTH = 6
ACCESS_CODE_ALPHABET = string.ascii_uppercase + string.digits
MAX_CODE_ATTEMPTS = 20


def generate_access_code(is_taken: Callable[[str], bool]) -> str:
    for _ in range(MAX_CODE_ATTEMPTS):
        code = "".join(
            secrets.choice(ACCESS_CODE_ALPHABET) for _ in range(ACCESS_CODE_LENGTH)
        )
        if not is_taken(code):
            return code
    raise RuntimeError("Could not generate a unique access code")


def create_team(
    db: DbClient, club_id: str, name: str, age_group: Optional[str] = None
) -> TeamRecord:
    if not name or not name.strip():
        raise ValidationFailed("Team name is required")
    code = generate_access_code(lambda c: db.get_team_by_access_code(c) is not None)
    team = db.add_team(
        TeamRecord(club_id=club_id, name=name.strip(), age_group=age_group, access_code=code)
    )
    logger.info("Created team %s in club %s", team.id, club_id)
    return team


def get_club_team(db: DbClient, club_id: str, team_id: str) -> TeamRecord:
    team = db.get_team(team_id)
    if not team or team.club_id != club_id:
        raise NotFoundError("Team not found")
    return team


def list_teams(db: DbClient, club_id: str) -> list[TeamRecord]:
    return db.list_teams(club_id)


def create_coach(
    db: DbClient, club_id: str, name: str, phone_number: Optional[str] = None
) -> CoachRecord:
    if not name or not name.strip():
        raise ValidationFailed("Coach name is required")
    code = generate_access_code(lambda c: db.get_coach_by_access_code(c) is not None)
    coach = db.add_coach(
        CoachRecord(
            club_id=club_id,
            name=name.strip(),
            phone_number=phone_number,
            access_code=code,
        )
    )
    logger.info("Created coach %s in club %s", coach.id, club_id)
    return coach


def assign_coach(db: DbClient, club_id: str, coach_id: str, team_id: str) -> None:
    coach = db.get_coach(coach_id)
    if not coach or coach.club_id != club_id:
        raise NotFoundError("Coach not found")
    get_club_team(db, club_id, team_id)
    db.assign_coach_team(coach_id, team_id)


def create_player(
    db: DbClient,
    club_id: str,
    team_id: str,
    name: str,
    birth_date: Optional[date] = None,
    parent_id: Optional[str] = None,
) -> PlayerRecord:
    if not name or not name.strip():
        raise ValidationFailed("Player name is required")
    get_club_team(db, club_id, team_id)
    return db.add_player(
        PlayerRecord(
            club_id=club_id,
            team_id=team_id,
            name=name.strip(),
            birth_date=birth_date,
            parent_id=parent_id,
        )
    )


def get_players_by_team(db: DbClient, team_id: str) -> list[PlayerRecord]:
    """Active players of a team ordered by name."""
    return db.list_players(team_id=team_id)


def deactivate_player(db: DbClient, club_id: str, player_id: str) -> PlayerRecord:
    player = db.get_player(player_id)
    if not player:
        raise NotFoundError("Player not found")
    if player.club_id != club_id:
        raise PermissionDenied("Player belongs to another club")
    return db.update_player(player_id, {"is_active": False})
