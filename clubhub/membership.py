"""
Club and team resolution for a session.

Every lookup walks a short chain of sources and stops at the first hit. A
backend failure at one step is logged and the chain moves on; when nothing
matches the caller gets ``None`` (or an empty list).
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from clubhub.db import DbClient
from clubhub.errors import NotInClubError
from clubhub.sessions import ADMINISTRATOR, COACH, PARENT, Session, SessionStore

logger = logging.getLogger(__name__)


def _attempt(step: str, lookup: Callable[[], Optional[str]]) -> Optional[str]:
    try:
        value = lookup()
    except Exception:
        logger.exception("Club lookup step %s failed", step)
        return None
    if not value:
        logger.debug("Club lookup step %s found nothing", step)
    return value or None


def _admin_club(session: Session, db: DbClient) -> Optional[str]:
    club = db.get_club_by_admin(session.user_id)
    return club.id if club else None


def _admin_profile_club(session: Session, db: DbClient) -> Optional[str]:
    admin = db.get_admin_by_user(session.user_id)
    return admin.club_id if admin else None


def _coach_club(session: Session, db: DbClient) -> Optional[str]:
    coach = db.get_coach(session.profile_id)
    return coach.club_id if coach else None


def _coach_team_club(session: Session, db: DbClient) -> Optional[str]:
    for team_id, _ in db.get_coach_teams(session.profile_id):
        team = db.get_team(team_id)
        if team:
            return team.club_id
    return None


def _parent_club(session: Session, db: DbClient) -> Optional[str]:
    for child in db.list_children(session.profile_id):
        team = db.get_team(child.team_id)
        if team:
            return team.club_id
    return None


def resolve_club_id(
    session: Session, db: DbClient, store: Optional[SessionStore] = None
) -> Optional[str]:
    """
    Return the club a session belongs to.

    Order: the id cached on the session, then role-specific lookups (admin
    club/profile, coach row, coach teams, parent's children). A freshly
    resolved id is written back to the session cache when ``store`` is given.
    """
    if session.club_id:
        return session.club_id

    steps: list[tuple[str, Callable[[], Optional[str]]]] = []
    if session.role == ADMINISTRATOR:
        steps.append(("admin_club", lambda: _admin_club(session, db)))
        steps.append(("admin_profile", lambda: _admin_profile_club(session, db)))
    elif session.role == COACH:
        steps.append(("coach", lambda: _coach_club(session, db)))
        steps.append(("coach_teams", lambda: _coach_team_club(session, db)))
    elif session.role == PARENT:
        steps.append(("parent_children", lambda: _parent_club(session, db)))

    for step, lookup in steps:
        club_id = _attempt(step, lookup)
        if club_id:
            session.club_id = club_id
            if store is not None:
                store.put(session)
            return club_id

    logger.warning("No club found for %s session %s", session.role, session.profile_id)
    return None


def require_club_id(
    session: Session, db: DbClient, store: Optional[SessionStore] = None
) -> str:
    club_id = resolve_club_id(session, db, store)
    if not club_id:
        raise NotInClubError()
    return club_id


def get_coach_teams(db: DbClient, coach_id: str) -> list[tuple[str, str]]:
    try:
        return db.get_coach_teams(coach_id)
    except Exception:
        logger.exception("Error fetching teams for coach %s", coach_id)
        return []


def resolve_team_ids(session: Session, db: DbClient) -> list[str]:
    """Teams visible to a session: all club teams, assigned teams, or children's teams."""
    try:
        if session.role == ADMINISTRATOR:
            club_id = resolve_club_id(session, db)
            if not club_id:
                return []
            return [team.id for team in db.list_teams(club_id)]
        if session.role == COACH:
            return [team_id for team_id, _ in get_coach_teams(db, session.profile_id)]
        if session.role == PARENT:
            team_ids: list[str] = []
            for child in db.list_children(session.profile_id):
                if child.team_id not in team_ids:
                    team_ids.append(child.team_id)
            return team_ids
    except Exception:
        logger.exception("Error resolving teams for %s session", session.role)
    return []
