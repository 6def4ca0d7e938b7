"""
Login flows for administrators, coaches and parents.

Each successful login caches a ``Session`` (role payload plus resolved club
id) in the session store; the returned token is what the API expects as a
bearer credential.
"""

from __future__ import annotations

import logging
from typing import Optional

from werkzeug.security import check_password_hash, generate_password_hash

from clubhub.db import AdminRecord, ClubRecord, DbClient, new_id
from clubhub.errors import AlreadyRegistered, AuthenticationError, ValidationFailed
from clubhub.membership import resolve_club_id
from clubhub.sessions import ADMINISTRATOR, COACH, PARENT, Session, SessionStore

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password_hash: str, password: str) -> bool:
    return check_password_hash(password_hash, password)


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


def validate_password(password: str) -> None:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationFailed(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
        )


def start_session(
    store: SessionStore,
    db: DbClient,
    *,
    role: str,
    user_id: str,
    profile_id: str,
    name: str = "",
    club_id: Optional[str] = None,
) -> Session:
    session = Session(
        role=role,
        user_id=user_id,
        profile_id=profile_id,
        club_id=club_id,
        name=name,
    )
    resolve_club_id(session, db)
    if session.club_id:
        club = db.get_club(session.club_id)
        if club and not club.is_active:
            raise AuthenticationError("This club has been suspended")
    store.put(session)
    logger.info("Started %s session for %s", role, profile_id)
    return session


def register_club_admin(
    db: DbClient, *, club_name: str, email: str, password: str, name: str = ""
) -> tuple[ClubRecord, AdminRecord]:
    """Create a club together with its administrator profile."""
    email = normalize_email(email)
    if not club_name or not club_name.strip():
        raise ValidationFailed("Club name is required")
    if not email:
        raise ValidationFailed("Email is required")
    validate_password(password)
    if db.get_admin_by_email(email):
        raise AlreadyRegistered("This email is already registered. Please try logging in instead.")

    user_id = new_id()
    club = db.add_club(ClubRecord(name=club_name.strip(), admin_id=user_id))
    admin = db.add_admin(
        AdminRecord(
            user_id=user_id,
            email=email,
            password_hash=hash_password(password),
            club_id=club.id,
            name=name.strip(),
        )
    )
    logger.info("Registered club %s with administrator %s", club.id, admin.id)
    return club, admin


def login_admin(db: DbClient, store: SessionStore, email: str, password: str) -> Session:
    if not email or not password:
        raise AuthenticationError("Please enter both email and password")
    admin = db.get_admin_by_email(normalize_email(email))
    if not admin or not verify_password(admin.password_hash, password):
        raise AuthenticationError("Invalid email or password")
    session = start_session(
        store,
        db,
        role=ADMINISTRATOR,
        user_id=admin.user_id,
        profile_id=admin.id,
        name=admin.name,
        club_id=admin.club_id,
    )
    if not session.club_id:
        store.delete(session.token)
        raise AuthenticationError("Account not found")
    return session


def login_coach(db: DbClient, store: SessionStore, access_code: str) -> Session:
    code = normalize_code(access_code)
    if not code:
        raise AuthenticationError("Please enter your access code")
    coach = db.get_coach_by_access_code(code)
    if not coach or not coach.is_active:
        raise AuthenticationError("Invalid access code")
    return start_session(
        store,
        db,
        role=COACH,
        user_id=coach.user_id,
        profile_id=coach.id,
        name=coach.name,
        club_id=coach.club_id,
    )


def login_parent(
    db: DbClient, store: SessionStore, phone_number: str, password: str
) -> Session:
    phone_number = (phone_number or "").strip()
    parent = db.get_parent_by_phone(phone_number)
    if not parent or not parent.is_active or not verify_password(parent.password_hash, password or ""):
        raise AuthenticationError("Invalid phone number or password")
    return start_session(
        store,
        db,
        role=PARENT,
        user_id=parent.id,
        profile_id=parent.id,
        name=parent.name,
    )


def logout(store: SessionStore, token: str) -> None:
    store.delete(token)
