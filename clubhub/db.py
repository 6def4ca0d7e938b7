"""
Database abstraction for the hosted Postgres store and an in-memory test implementation.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, fields, replace
from datetime import date, datetime, timezone
from typing import Dict, Iterable, Optional, Protocol

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Integer,
    String,
    Text,
    UniqueConstraint,
    create_engine,
    func,
    or_,
    select,
)
from sqlalchemy.orm import Session, declarative_base, sessionmaker


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive values (SQLite drops tzinfo) and normalize aware ones."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass
class ClubRecord:
    name: str
    admin_id: Optional[str] = None
    is_active: bool = True
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class AdminRecord:
    user_id: str
    email: str
    password_hash: str
    club_id: Optional[str] = None
    name: str = ""
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class CoachRecord:
    club_id: str
    name: str
    access_code: str
    phone_number: Optional[str] = None
    user_id: str = field(default_factory=new_id)
    is_active: bool = True
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class TeamRecord:
    club_id: str
    name: str
    access_code: str
    age_group: Optional[str] = None
    is_active: bool = True
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class PlayerRecord:
    club_id: str
    team_id: str
    name: str
    birth_date: Optional[date] = None
    parent_id: Optional[str] = None
    is_active: bool = True
    payment_status: Optional[str] = None
    last_payment_date: Optional[datetime] = None
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class ParentRecord:
    name: str
    email: str
    phone_number: str
    password_hash: str
    phone_verified: bool = False
    is_active: bool = True
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class ChildRecord:
    parent_id: str
    team_id: str
    full_name: str
    birth_date: Optional[date] = None
    player_id: Optional[str] = None
    medical_visa_status: Optional[str] = None
    medical_visa_issue_date: Optional[date] = None
    is_active: bool = True
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class ActivityRecord:
    club_id: str
    title: str
    start_time: datetime
    type: str = "training"
    location: str = ""
    team_id: Optional[str] = None
    end_time: Optional[datetime] = None
    created_by: Optional[str] = None
    is_public: bool = False
    additional_info: Optional[str] = None
    is_repeating: bool = False
    repeat_type: Optional[str] = None
    repeat_days: Optional[list[int]] = None
    repeat_until: Optional[datetime] = None
    home_away: Optional[str] = None
    home_score: Optional[int] = None
    away_score: Optional[int] = None
    lineup_players: list[str] = field(default_factory=list)
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)
    # Virtual fields, never persisted.
    parent_activity_id: Optional[str] = None
    is_recurring_instance: bool = False
    team_name: Optional[str] = None


@dataclass
class AttendanceRecord:
    activity_id: str
    player_id: str
    status: str
    occurrence_date: Optional[date] = None
    recorded_by: Optional[str] = None
    recorded_at: datetime = field(default_factory=utcnow)
    id: str = field(default_factory=new_id)

    @property
    def key(self) -> tuple[str, Optional[date], str]:
        return (self.activity_id, self.occurrence_date, self.player_id)


@dataclass
class EventRecord:
    activity_id: str
    event_type: str
    player_id: Optional[str] = None
    assist_player_id: Optional[str] = None
    minute: Optional[int] = None
    half: Optional[str] = None
    created_by: Optional[str] = None
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class PostRecord:
    club_id: str
    content: str
    title: Optional[str] = None
    author_id: Optional[str] = None
    author_name: Optional[str] = None
    author_role: Optional[str] = None
    is_general: bool = True
    is_active: bool = True
    media_urls: list[str] = field(default_factory=list)
    team_ids: list[str] = field(default_factory=list)
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass
class CommentRecord:
    post_id: str
    content: str
    author_id: Optional[str] = None
    author_name: Optional[str] = None
    author_role: Optional[str] = None
    is_active: bool = True
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class PaymentRecord:
    player_id: str
    year: int
    month: int
    status: str
    updated_by: Optional[str] = None
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def key(self) -> tuple[str, int, int]:
        return (self.player_id, self.year, self.month)


class DbClient(Protocol):
    """Interface for the backing data store."""

    # Clubs and administrators
    def add_club(self, club: ClubRecord) -> ClubRecord:
        ...

    def get_club(self, club_id: str) -> Optional[ClubRecord]:
        ...

    def get_club_by_admin(self, admin_user_id: str) -> Optional[ClubRecord]:
        ...

    def add_admin(self, admin: AdminRecord) -> AdminRecord:
        ...

    def get_admin_by_email(self, email: str) -> Optional[AdminRecord]:
        ...

    def get_admin_by_user(self, user_id: str) -> Optional[AdminRecord]:
        ...

    # Coaches
    def add_coach(self, coach: CoachRecord) -> CoachRecord:
        ...

    def get_coach(self, coach_id: str) -> Optional[CoachRecord]:
        ...

    def get_coach_by_access_code(self, access_code: str) -> Optional[CoachRecord]:
        ...

    def assign_coach_team(self, coach_id: str, team_id: str) -> None:
        ...

    def get_coach_teams(self, coach_id: str) -> list[tuple[str, str]]:
        ...

    # Teams and players
    def add_team(self, team: TeamRecord) -> TeamRecord:
        ...

    def get_team(self, team_id: str) -> Optional[TeamRecord]:
        ...

    def get_team_by_access_code(self, access_code: str) -> Optional[TeamRecord]:
        ...

    def list_teams(self, club_id: str, active_only: bool = True) -> list[TeamRecord]:
        ...

    def add_player(self, player: PlayerRecord) -> PlayerRecord:
        ...

    def get_player(self, player_id: str) -> Optional[PlayerRecord]:
        ...

    def list_players(
        self,
        *,
        team_id: Optional[str] = None,
        player_ids: Optional[Iterable[str]] = None,
        active_only: bool = True,
    ) -> list[PlayerRecord]:
        ...

    def update_player(self, player_id: str, changes: dict) -> Optional[PlayerRecord]:
        ...

    # Parents and children
    def add_parent(self, parent: ParentRecord) -> ParentRecord:
        ...

    def get_parent(self, parent_id: str) -> Optional[ParentRecord]:
        ...

    def get_parent_by_email(self, email: str) -> Optional[ParentRecord]:
        ...

    def get_parent_by_phone(self, phone_number: str) -> Optional[ParentRecord]:
        ...

    def add_child(self, child: ChildRecord) -> ChildRecord:
        ...

    def list_children(self, parent_id: str, active_only: bool = True) -> list[ChildRecord]:
        ...

    def update_child(self, child_id: str, changes: dict) -> Optional[ChildRecord]:
        ...

    # Activities
    def add_activity(self, activity: ActivityRecord) -> ActivityRecord:
        ...

    def get_activity(self, activity_id: str) -> Optional[ActivityRecord]:
        ...

    def update_activity(self, activity_id: str, changes: dict) -> Optional[ActivityRecord]:
        ...

    def delete_activity(self, activity_id: str) -> bool:
        ...

    def list_activities(
        self,
        *,
        club_id: Optional[str] = None,
        team_id: Optional[str] = None,
        since: Optional[datetime] = None,
    ) -> list[ActivityRecord]:
        ...

    # Attendance
    def upsert_attendance(self, records: list[AttendanceRecord]) -> None:
        ...

    def list_attendance(
        self, activity_id: str, occurrence_date: Optional[date]
    ) -> list[AttendanceRecord]:
        ...

    def list_attendance_for_players(self, player_ids: Iterable[str]) -> list[AttendanceRecord]:
        ...

    # Match events
    def list_events(self, activity_id: str) -> list[EventRecord]:
        ...

    def add_events(self, events: list[EventRecord]) -> list[EventRecord]:
        ...

    def delete_events(self, activity_id: str) -> int:
        ...

    # Posts and comments
    def add_post(self, post: PostRecord) -> PostRecord:
        ...

    def get_post(self, post_id: str) -> Optional[PostRecord]:
        ...

    def update_post(self, post_id: str, changes: dict) -> Optional[PostRecord]:
        ...

    def delete_post(self, post_id: str) -> bool:
        ...

    def list_posts(self, club_id: str, is_general: Optional[bool] = None) -> list[PostRecord]:
        ...

    def add_comment(self, comment: CommentRecord) -> CommentRecord:
        ...

    def list_comments(self, post_id: str) -> list[CommentRecord]:
        ...

    def count_comments(self, post_id: str) -> int:
        ...

    # Monthly payments
    def get_monthly_payment(
        self, player_id: str, year: int, month: int
    ) -> Optional[PaymentRecord]:
        ...

    def upsert_monthly_payment(self, payment: PaymentRecord) -> PaymentRecord:
        ...

    def list_monthly_payments(self, player_id: str, since_year: int) -> list[PaymentRecord]:
        ...


def _apply(record, changes: dict):
    known = {f.name for f in fields(record)}
    unknown = set(changes) - known
    if unknown:
        raise ValueError(f"Unknown fields: {sorted(unknown)}")
    return replace(record, **changes)


class InMemoryDbClient:
    """Simple in-memory database for development and tests."""

    def __init__(self):
        self.clubs: Dict[str, ClubRecord] = {}
        self.admins: Dict[str, AdminRecord] = {}
        self.coaches: Dict[str, CoachRecord] = {}
        self.coach_teams: list[tuple[str, str]] = []
        self.teams: Dict[str, TeamRecord] = {}
        self.players: Dict[str, PlayerRecord] = {}
        self.parents: Dict[str, ParentRecord] = {}
        self.children: Dict[str, ChildRecord] = {}
        self.activities: Dict[str, ActivityRecord] = {}
        self.attendance: Dict[tuple, AttendanceRecord] = {}
        self.events: Dict[str, EventRecord] = {}
        self.posts: Dict[str, PostRecord] = {}
        self.comments: Dict[str, CommentRecord] = {}
        self.payments: Dict[tuple[str, int, int], PaymentRecord] = {}

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        self.__init__()

    def add_club(self, club: ClubRecord) -> ClubRecord:
        self.clubs[club.id] = replace(club)
        return replace(club)

    def get_club(self, club_id: str) -> Optional[ClubRecord]:
        club = self.clubs.get(club_id)
        return replace(club) if club else None

    def get_club_by_admin(self, admin_user_id: str) -> Optional[ClubRecord]:
        for club in self.clubs.values():
            if club.admin_id == admin_user_id:
                return replace(club)
        return None

    def add_admin(self, admin: AdminRecord) -> AdminRecord:
        self.admins[admin.id] = replace(admin)
        return replace(admin)

    def get_admin_by_email(self, email: str) -> Optional[AdminRecord]:
        for admin in self.admins.values():
            if admin.email == email:
                return replace(admin)
        return None

    def get_admin_by_user(self, user_id: str) -> Optional[AdminRecord]:
        for admin in self.admins.values():
            if admin.user_id == user_id:
                return replace(admin)
        return None

    def add_coach(self, coach: CoachRecord) -> CoachRecord:
        self.coaches[coach.id] = replace(coach)
        return replace(coach)

    def get_coach(self, coach_id: str) -> Optional[CoachRecord]:
        coach = self.coaches.get(coach_id)
        return replace(coach) if coach else None

    def get_coach_by_access_code(self, access_code: str) -> Optional[CoachRecord]:
        for coach in self.coaches.values():
            if coach.access_code == access_code:
                return replace(coach)
        return None

    def assign_coach_team(self, coach_id: str, team_id: str) -> None:
        if (coach_id, team_id) not in self.coach_teams:
            self.coach_teams.append((coach_id, team_id))

    def get_coach_teams(self, coach_id: str) -> list[tuple[str, str]]:
        rows = []
        for assigned_coach, team_id in self.coach_teams:
            team = self.teams.get(team_id)
            if assigned_coach == coach_id and team and team.is_active:
                rows.append((team.id, team.name))
        return sorted(rows, key=lambda row: row[1])

    def add_team(self, team: TeamRecord) -> TeamRecord:
        self.teams[team.id] = replace(team)
        return replace(team)

    def get_team(self, team_id: str) -> Optional[TeamRecord]:
        team = self.teams.get(team_id)
        return replace(team) if team else None

    def get_team_by_access_code(self, access_code: str) -> Optional[TeamRecord]:
        for team in self.teams.values():
            if team.access_code == access_code:
                return replace(team)
        return None

    def list_teams(self, club_id: str, active_only: bool = True) -> list[TeamRecord]:
        teams = [
            replace(team)
            for team in self.teams.values()
            if team.club_id == club_id and (team.is_active or not active_only)
        ]
        return sorted(teams, key=lambda team: team.name)

    def add_player(self, player: PlayerRecord) -> PlayerRecord:
        self.players[player.id] = replace(player)
        return replace(player)

    def get_player(self, player_id: str) -> Optional[PlayerRecord]:
        player = self.players.get(player_id)
        return replace(player) if player else None

    def list_players(
        self,
        *,
        team_id: Optional[str] = None,
        player_ids: Optional[Iterable[str]] = None,
        active_only: bool = True,
    ) -> list[PlayerRecord]:
        wanted = set(player_ids) if player_ids is not None else None
        players = []
        for player in self.players.values():
            if team_id is not None and player.team_id != team_id:
                continue
            if wanted is not None and player.id not in wanted:
                continue
            if active_only and not player.is_active:
                continue
            players.append(replace(player))
        return sorted(players, key=lambda player: player.name)

    def update_player(self, player_id: str, changes: dict) -> Optional[PlayerRecord]:
        player = self.players.get(player_id)
        if not player:
            return None
        self.players[player_id] = _apply(player, changes)
        return replace(self.players[player_id])

    def add_parent(self, parent: ParentRecord) -> ParentRecord:
        self.parents[parent.id] = replace(parent)
        return replace(parent)

    def get_parent(self, parent_id: str) -> Optional[ParentRecord]:
        parent = self.parents.get(parent_id)
        return replace(parent) if parent else None

    def get_parent_by_email(self, email: str) -> Optional[ParentRecord]:
        for parent in self.parents.values():
            if parent.email == email:
                return replace(parent)
        return None

    def get_parent_by_phone(self, phone_number: str) -> Optional[ParentRecord]:
        for parent in self.parents.values():
            if parent.phone_number == phone_number:
                return replace(parent)
        return None

    def add_child(self, child: ChildRecord) -> ChildRecord:
        self.children[child.id] = replace(child)
        return replace(child)

    def list_children(self, parent_id: str, active_only: bool = True) -> list[ChildRecord]:
        children = [
            replace(child)
            for child in self.children.values()
            if child.parent_id == parent_id and (child.is_active or not active_only)
        ]
        return sorted(children, key=lambda child: child.created_at)

    def update_child(self, child_id: str, changes: dict) -> Optional[ChildRecord]:
        child = self.children.get(child_id)
        if not child:
            return None
        self.children[child_id] = _apply(child, changes)
        return replace(self.children[child_id])

    def add_activity(self, activity: ActivityRecord) -> ActivityRecord:
        self.activities[activity.id] = replace(activity)
        return replace(activity)

    def get_activity(self, activity_id: str) -> Optional[ActivityRecord]:
        activity = self.activities.get(activity_id)
        return replace(activity) if activity else None

    def update_activity(self, activity_id: str, changes: dict) -> Optional[ActivityRecord]:
        activity = self.activities.get(activity_id)
        if not activity:
            return None
        self.activities[activity_id] = _apply(activity, changes)
        return replace(self.activities[activity_id])

    def delete_activity(self, activity_id: str) -> bool:
        return self.activities.pop(activity_id, None) is not None

    def list_activities(
        self,
        *,
        club_id: Optional[str] = None,
        team_id: Optional[str] = None,
        since: Optional[datetime] = None,
    ) -> list[ActivityRecord]:
        items = []
        for activity in self.activities.values():
            if club_id is not None and activity.club_id != club_id:
                continue
            if team_id is not None and activity.team_id != team_id:
                continue
            if since is not None:
                starts_later = activity.start_time >= since
                repeats_later = (
                    activity.repeat_until is not None and activity.repeat_until >= since
                )
                if not (starts_later or repeats_later):
                    continue
            items.append(replace(activity))
        return sorted(items, key=lambda activity: activity.start_time)

    def upsert_attendance(self, records: list[AttendanceRecord]) -> None:
        for record in records:
            existing = self.attendance.get(record.key)
            stored = replace(record, id=existing.id) if existing else replace(record)
            self.attendance[record.key] = stored

    def list_attendance(
        self, activity_id: str, occurrence_date: Optional[date]
    ) -> list[AttendanceRecord]:
        return [
            replace(record)
            for record in self.attendance.values()
            if record.activity_id == activity_id
            and record.occurrence_date == occurrence_date
        ]

    def list_attendance_for_players(self, player_ids: Iterable[str]) -> list[AttendanceRecord]:
        wanted = set(player_ids)
        return [
            replace(record)
            for record in self.attendance.values()
            if record.player_id in wanted
        ]

    def list_events(self, activity_id: str) -> list[EventRecord]:
        events = [
            replace(event)
            for event in self.events.values()
            if event.activity_id == activity_id
        ]
        return sorted(events, key=lambda event: event.created_at)

    def add_events(self, events: list[EventRecord]) -> list[EventRecord]:
        for event in events:
            self.events[event.id] = replace(event)
        return [replace(event) for event in events]

    def delete_events(self, activity_id: str) -> int:
        doomed = [
            event_id
            for event_id, event in self.events.items()
            if event.activity_id == activity_id
        ]
        for event_id in doomed:
            del self.events[event_id]
        return len(doomed)

    def add_post(self, post: PostRecord) -> PostRecord:
        self.posts[post.id] = replace(post, team_ids=list(post.team_ids))
        return replace(post, team_ids=list(post.team_ids))

    def get_post(self, post_id: str) -> Optional[PostRecord]:
        post = self.posts.get(post_id)
        return replace(post, team_ids=list(post.team_ids)) if post else None

    def update_post(self, post_id: str, changes: dict) -> Optional[PostRecord]:
        post = self.posts.get(post_id)
        if not post:
            return None
        self.posts[post_id] = _apply(post, changes)
        return self.get_post(post_id)

    def delete_post(self, post_id: str) -> bool:
        if self.posts.pop(post_id, None) is None:
            return False
        for comment_id in [c.id for c in self.comments.values() if c.post_id == post_id]:
            del self.comments[comment_id]
        return True

    def list_posts(self, club_id: str, is_general: Optional[bool] = None) -> list[PostRecord]:
        posts = [
            replace(post, team_ids=list(post.team_ids))
            for post in self.posts.values()
            if post.club_id == club_id
            and post.is_active
            and (is_general is None or post.is_general == is_general)
        ]
        return sorted(posts, key=lambda post: post.created_at, reverse=True)

    def add_comment(self, comment: CommentRecord) -> CommentRecord:
        self.comments[comment.id] = replace(comment)
        return replace(comment)

    def list_comments(self, post_id: str) -> list[CommentRecord]:
        comments = [
            replace(comment)
            for comment in self.comments.values()
            if comment.post_id == post_id and comment.is_active
        ]
        return sorted(comments, key=lambda comment: comment.created_at)

    def count_comments(self, post_id: str) -> int:
        return len(self.list_comments(post_id))

    def get_monthly_payment(
        self, player_id: str, year: int, month: int
    ) -> Optional[PaymentRecord]:
        payment = self.payments.get((player_id, year, month))
        return replace(payment) if payment else None

    def upsert_monthly_payment(self, payment: PaymentRecord) -> PaymentRecord:
        self.payments[payment.key] = replace(payment)
        return replace(payment)

    def list_monthly_payments(self, player_id: str, since_year: int) -> list[PaymentRecord]:
        payments = [
            replace(payment)
            for payment in self.payments.values()
            if payment.player_id == player_id and payment.year >= since_year
        ]
        return sorted(payments, key=lambda p: (p.year, p.month), reverse=True)


Base = declarative_base()


def _to_record(record_cls, row):
    values = {}
    for f in fields(record_cls):
        if not hasattr(row, f.name):
            continue
        value = getattr(row, f.name)
        if isinstance(value, datetime):
            value = as_utc(value)
        elif isinstance(value, list):
            value = list(value)
        values[f.name] = value
    return record_cls(**values)


def _to_row(row_cls, record):
    values = {}
    for column in row_cls.__table__.columns:
        if not hasattr(record, column.key):
            continue
        value = getattr(record, column.key)
        if isinstance(value, datetime):
            value = as_utc(value)
        values[column.key] = value
    return row_cls(**values)


def _apply_changes(row, record_cls, changes: dict) -> None:
    known = {f.name for f in fields(record_cls)}
    unknown = set(changes) - known
    if unknown:
        raise ValueError(f"Unknown fields: {sorted(unknown)}")
    for key, value in changes.items():
        if isinstance(value, datetime):
            value = as_utc(value)
        setattr(row, key, value)


class PostgresDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("CLUBHUB_DATABASE_URL is required for PostgresDbClient")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    def _add(self, row_cls, record_cls, record):
        with self.Session() as session:
            row = _to_row(row_cls, record)
            session.add(row)
            session.commit()
            session.refresh(row)
            return _to_record(record_cls, row)

    def _get(self, row_cls, record_cls, key):
        with self.Session() as session:
            row = session.get(row_cls, key)
            return _to_record(record_cls, row) if row else None

    def _first(self, row_cls, record_cls, *criteria):
        with self.Session() as session:
            stmt = select(row_cls).where(*criteria).limit(1)
            row = session.execute(stmt).scalars().first()
            return _to_record(record_cls, row) if row else None

    def _update(self, row_cls, record_cls, key, changes: dict):
        with self.Session() as session:
            row = session.get(row_cls, key)
            if not row:
                return None
            _apply_changes(row, record_cls, changes)
            session.commit()
            session.refresh(row)
            return _to_record(record_cls, row)

    # Clubs and administrators

    def add_club(self, club: ClubRecord) -> ClubRecord:
        return self._add(ClubRow, ClubRecord, club)

    def get_club(self, club_id: str) -> Optional[ClubRecord]:
        return self._get(ClubRow, ClubRecord, club_id)

    def get_club_by_admin(self, admin_user_id: str) -> Optional[ClubRecord]:
        return self._first(ClubRow, ClubRecord, ClubRow.admin_id == admin_user_id)

    def add_admin(self, admin: AdminRecord) -> AdminRecord:
        return self._add(AdminRow, AdminRecord, admin)

    def get_admin_by_email(self, email: str) -> Optional[AdminRecord]:
        return self._first(AdminRow, AdminRecord, AdminRow.email == email)

    def get_admin_by_user(self, user_id: str) -> Optional[AdminRecord]:
        return self._first(AdminRow, AdminRecord, AdminRow.user_id == user_id)

    # Coaches

    def add_coach(self, coach: CoachRecord) -> CoachRecord:
        return self._add(CoachRow, CoachRecord, coach)

    def get_coach(self, coach_id: str) -> Optional[CoachRecord]:
        return self._get(CoachRow, CoachRecord, coach_id)

    def get_coach_by_access_code(self, access_code: str) -> Optional[CoachRecord]:
        return self._first(CoachRow, CoachRecord, CoachRow.access_code == access_code)

    def assign_coach_team(self, coach_id: str, team_id: str) -> None:
        with self.Session() as session:
            if session.get(CoachTeamRow, (coach_id, team_id)) is None:
                session.add(CoachTeamRow(coach_id=coach_id, team_id=team_id))
                session.commit()

    def get_coach_teams(self, coach_id: str) -> list[tuple[str, str]]:
        with self.Session() as session:
            stmt = (
                select(TeamRow.id, TeamRow.name)
                .join(CoachTeamRow, CoachTeamRow.team_id == TeamRow.id)
                .where(CoachTeamRow.coach_id == coach_id, TeamRow.is_active.is_(True))
                .order_by(TeamRow.name.asc())
            )
            return [(team_id, name) for team_id, name in session.execute(stmt).all()]

    # Teams and players

    def add_team(self, team: TeamRecord) -> TeamRecord:
        return self._add(TeamRow, TeamRecord, team)

    def get_team(self, team_id: str) -> Optional[TeamRecord]:
        return self._get(TeamRow, TeamRecord, team_id)

    def get_team_by_access_code(self, access_code: str) -> Optional[TeamRecord]:
        return self._first(TeamRow, TeamRecord, TeamRow.access_code == access_code)

    def list_teams(self, club_id: str, active_only: bool = True) -> list[TeamRecord]:
        with self.Session() as session:
            stmt = select(TeamRow).where(TeamRow.club_id == club_id)
            if active_only:
                stmt = stmt.where(TeamRow.is_active.is_(True))
            rows = session.execute(stmt.order_by(TeamRow.name.asc())).scalars().all()
            return [_to_record(TeamRecord, row) for row in rows]

    def add_player(self, player: PlayerRecord) -> PlayerRecord:
        return self._add(PlayerRow, PlayerRecord, player)

    def get_player(self, player_id: str) -> Optional[PlayerRecord]:
        return self._get(PlayerRow, PlayerRecord, player_id)

    def list_players(
        self,
        *,
        team_id: Optional[str] = None,
        player_ids: Optional[Iterable[str]] = None,
        active_only: bool = True,
    ) -> list[PlayerRecord]:
        with self.Session() as session:
            stmt = select(PlayerRow)
            if team_id is not None:
                stmt = stmt.where(PlayerRow.team_id == team_id)
            if player_ids is not None:
                stmt = stmt.where(PlayerRow.id.in_(list(player_ids)))
            if active_only:
                stmt = stmt.where(PlayerRow.is_active.is_(True))
            rows = session.execute(stmt.order_by(PlayerRow.name.asc())).scalars().all()
            return [_to_record(PlayerRecord, row) for row in rows]

    def update_player(self, player_id: str, changes: dict) -> Optional[PlayerRecord]:
        return self._update(PlayerRow, PlayerRecord, player_id, changes)

    # Parents and children

    def add_parent(self, parent: ParentRecord) -> ParentRecord:
        return self._add(ParentRow, ParentRecord, parent)

    def get_parent(self, parent_id: str) -> Optional[ParentRecord]:
        return self._get(ParentRow, ParentRecord, parent_id)

    def get_parent_by_email(self, email: str) -> Optional[ParentRecord]:
        return self._first(ParentRow, ParentRecord, ParentRow.email == email)

    def get_parent_by_phone(self, phone_number: str) -> Optional[ParentRecord]:
        return self._first(ParentRow, ParentRecord, ParentRow.phone_number == phone_number)

    def add_child(self, child: ChildRecord) -> ChildRecord:
        return self._add(ChildRow, ChildRecord, child)

    def list_children(self, parent_id: str, active_only: bool = True) -> list[ChildRecord]:
        with self.Session() as session:
            stmt = select(ChildRow).where(ChildRow.parent_id == parent_id)
            if active_only:
                stmt = stmt.where(ChildRow.is_active.is_(True))
            rows = session.execute(stmt.order_by(ChildRow.created_at.asc())).scalars().all()
            return [_to_record(ChildRecord, row) for row in rows]

    def update_child(self, child_id: str, changes: dict) -> Optional[ChildRecord]:
        return self._update(ChildRow, ChildRecord, child_id, changes)

    # Activities

    def add_activity(self, activity: ActivityRecord) -> ActivityRecord:
        return self._add(ActivityRow, ActivityRecord, activity)

    def get_activity(self, activity_id: str) -> Optional[ActivityRecord]:
        return self._get(ActivityRow, ActivityRecord, activity_id)

    def update_activity(self, activity_id: str, changes: dict) -> Optional[ActivityRecord]:
        return self._update(ActivityRow, ActivityRecord, activity_id, changes)

    def delete_activity(self, activity_id: str) -> bool:
        with self.Session() as session:
            row = session.get(ActivityRow, activity_id)
            if not row:
                return False
            session.delete(row)
            session.commit()
            return True

    def list_activities(
        self,
        *,
        club_id: Optional[str] = None,
        team_id: Optional[str] = None,
        since: Optional[datetime] = None,
    ) -> list[ActivityRecord]:
        with self.Session() as session:
            stmt = select(ActivityRow)
            if club_id is not None:
                stmt = stmt.where(ActivityRow.club_id == club_id)
            if team_id is not None:
                stmt = stmt.where(ActivityRow.team_id == team_id)
            if since is not None:
                since = as_utc(since)
                stmt = stmt.where(
                    or_(ActivityRow.start_time >= since, ActivityRow.repeat_until >= since)
                )
            rows = session.execute(stmt.order_by(ActivityRow.start_time.asc())).scalars().all()
            return [_to_record(ActivityRecord, row) for row in rows]

    # Attendance

    def upsert_attendance(self, records: list[AttendanceRecord]) -> None:
        with self.Session() as session:
            for record in records:
                stmt = select(AttendanceRow).where(
                    AttendanceRow.activity_id == record.activity_id,
                    AttendanceRow.player_id == record.player_id,
                    _occurrence_clause(record.occurrence_date),
                )
                row = session.execute(stmt).scalars().first()
                if row:
                    row.status = record.status
                    row.recorded_by = record.recorded_by
                    row.recorded_at = as_utc(record.recorded_at)
                else:
                    session.add(_to_row(AttendanceRow, record))
            session.commit()

    def list_attendance(
        self, activity_id: str, occurrence_date: Optional[date]
    ) -> list[AttendanceRecord]:
        with self.Session() as session:
            stmt = select(AttendanceRow).where(
                AttendanceRow.activity_id == activity_id,
                _occurrence_clause(occurrence_date),
            )
            rows = session.execute(stmt).scalars().all()
            return [_to_record(AttendanceRecord, row) for row in rows]

    def list_attendance_for_players(self, player_ids: Iterable[str]) -> list[AttendanceRecord]:
        with self.Session() as session:
            stmt = select(AttendanceRow).where(AttendanceRow.player_id.in_(list(player_ids)))
            rows = session.execute(stmt).scalars().all()
            return [_to_record(AttendanceRecord, row) for row in rows]

    # Match events

    def list_events(self, activity_id: str) -> list[EventRecord]:
        with self.Session() as session:
            stmt = (
                select(EventRow)
                .where(EventRow.activity_id == activity_id)
                .order_by(EventRow.created_at.asc())
            )
            rows = session.execute(stmt).scalars().all()
            return [_to_record(EventRecord, row) for row in rows]

    def add_events(self, events: list[EventRecord]) -> list[EventRecord]:
        with self.Session() as session:
            rows = [_to_row(EventRow, event) for event in events]
            session.add_all(rows)
            session.commit()
            return [_to_record(EventRecord, row) for row in rows]

    def delete_events(self, activity_id: str) -> int:
        with self.Session() as session:
            deleted = (
                session.query(EventRow)
                .filter(EventRow.activity_id == activity_id)
                .delete(synchronize_session=False)
            )
            session.commit()
            return deleted or 0

    # Posts and comments

    def _post_record(self, session: Session, row: "PostRow") -> PostRecord:
        team_ids = session.execute(
            select(PostTeamRow.team_id).where(PostTeamRow.post_id == row.id)
        ).scalars().all()
        return replace(_to_record(PostRecord, row), team_ids=list(team_ids))

    def add_post(self, post: PostRecord) -> PostRecord:
        with self.Session() as session:
            row = _to_row(PostRow, post)
            session.add(row)
            for team_id in post.team_ids:
                session.add(PostTeamRow(post_id=post.id, team_id=team_id))
            session.commit()
            session.refresh(row)
            return self._post_record(session, row)

    def get_post(self, post_id: str) -> Optional[PostRecord]:
        with self.Session() as session:
            row = session.get(PostRow, post_id)
            return self._post_record(session, row) if row else None

    def update_post(self, post_id: str, changes: dict) -> Optional[PostRecord]:
        with self.Session() as session:
            row = session.get(PostRow, post_id)
            if not row:
                return None
            changes = dict(changes)
            team_ids = changes.pop("team_ids", None)
            _apply_changes(row, PostRecord, changes)
            if team_ids is not None:
                session.query(PostTeamRow).filter(PostTeamRow.post_id == post_id).delete(
                    synchronize_session=False
                )
                for team_id in team_ids:
                    session.add(PostTeamRow(post_id=post_id, team_id=team_id))
            session.commit()
            session.refresh(row)
            return self._post_record(session, row)

    def delete_post(self, post_id: str) -> bool:
        with self.Session() as session:
            row = session.get(PostRow, post_id)
            if not row:
                return False
            session.query(PostTeamRow).filter(PostTeamRow.post_id == post_id).delete(
                synchronize_session=False
            )
            session.query(CommentRow).filter(CommentRow.post_id == post_id).delete(
                synchronize_session=False
            )
            session.delete(row)
            session.commit()
            return True

    def list_posts(self, club_id: str, is_general: Optional[bool] = None) -> list[PostRecord]:
        with self.Session() as session:
            stmt = select(PostRow).where(
                PostRow.club_id == club_id, PostRow.is_active.is_(True)
            )
            if is_general is not None:
                stmt = stmt.where(PostRow.is_general.is_(is_general))
            rows = session.execute(stmt.order_by(PostRow.created_at.desc())).scalars().all()
            return [self._post_record(session, row) for row in rows]

    def add_comment(self, comment: CommentRecord) -> CommentRecord:
        return self._add(CommentRow, CommentRecord, comment)

    def list_comments(self, post_id: str) -> list[CommentRecord]:
        with self.Session() as session:
            stmt = (
                select(CommentRow)
                .where(CommentRow.post_id == post_id, CommentRow.is_active.is_(True))
                .order_by(CommentRow.created_at.asc())
            )
            rows = session.execute(stmt).scalars().all()
            return [_to_record(CommentRecord, row) for row in rows]

    def count_comments(self, post_id: str) -> int:
        with self.Session() as session:
            stmt = select(func.count(CommentRow.id)).where(
                CommentRow.post_id == post_id, CommentRow.is_active.is_(True)
            )
            return session.execute(stmt).scalar_one()

    # Monthly payments

    def get_monthly_payment(
        self, player_id: str, year: int, month: int
    ) -> Optional[PaymentRecord]:
        return self._get(PaymentRow, PaymentRecord, (player_id, year, month))

    def upsert_monthly_payment(self, payment: PaymentRecord) -> PaymentRecord:
        with self.Session() as session:
            row = session.get(PaymentRow, payment.key)
            if row:
                row.status = payment.status
                row.updated_by = payment.updated_by
                row.updated_at = as_utc(payment.updated_at)
            else:
                row = _to_row(PaymentRow, payment)
                session.add(row)
            session.commit()
            session.refresh(row)
            return _to_record(PaymentRecord, row)

    def list_monthly_payments(self, player_id: str, since_year: int) -> list[PaymentRecord]:
        with self.Session() as session:
            stmt = (
                select(PaymentRow)
                .where(PaymentRow.player_id == player_id, PaymentRow.year >= since_year)
                .order_by(PaymentRow.year.desc(), PaymentRow.month.desc())
            )
            rows = session.execute(stmt).scalars().all()
            return [_to_record(PaymentRecord, row) for row in rows]


def _occurrence_clause(occurrence_date: Optional[date]):
    if occurrence_date is None:
        return AttendanceRow.occurrence_date.is_(None)
    return AttendanceRow.occurrence_date == occurrence_date


class ClubRow(Base):
    __tablename__ = "clubs"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    admin_id = Column(String, nullable=True, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False)


class AdminRow(Base):
    __tablename__ = "admin_profiles"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, unique=True)
    club_id = Column(String, nullable=True, index=True)
    email = Column(String, nullable=False, unique=True)
    password_hash = Column(String, nullable=False)
    name = Column(String, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), nullable=False)


class CoachRow(Base):
    __tablename__ = "coaches"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    club_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    phone_number = Column(String, nullable=True)
    access_code = Column(String, nullable=False, unique=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False)


class CoachTeamRow(Base):
    __tablename__ = "coach_teams"

    coach_id = Column(String, primary_key=True)
    team_id = Column(String, primary_key=True)


class TeamRow(Base):
    __tablename__ = "teams"

    id = Column(String, primary_key=True)
    club_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    age_group = Column(String, nullable=True)
    access_code = Column(String, nullable=False, unique=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False)


class PlayerRow(Base):
    __tablename__ = "players"

    id = Column(String, primary_key=True)
    club_id = Column(String, nullable=False, index=True)
    team_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    birth_date = Column(Date, nullable=True)
    parent_id = Column(String, nullable=True, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    payment_status = Column(String, nullable=True)
    last_payment_date = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)


class ParentRow(Base):
    __tablename__ = "parents"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False, unique=True)
    phone_number = Column(String, nullable=False, unique=True)
    password_hash = Column(String, nullable=False)
    phone_verified = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False)


class ChildRow(Base):
    __tablename__ = "parent_children"

    id = Column(String, primary_key=True)
    parent_id = Column(String, nullable=False, index=True)
    team_id = Column(String, nullable=False)
    player_id = Column(String, nullable=True)
    full_name = Column(String, nullable=False)
    birth_date = Column(Date, nullable=True)
    medical_visa_status = Column(String, nullable=True)
    medical_visa_issue_date = Column(Date, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False)


class ActivityRow(Base):
    __tablename__ = "activities"

    id = Column(String, primary_key=True)
    club_id = Column(String, nullable=False, index=True)
    team_id = Column(String, nullable=True, index=True)
    title = Column(String, nullable=False)
    location = Column(String, nullable=False, default="")
    type = Column(String, nullable=False)
    start_time = Column(DateTime(timezone=True), nullable=False, index=True)
    end_time = Column(DateTime(timezone=True), nullable=True)
    created_by = Column(String, nullable=True)
    is_public = Column(Boolean, nullable=False, default=False)
    additional_info = Column(Text, nullable=True)
    is_repeating = Column(Boolean, nullable=False, default=False)
    repeat_type = Column(String, nullable=True)
    repeat_days = Column(JSON, nullable=True)
    repeat_until = Column(DateTime(timezone=True), nullable=True)
    home_away = Column(String, nullable=True)
    home_score = Column(Integer, nullable=True)
    away_score = Column(Integer, nullable=True)
    lineup_players = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), nullable=False)


class AttendanceRow(Base):
    __tablename__ = "activity_attendance"
    __table_args__ = (
        UniqueConstraint("activity_id", "occurrence_date", "player_id"),
    )

    id = Column(String, primary_key=True)
    activity_id = Column(String, nullable=False, index=True)
    occurrence_date = Column(Date, nullable=True)
    player_id = Column(String, nullable=False, index=True)
    status = Column(String, nullable=False)
    recorded_by = Column(String, nullable=True)
    recorded_at = Column(DateTime(timezone=True), nullable=False)


class EventRow(Base):
    __tablename__ = "activity_events"

    id = Column(String, primary_key=True)
    activity_id = Column(String, nullable=False, index=True)
    event_type = Column(String, nullable=False)
    player_id = Column(String, nullable=True)
    assist_player_id = Column(String, nullable=True)
    minute = Column(Integer, nullable=True)
    half = Column(String, nullable=True)
    created_by = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)


class PostRow(Base):
    __tablename__ = "posts"

    id = Column(String, primary_key=True)
    club_id = Column(String, nullable=False, index=True)
    title = Column(String, nullable=True)
    content = Column(Text, nullable=False)
    author_id = Column(String, nullable=True)
    author_name = Column(String, nullable=True)
    author_role = Column(String, nullable=True)
    is_general = Column(Boolean, nullable=False, default=True)
    is_active = Column(Boolean, nullable=False, default=True)
    media_urls = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)


class PostTeamRow(Base):
    __tablename__ = "post_teams"

    post_id = Column(String, primary_key=True)
    team_id = Column(String, primary_key=True)


class CommentRow(Base):
    __tablename__ = "post_comments"

    id = Column(String, primary_key=True)
    post_id = Column(String, nullable=False, index=True)
    content = Column(Text, nullable=False)
    author_id = Column(String, nullable=True)
    author_name = Column(String, nullable=True)
    author_role = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False)


class PaymentRow(Base):
    __tablename__ = "monthly_payments"

    player_id = Column(String, primary_key=True)
    year = Column(Integer, primary_key=True)
    month = Column(Integer, primary_key=True)
    status = Column(String, nullable=False)
    updated_by = Column(String, nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=False)
