"""
HTTP routes for the club management API.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import asdict
from datetime import date, datetime, time, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from clubhub import activities as activity_service
from clubhub import attendance as attendance_service
from clubhub import auth
from clubhub import match_events
from clubhub import payments
from clubhub import posts as post_service
from clubhub import registration
from clubhub import teams as team_service
from clubhub.db import DbClient, EventRecord, PlayerRecord, utcnow
from clubhub.dependencies import (
    get_club_id,
    get_current_session,
    get_db_client,
    get_session_store,
    get_storage_client,
    require_roles,
)
from clubhub.errors import (
    AlreadyRegistered,
    AuthenticationError,
    ClubHubError,
    InvalidOccurrenceId,
    InvalidTeamCode,
    NotFoundError,
    NotInClubError,
    PermissionDenied,
    ValidationFailed,
)
from clubhub.membership import resolve_team_ids
from clubhub.occurrences import parse_occurrence_id
from clubhub.schemas import (
    ActivityCreateRequest,
    ActivityFields,
    ActivityResponse,
    AdminLoginRequest,
    AttendanceFormEntryResponse,
    AttendanceResponse,
    AttendanceSaveRequest,
    AttendanceStatResponse,
    AttendanceStatsResponse,
    AttendanceSummaryResponse,
    AttendanceTrendPoint,
    ChildCreateRequest,
    ChildResponse,
    CoachAssignRequest,
    CoachCreateRequest,
    CoachLoginRequest,
    CoachResponse,
    CommentCreateRequest,
    CommentResponse,
    EventPayload,
    EventResponse,
    EventsReplaceRequest,
    MediaSignRequest,
    ParentLoginRequest,
    ParentRegisterRequest,
    PaymentHistoryEntry,
    PaymentHistoryResponse,
    PaymentStatusResponse,
    PaymentUpdateRequest,
    PlayerCreateRequest,
    PlayerResponse,
    PostCreateRequest,
    PostResponse,
    PostUpdateRequest,
    ScoreRequest,
    SessionResponse,
    SignUrlResponse,
    StatusResponse,
    TeamCodeRequest,
    TeamCodeResponse,
    TeamCreateRequest,
    TeamResponse,
)
from clubhub.sessions import ADMINISTRATOR, COACH, PARENT, Session, SessionStore
from clubhub.storage import StorageClient

logger = logging.getLogger(__name__)

router = APIRouter()

staff_only = require_roles(ADMINISTRATOR, COACH)
admin_only = require_roles(ADMINISTRATOR)
parent_only = require_roles(PARENT)

ERROR_STATUS = (
    (NotFoundError, 404),
    (NotInClubError, 403),
    (PermissionDenied, 403),
    (AlreadyRegistered, 409),
    (AuthenticationError, 401),
    (InvalidTeamCode, 400),
    (InvalidOccurrenceId, 400),
    (ValidationFailed, 400),
)


@contextmanager
def service_errors():
    """Translate service-layer errors into HTTP responses."""
    try:
        yield
    except ClubHubError as exc:
        for error_cls, status_code in ERROR_STATUS:
            if isinstance(exc, error_cls):
                raise HTTPException(status_code=status_code, detail=str(exc)) from exc
        logger.exception("Unmapped service error")
        raise HTTPException(status_code=500, detail="Internal error") from exc


def _session_response(session: Session) -> SessionResponse:
    return SessionResponse(
        token=session.token,
        role=session.role,
        user_id=session.user_id,
        profile_id=session.profile_id,
        club_id=session.club_id,
        name=session.name,
    )


def _start_of_day(day: date) -> datetime:
    return datetime.combine(day, time(), tzinfo=timezone.utc)


def _club_player(db: DbClient, session: Session, club_id: str, player_id: str) -> PlayerRecord:
    player = db.get_player(player_id)
    if not player or player.club_id != club_id:
        raise HTTPException(status_code=404, detail="Player not found")
    if session.role == PARENT and player.parent_id != session.profile_id:
        raise HTTPException(status_code=403, detail="Not your child")
    return player


# Auth


@router.post("/auth/admin/login", response_model=SessionResponse)
def admin_login(
    payload: AdminLoginRequest,
    db: DbClient = Depends(get_db_client),
    store: SessionStore = Depends(get_session_store),
):
    with service_errors():
        session = auth.login_admin(db, store, payload.email, payload.password)
    return _session_response(session)


@router.post("/auth/coach/login", response_model=SessionResponse)
def coach_login(
    payload: CoachLoginRequest,
    db: DbClient = Depends(get_db_client),
    store: SessionStore = Depends(get_session_store),
):
    with service_errors():
        session = auth.login_coach(db, store, payload.access_code)
    return _session_response(session)


@router.post("/auth/parent/login", response_model=SessionResponse)
def parent_login(
    payload: ParentLoginRequest,
    db: DbClient = Depends(get_db_client),
    store: SessionStore = Depends(get_session_store),
):
    with service_errors():
        session = auth.login_parent(db, store, payload.phone_number, payload.password)
    return _session_response(session)


@router.post("/auth/logout", response_model=StatusResponse)
def logout(
    session: Session = Depends(get_current_session),
    store: SessionStore = Depends(get_session_store),
):
    auth.logout(store, session.token)
    return StatusResponse(status="ok")


@router.get("/auth/me", response_model=SessionResponse)
def me(session: Session = Depends(get_current_session)):
    return _session_response(session)


# Teams, coaches and players


@router.get("/teams", response_model=list[TeamResponse])
def list_teams(
    session: Session = Depends(get_current_session),
    db: DbClient = Depends(get_db_client),
):
    teams = []
    for team_id in resolve_team_ids(session, db):
        team = db.get_team(team_id)
        if not team:
            continue
        payload = TeamResponse(**asdict(team))
        if session.role != ADMINISTRATOR:
            payload.access_code = None
        teams.append(payload)
    return teams


@router.post("/teams", response_model=TeamResponse, status_code=201)
def create_team(
    payload: TeamCreateRequest,
    _: Session = Depends(admin_only),
    club_id: str = Depends(get_club_id),
    db: DbClient = Depends(get_db_client),
):
    with service_errors():
        team = team_service.create_team(db, club_id, payload.name, payload.age_group)
    return TeamResponse(**asdict(team))


@router.post("/teams/coaches", response_model=CoachResponse, status_code=201)
def create_coach(
    payload: CoachCreateRequest,
    _: Session = Depends(admin_only),
    club_id: str = Depends(get_club_id),
    db: DbClient = Depends(get_db_client),
):
    with service_errors():
        coach = team_service.create_coach(db, club_id, payload.name, payload.phone_number)
    return CoachResponse(**asdict(coach))


@router.post("/teams/{team_id}/coaches", response_model=StatusResponse)
def assign_coach(
    team_id: str,
    payload: CoachAssignRequest,
    _: Session = Depends(admin_only),
    club_id: str = Depends(get_club_id),
    db: DbClient = Depends(get_db_client),
):
    with service_errors():
        team_service.assign_coach(db, club_id, payload.coach_id, team_id)
    return StatusResponse(status="ok")


@router.get("/teams/{team_id}/players", response_model=list[PlayerResponse])
def team_players(
    team_id: str,
    _: Session = Depends(staff_only),
    club_id: str = Depends(get_club_id),
    db: DbClient = Depends(get_db_client),
):
    with service_errors():
        team_service.get_club_team(db, club_id, team_id)
        players = team_service.get_players_by_team(db, team_id)
    return [PlayerResponse(**asdict(player)) for player in players]


@router.get("/teams/{team_id}/activities", response_model=list[ActivityResponse])
def team_activities(
    team_id: str,
    _: Session = Depends(get_current_session),
    club_id: str = Depends(get_club_id),
    db: DbClient = Depends(get_db_client),
):
    with service_errors():
        items = activity_service.get_team_activities(db, club_id, team_id)
    return [ActivityResponse(**asdict(item)) for item in items]


@router.get("/teams/{team_id}/attendance-stats", response_model=AttendanceStatsResponse)
def team_attendance_stats(
    team_id: str,
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    activity_type: Optional[str] = Query(None),
    _: Session = Depends(staff_only),
    club_id: str = Depends(get_club_id),
    db: DbClient = Depends(get_db_client),
):
    with service_errors():
        team_service.get_club_team(db, club_id, team_id)
        stats = attendance_service.fetch_team_attendance_stats(
            db, team_id, start, end, activity_type
        )
    return _stats_response(stats)


@router.post("/players", response_model=PlayerResponse, status_code=201)
def create_player(
    payload: PlayerCreateRequest,
    _: Session = Depends(admin_only),
    club_id: str = Depends(get_club_id),
    db: DbClient = Depends(get_db_client),
):
    with service_errors():
        player = team_service.create_player(
            db,
            club_id,
            payload.team_id,
            payload.name,
            birth_date=payload.birth_date,
            parent_id=payload.parent_id,
        )
    return PlayerResponse(**asdict(player))


@router.delete("/players/{player_id}", response_model=PlayerResponse)
def deactivate_player(
    player_id: str,
    _: Session = Depends(admin_only),
    club_id: str = Depends(get_club_id),
    db: DbClient = Depends(get_db_client),
):
    with service_errors():
        player = team_service.deactivate_player(db, club_id, player_id)
    return PlayerResponse(**asdict(player))


@router.get("/players/{player_id}/attendance-stats", response_model=AttendanceStatsResponse)
def player_attendance_stats(
    player_id: str,
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    activity_type: Optional[str] = Query(None),
    session: Session = Depends(get_current_session),
    club_id: str = Depends(get_club_id),
    db: DbClient = Depends(get_db_client),
):
    _club_player(db, session, club_id, player_id)
    stats = attendance_service.fetch_player_attendance_stats(
        db, player_id, start, end, activity_type
    )
    return _stats_response(stats)


# Activities


@router.get("/activities", response_model=list[ActivityResponse])
def list_activities(
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    team_id: Optional[str] = Query(None),
    _: Session = Depends(get_current_session),
    club_id: str = Depends(get_club_id),
    db: DbClient = Depends(get_db_client),
):
    if (start is None) != (end is None):
        raise HTTPException(status_code=400, detail="start and end must be given together")
    with service_errors():
        if start is not None:
            items = activity_service.get_activities_by_date_range(
                db, club_id, _start_of_day(start), _start_of_day(end), team_id
            )
        elif team_id:
            items = activity_service.get_team_activities(db, club_id, team_id)
        else:
            items = activity_service.get_activities(db, club_id)
    return [ActivityResponse(**asdict(item)) for item in items]


@router.post("/activities", response_model=ActivityResponse, status_code=201)
def create_activity(
    payload: ActivityCreateRequest,
    session: Session = Depends(staff_only),
    club_id: str = Depends(get_club_id),
    db: DbClient = Depends(get_db_client),
):
    with service_errors():
        activity = activity_service.create_activity(
            db, club_id, session.profile_id, payload.model_dump(exclude_none=True)
        )
    return ActivityResponse(**asdict(activity))


@router.get("/activities/{activity_id}", response_model=ActivityResponse)
def get_activity(
    activity_id: str,
    _: Session = Depends(get_current_session),
    club_id: str = Depends(get_club_id),
    db: DbClient = Depends(get_db_client),
):
    with service_errors():
        activity = activity_service.get_activity_by_id(db, club_id, activity_id)
    return ActivityResponse(**asdict(activity))


@router.patch("/activities/{activity_id}", response_model=ActivityResponse)
def update_activity(
    activity_id: str,
    payload: ActivityFields,
    _: Session = Depends(staff_only),
    club_id: str = Depends(get_club_id),
    db: DbClient = Depends(get_db_client),
):
    with service_errors():
        activity = activity_service.update_activity(
            db, club_id, activity_id, payload.model_dump(exclude_unset=True)
        )
    return ActivityResponse(**asdict(activity))


@router.delete("/activities/{activity_id}", response_model=StatusResponse)
def delete_activity(
    activity_id: str,
    _: Session = Depends(staff_only),
    club_id: str = Depends(get_club_id),
    db: DbClient = Depends(get_db_client),
):
    with service_errors():
        activity_service.delete_activity(db, club_id, activity_id)
    return StatusResponse(status="ok")


@router.put("/activities/{activity_id}/score", response_model=ActivityResponse)
def update_score(
    activity_id: str,
    payload: ScoreRequest,
    _: Session = Depends(staff_only),
    club_id: str = Depends(get_club_id),
    db: DbClient = Depends(get_db_client),
):
    with service_errors():
        activity = activity_service.update_game_score(
            db, club_id, activity_id, payload.home_score, payload.away_score
        )
    return ActivityResponse(**asdict(activity))


@router.get("/activities/{activity_id}/events", response_model=list[EventResponse])
def list_events(
    activity_id: str,
    _: Session = Depends(get_current_session),
    club_id: str = Depends(get_club_id),
    db: DbClient = Depends(get_db_client),
):
    with service_errors():
        activity_service.get_activity_by_id(db, club_id, activity_id)
        events = match_events.get_events_for_activity(db, activity_id)
    return [EventResponse(**asdict(event)) for event in events]


@router.post("/activities/{activity_id}/events", response_model=EventResponse, status_code=201)
def add_event(
    activity_id: str,
    payload: EventPayload,
    session: Session = Depends(staff_only),
    club_id: str = Depends(get_club_id),
    db: DbClient = Depends(get_db_client),
):
    with service_errors():
        activity_service.get_activity_by_id(db, club_id, activity_id)
        event = match_events.add_event(
            db,
            activity_id,
            EventRecord(activity_id=activity_id, **payload.model_dump()),
            session.profile_id,
        )
    return EventResponse(**asdict(event))


@router.put("/activities/{activity_id}/events", response_model=list[EventResponse])
def replace_events(
    activity_id: str,
    payload: EventsReplaceRequest,
    session: Session = Depends(staff_only),
    club_id: str = Depends(get_club_id),
    db: DbClient = Depends(get_db_client),
):
    with service_errors():
        activity_service.get_activity_by_id(db, club_id, activity_id)
        events = match_events.replace_events_for_activity(
            db,
            activity_id,
            [EventRecord(activity_id=activity_id, **item.model_dump()) for item in payload.events],
            session.profile_id,
        )
    return [EventResponse(**asdict(event)) for event in events]


@router.delete("/activities/{activity_id}/events", response_model=StatusResponse)
def clear_events(
    activity_id: str,
    _: Session = Depends(staff_only),
    club_id: str = Depends(get_club_id),
    db: DbClient = Depends(get_db_client),
):
    with service_errors():
        activity_service.get_activity_by_id(db, club_id, activity_id)
        match_events.delete_events_for_activity(db, activity_id)
    return StatusResponse(status="ok")


# Attendance


def _stats_response(stats) -> AttendanceStatsResponse:
    summary = attendance_service.summarize_attendance(stats)
    return AttendanceStatsResponse(
        records=[AttendanceStatResponse(**asdict(stat)) for stat in stats],
        summary=AttendanceSummaryResponse(
            total=summary.total,
            present=summary.present,
            absent=summary.absent,
            excused=summary.excused,
            attendance_rate=summary.attendance_rate,
            trend=[AttendanceTrendPoint(day=day, rate=rate) for day, rate in summary.trend],
        ),
    )


@router.get("/attendance/{activity_ref}", response_model=list[AttendanceResponse])
def get_attendance(
    activity_ref: str,
    _: Session = Depends(staff_only),
    club_id: str = Depends(get_club_id),
    db: DbClient = Depends(get_db_client),
):
    with service_errors():
        activity = activity_service.get_activity_by_id(db, club_id, activity_ref)
        records = attendance_service.fetch_attendance(db, activity.id)
    return [
        AttendanceResponse(**{**asdict(record), "activity_id": activity.id})
        for record in records
    ]


@router.put("/attendance/{activity_ref}", response_model=list[AttendanceResponse])
def save_attendance(
    activity_ref: str,
    payload: AttendanceSaveRequest,
    session: Session = Depends(staff_only),
    club_id: str = Depends(get_club_id),
    db: DbClient = Depends(get_db_client),
):
    with service_errors():
        activity = activity_service.get_activity_by_id(db, club_id, activity_ref)
        attendance_service.save_attendance(
            db, activity.id, payload.statuses, recorded_by=session.profile_id
        )
        records = attendance_service.fetch_attendance(db, activity.id)
    return [
        AttendanceResponse(**{**asdict(record), "activity_id": activity.id})
        for record in records
    ]


@router.get("/attendance/{activity_ref}/form", response_model=list[AttendanceFormEntryResponse])
def attendance_form(
    activity_ref: str,
    team_id: Optional[str] = Query(None),
    _: Session = Depends(staff_only),
    club_id: str = Depends(get_club_id),
    db: DbClient = Depends(get_db_client),
):
    with service_errors():
        activity = activity_service.get_activity_by_id(db, club_id, activity_ref)
        team_id = team_id or activity.team_id
        if not team_id:
            raise ValidationFailed("Activity has no team; pass team_id")
        team_service.get_club_team(db, club_id, team_id)
        entries = attendance_service.initialize_attendance_form(
            db, activity.id, team_id, parse_occurrence_id(activity.id).occurrence_date
        )
    return [AttendanceFormEntryResponse(**asdict(entry)) for entry in entries]


# Posts


def _post_response(post, comment_count: int = 0) -> PostResponse:
    return PostResponse(**asdict(post), comment_count=comment_count)


@router.get("/posts", response_model=list[PostResponse])
def list_posts(
    team_ids: Optional[list[str]] = Query(None),
    session: Session = Depends(get_current_session),
    db: DbClient = Depends(get_db_client),
):
    views = post_service.fetch_posts(db, session, team_ids)
    return [_post_response(view.post, view.comment_count) for view in views]


@router.post("/posts", response_model=PostResponse, status_code=201)
def create_post(
    payload: PostCreateRequest,
    session: Session = Depends(staff_only),
    club_id: str = Depends(get_club_id),
    db: DbClient = Depends(get_db_client),
):
    with service_errors():
        post = post_service.create_post(
            db,
            session,
            club_id,
            content=payload.content,
            title=payload.title,
            is_general=payload.is_general,
            team_ids=payload.team_ids,
            media_urls=payload.media_urls,
        )
    return _post_response(post)


@router.patch("/posts/{post_id}", response_model=PostResponse)
def update_post(
    post_id: str,
    payload: PostUpdateRequest,
    session: Session = Depends(staff_only),
    club_id: str = Depends(get_club_id),
    db: DbClient = Depends(get_db_client),
):
    with service_errors():
        post = post_service.update_post(
            db, session, club_id, post_id, title=payload.title, content=payload.content
        )
    return _post_response(post, post_service.count_comments(db, post.id))


@router.delete("/posts/{post_id}", response_model=StatusResponse)
def delete_post(
    post_id: str,
    session: Session = Depends(staff_only),
    club_id: str = Depends(get_club_id),
    db: DbClient = Depends(get_db_client),
):
    with service_errors():
        post_service.delete_post(db, session, club_id, post_id)
    return StatusResponse(status="ok")


@router.get("/posts/{post_id}/comments", response_model=list[CommentResponse])
def list_comments(
    post_id: str,
    _: Session = Depends(get_current_session),
    club_id: str = Depends(get_club_id),
    db: DbClient = Depends(get_db_client),
):
    post = db.get_post(post_id)
    if not post or post.club_id != club_id:
        raise HTTPException(status_code=404, detail="Post not found")
    return [CommentResponse(**asdict(c)) for c in post_service.list_comments(db, post_id)]


@router.post("/posts/{post_id}/comments", response_model=CommentResponse, status_code=201)
def add_comment(
    post_id: str,
    payload: CommentCreateRequest,
    session: Session = Depends(get_current_session),
    club_id: str = Depends(get_club_id),
    db: DbClient = Depends(get_db_client),
):
    with service_errors():
        comment = post_service.add_comment(db, session, club_id, post_id, payload.content)
    return CommentResponse(**asdict(comment))


@router.post("/media/sign-url", response_model=SignUrlResponse)
def sign_media_url(
    payload: MediaSignRequest,
    _: Session = Depends(staff_only),
    club_id: str = Depends(get_club_id),
    storage: StorageClient = Depends(get_storage_client),
):
    with service_errors():
        path, url = post_service.sign_media_upload(
            storage, club_id, payload.filename, payload.content_type
        )
    return SignUrlResponse(path=path, url=url)


# Registration


@router.post("/registration/verify-team-code", response_model=TeamCodeResponse)
def verify_team_code(payload: TeamCodeRequest, db: DbClient = Depends(get_db_client)):
    with service_errors():
        team = registration.verify_team_code(db, payload.code)
    return TeamCodeResponse(team_id=team.id, team_name=team.name, club_id=team.club_id)


@router.post("/registration/parent", response_model=SessionResponse, status_code=201)
def register_parent(
    payload: ParentRegisterRequest,
    db: DbClient = Depends(get_db_client),
    store: SessionStore = Depends(get_session_store),
):
    with service_errors():
        _, session = registration.register_parent(
            db,
            store,
            name=payload.name,
            email=payload.email,
            phone_number=payload.phone_number,
            password=payload.password,
        )
    return _session_response(session)


@router.get("/registration/children", response_model=list[ChildResponse])
def list_children(
    session: Session = Depends(parent_only),
    db: DbClient = Depends(get_db_client),
):
    children = registration.list_children(db, session.profile_id)
    return [ChildResponse(**asdict(child)) for child in children]


@router.post("/registration/children", response_model=ChildResponse, status_code=201)
def add_child(
    payload: ChildCreateRequest,
    session: Session = Depends(parent_only),
    db: DbClient = Depends(get_db_client),
    store: SessionStore = Depends(get_session_store),
):
    with service_errors():
        child = registration.add_child(
            db,
            session.profile_id,
            name=payload.name,
            team_code=payload.team_code,
            birth_date=payload.birth_date,
            medical_visa_status=payload.medical_visa_status,
            medical_visa_issue_date=payload.medical_visa_issue_date,
        )
    if not session.club_id:
        # First child links the parent to a club.
        team = db.get_team(child.team_id)
        if team:
            session.club_id = team.club_id
            store.put(session)
    return ChildResponse(**asdict(child))


# Payments


@router.get("/payments/{player_id}", response_model=PaymentStatusResponse)
def payment_status(
    player_id: str,
    session: Session = Depends(get_current_session),
    club_id: str = Depends(get_club_id),
    db: DbClient = Depends(get_db_client),
):
    _club_player(db, session, club_id, player_id)
    status = payments.get_player_payment_status(db, player_id, utcnow().date())
    return PaymentStatusResponse(player_id=player_id, status=status)


@router.put("/payments/{player_id}", response_model=PaymentStatusResponse)
def update_payment_status(
    player_id: str,
    payload: PaymentUpdateRequest,
    session: Session = Depends(staff_only),
    club_id: str = Depends(get_club_id),
    db: DbClient = Depends(get_db_client),
):
    _club_player(db, session, club_id, player_id)
    with service_errors():
        payments.update_player_payment_status(
            db, player_id, payload.status, session.profile_id, utcnow().date()
        )
    return PaymentStatusResponse(player_id=player_id, status=payload.status)


@router.get("/payments/{player_id}/history", response_model=PaymentHistoryResponse)
def payment_history(
    player_id: str,
    session: Session = Depends(get_current_session),
    club_id: str = Depends(get_club_id),
    db: DbClient = Depends(get_db_client),
):
    _club_player(db, session, club_id, player_id)
    history = payments.get_payment_history(db, player_id, utcnow().date())
    return PaymentHistoryResponse(
        player_id=player_id,
        payments=[
            PaymentHistoryEntry(
                year=record.year,
                month=record.month,
                status=payments.to_display_status(record.status),
                updated_by=record.updated_by,
                updated_at=record.updated_at,
            )
            for record in history
        ],
    )
