"""
Pydantic schemas for the club management API.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

ActivityType = Literal["training", "game", "tournament", "other"]
RepeatType = Literal["daily", "weekly", "monthly"]
AttendanceStatus = Literal["present", "absent", "excused"]
EventType = Literal["goal", "assist", "yellow_card", "red_card", "man_of_the_match"]


class AdminLoginRequest(BaseModel):
    email: str
    password: str


class CoachLoginRequest(BaseModel):
    access_code: str = Field(..., max_length=32)


class ParentLoginRequest(BaseModel):
    phone_number: str
    password: str


class SessionResponse(BaseModel):
    token: str
    role: str
    user_id: str
    profile_id: str
    club_id: Optional[str] = None
    name: str = ""


class StatusResponse(BaseModel):
    status: Literal["ok"]


class TeamCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=128)
    age_group: Optional[str] = None


class TeamResponse(BaseModel):
    id: str
    club_id: str
    name: str
    age_group: Optional[str] = None
    access_code: Optional[str] = None
    is_active: bool = True


class CoachCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=128)
    phone_number: Optional[str] = None


class CoachResponse(BaseModel):
    id: str
    club_id: str
    name: str
    phone_number: Optional[str] = None
    access_code: str
    is_active: bool = True


class CoachAssignRequest(BaseModel):
    coach_id: str


class PlayerCreateRequest(BaseModel):
    team_id: str
    name: str = Field(..., min_length=1, max_length=128)
    birth_date: Optional[date] = None
    parent_id: Optional[str] = None


class PlayerResponse(BaseModel):
    id: str
    club_id: str
    team_id: str
    name: str
    birth_date: Optional[date] = None
    parent_id: Optional[str] = None
    is_active: bool = True


class ActivityFields(BaseModel):
    title: Optional[str] = Field(default=None, max_length=256)
    type: Optional[ActivityType] = None
    location: Optional[str] = None
    team_id: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    is_public: Optional[bool] = None
    additional_info: Optional[str] = None
    is_repeating: Optional[bool] = None
    repeat_type: Optional[RepeatType] = None
    repeat_days: Optional[list[int]] = None
    repeat_until: Optional[datetime] = None
    home_away: Optional[Literal["home", "away"]] = None
    lineup_players: Optional[list[str]] = None


class ActivityCreateRequest(ActivityFields):
    title: str = Field(..., min_length=1, max_length=256)
    start_time: datetime
    type: ActivityType = "training"


class ActivityResponse(BaseModel):
    id: str
    club_id: str
    title: str
    type: str
    location: str = ""
    team_id: Optional[str] = None
    team_name: Optional[str] = None
    start_time: datetime
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
    lineup_players: list[str] = Field(default_factory=list)
    parent_activity_id: Optional[str] = None
    is_recurring_instance: bool = False


class ScoreRequest(BaseModel):
    home_score: int = Field(..., ge=0)
    away_score: int = Field(..., ge=0)


class EventPayload(BaseModel):
    event_type: EventType
    player_id: Optional[str] = None
    assist_player_id: Optional[str] = None
    minute: Optional[int] = Field(default=None, ge=0, le=200)
    half: Optional[Literal["first", "second"]] = None


class EventsReplaceRequest(BaseModel):
    events: list[EventPayload] = Field(default_factory=list)


class EventResponse(EventPayload):
    id: str
    activity_id: str
    event_type: str
    created_by: Optional[str] = None
    created_at: datetime


class AttendanceSaveRequest(BaseModel):
    statuses: dict[str, Optional[AttendanceStatus]]


class AttendanceResponse(BaseModel):
    activity_id: str
    player_id: str
    status: str
    occurrence_date: Optional[date] = None
    recorded_by: Optional[str] = None
    recorded_at: datetime


class AttendanceFormEntryResponse(BaseModel):
    activity_id: str
    player_id: str
    player_name: str
    status: Optional[str] = None


class AttendanceStatResponse(BaseModel):
    activity_id: str
    player_id: str
    status: str
    activity_title: str
    activity_type: str
    occurrence_date: date
    recorded_at: Optional[datetime] = None


class AttendanceTrendPoint(BaseModel):
    day: date
    rate: float


class AttendanceSummaryResponse(BaseModel):
    total: int
    present: int
    absent: int
    excused: int
    attendance_rate: float
    trend: list[AttendanceTrendPoint]


class AttendanceStatsResponse(BaseModel):
    records: list[AttendanceStatResponse]
    summary: AttendanceSummaryResponse


class PostCreateRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=10000)
    title: Optional[str] = Field(default=None, max_length=256)
    is_general: bool = True
    team_ids: list[str] = Field(default_factory=list)
    media_urls: list[str] = Field(default_factory=list)


class PostUpdateRequest(BaseModel):
    title: Optional[str] = Field(default=None, max_length=256)
    content: Optional[str] = Field(default=None, max_length=10000)


class PostResponse(BaseModel):
    id: str
    club_id: str
    title: Optional[str] = None
    content: str
    author_id: Optional[str] = None
    author_name: Optional[str] = None
    author_role: Optional[str] = None
    is_general: bool = True
    media_urls: list[str] = Field(default_factory=list)
    team_ids: list[str] = Field(default_factory=list)
    comment_count: int = 0
    created_at: datetime
    updated_at: datetime


class CommentCreateRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=2000)


class CommentResponse(BaseModel):
    id: str
    post_id: str
    content: str
    author_id: Optional[str] = None
    author_name: Optional[str] = None
    author_role: Optional[str] = None
    created_at: datetime


class TeamCodeRequest(BaseModel):
    code: str = Field(..., max_length=32)


class TeamCodeResponse(BaseModel):
    team_id: str
    team_name: str
    club_id: str


class ParentRegisterRequest(BaseModel):
    name: str
    email: str
    phone_number: str
    password: str


class ChildCreateRequest(BaseModel):
    name: str
    team_code: str
    birth_date: Optional[date] = None
    medical_visa_status: Optional[Literal["valid", "expired", "pending", "none"]] = None
    medical_visa_issue_date: Optional[date] = None


class ChildResponse(BaseModel):
    id: str
    parent_id: str
    team_id: str
    player_id: Optional[str] = None
    full_name: str
    birth_date: Optional[date] = None
    medical_visa_status: Optional[str] = None
    medical_visa_issue_date: Optional[date] = None


class PaymentStatusResponse(BaseModel):
    player_id: str
    status: Optional[Literal["paid", "unpaid"]] = None


class PaymentUpdateRequest(BaseModel):
    status: Literal["paid", "unpaid"]


class PaymentHistoryEntry(BaseModel):
    year: int
    month: int
    status: Literal["paid", "unpaid"]
    updated_by: Optional[str] = None
    updated_at: datetime


class PaymentHistoryResponse(BaseModel):
    player_id: str
    payments: list[PaymentHistoryEntry]


class MediaSignRequest(BaseModel):
    filename: str = Field(..., min_length=1, max_length=256)
    content_type: str = "application/octet-stream"


class SignUrlResponse(BaseModel):
    path: str
    url: str
