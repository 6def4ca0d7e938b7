"""
Club news feed: general and team posts, comments and media uploads.

Posts never cross clubs. Which team posts a reader sees depends on the role:
administrators see every team post, coaches see administrator posts for their
teams plus their own, parents see posts for their children's teams.
"""

from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass
from typing import Optional

from clubhub.db import CommentRecord, DbClient, PostRecord, new_id, utcnow
from clubhub.errors import NotFoundError, PermissionDenied, ValidationFailed
from clubhub.membership import resolve_club_id, resolve_team_ids
from clubhub.sessions import ADMINISTRATOR, COACH, PARENT, Session
from clubhub.storage import StorageClient

logger = logging.getLogger(__name__)

UPLOAD_URL_TTL_SECONDS = 15 * 60


@dataclass
class PostView:
    post: PostRecord
    comment_count: int = 0


def create_post(
    db: DbClient,
    session: Session,
    club_id: str,
    *,
    content: str,
    title: Optional[str] = None,
    is_general: bool = True,
    team_ids: Optional[list[str]] = None,
    media_urls: Optional[list[str]] = None,
) -> PostRecord:
    if not content or not content.strip():
        raise ValidationFailed("Post content is required")
    team_ids = list(dict.fromkeys(team_ids or []))
    if is_general:
        team_ids = []
    elif not team_ids:
        raise ValidationFailed("Select at least one team for a team post")
    for team_id in team_ids:
        team = db.get_team(team_id)
        if not team or team.club_id != club_id:
            raise NotFoundError("Team not found")

    post = db.add_post(
        PostRecord(
            club_id=club_id,
            title=title,
            content=content.strip(),
            author_id=session.profile_id,
            author_name=session.name,
            author_role=session.role,
            is_general=is_general,
            team_ids=team_ids,
            media_urls=list(media_urls or []),
        )
    )
    logger.info("Created %s post %s", "general" if is_general else "team", post.id)
    return post


def _visible_team_posts(
    posts: list[PostRecord], session: Session, team_ids: list[str]
) -> list[PostRecord]:
    wanted = set(team_ids)
    if session.role == ADMINISTRATOR:
        if not team_ids:
            return posts
        return [post for post in posts if wanted.intersection(post.team_ids)]
    if session.role == COACH:
        return [
            post
            for post in posts
            if post.author_id == session.profile_id
            or (post.author_role == ADMINISTRATOR and wanted.intersection(post.team_ids))
        ]
    if session.role == PARENT:
        return [post for post in posts if wanted.intersection(post.team_ids)]
    return []


def fetch_posts(
    db: DbClient, session: Session, team_ids: Optional[list[str]] = None
) -> list[PostView]:
    """Feed for a session, newest first, with comment counts."""
    club_id = resolve_club_id(session, db)
    if not club_id:
        logger.warning("No club for %s session, returning empty feed", session.role)
        return []

    if session.role in (COACH, PARENT) and not team_ids:
        team_ids = resolve_team_ids(session, db)

    posts = db.list_posts(club_id, is_general=True)
    posts += _visible_team_posts(db.list_posts(club_id, is_general=False), session, team_ids or [])

    unique: dict[str, PostRecord] = {}
    for post in posts:
        unique.setdefault(post.id, post)
    ordered = sorted(unique.values(), key=lambda post: post.created_at, reverse=True)
    return [PostView(post=post, comment_count=db.count_comments(post.id)) for post in ordered]


def _editable_post(db: DbClient, session: Session, club_id: str, post_id: str) -> PostRecord:
    post = db.get_post(post_id)
    if not post or post.club_id != club_id or not post.is_active:
        raise NotFoundError("Post not found")
    if post.author_id != session.profile_id and session.role != ADMINISTRATOR:
        raise PermissionDenied("Only the author or an administrator can change this post")
    return post


def update_post(
    db: DbClient,
    session: Session,
    club_id: str,
    post_id: str,
    *,
    title: Optional[str] = None,
    content: Optional[str] = None,
) -> PostRecord:
    _editable_post(db, session, club_id, post_id)
    changes: dict = {"updated_at": utcnow()}
    if title is not None:
        changes["title"] = title
    if content is not None:
        if not content.strip():
            raise ValidationFailed("Post content is required")
        changes["content"] = content.strip()
    return db.update_post(post_id, changes)


def delete_post(db: DbClient, session: Session, club_id: str, post_id: str) -> None:
    _editable_post(db, session, club_id, post_id)
    db.delete_post(post_id)
    logger.info("Deleted post %s", post_id)


def add_comment(
    db: DbClient, session: Session, club_id: str, post_id: str, content: str
) -> CommentRecord:
    if not content or not content.strip():
        raise ValidationFailed("Comment cannot be empty")
    post = db.get_post(post_id)
    if not post or post.club_id != club_id or not post.is_active:
        raise NotFoundError("Post not found")
    return db.add_comment(
        CommentRecord(
            post_id=post_id,
            content=content.strip(),
            author_id=session.profile_id,
            author_name=session.name,
            author_role=session.role,
        )
    )


def list_comments(db: DbClient, post_id: str) -> list[CommentRecord]:
    return db.list_comments(post_id)


def count_comments(db: DbClient, post_id: str) -> int:
    return db.count_comments(post_id)


def sign_media_upload(
    storage: StorageClient,
    club_id: str,
    filename: str,
    content_type: str = "application/octet-stream",
) -> tuple[str, str]:
    """Return ``(path, url)`` for a presigned PUT of a post attachment."""
    name = posixpath.basename((filename or "").replace("\\", "/")).strip()
    if not name:
        raise ValidationFailed("File name is required")
    path = f"clubs/{club_id}/posts/{new_id()}/{name}"
    url = storage.presign_put(path, expires_in=UPLOAD_URL_TTL_SECONDS, content_type=content_type)
    return path, url
