"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, HTTPException

from clubhub.config import get_settings
from clubhub.db import DbClient, InMemoryDbClient, PostgresDbClient
from clubhub.errors import NotInClubError
from clubhub.membership import resolve_club_id
from clubhub.sessions import InMemorySessionStore, RedisSessionStore, Session, SessionStore
from clubhub.storage import InMemoryStorageClient, S3StorageClient, StorageClient

_db_client: DbClient | None = None
_session_store: SessionStore | None = None
_storage_client: StorageClient | None = None


def get_db_client() -> DbClient:
    """
    Return a singleton DB client so state persists across requests.
    """
    global _db_client
    if _db_client:
        return _db_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.database_url:
        _db_client = InMemoryDbClient()
    else:
        _db_client = PostgresDbClient(settings.database_url)
    return _db_client


def get_session_store() -> SessionStore:
    global _session_store
    if _session_store:
        return _session_store

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.redis_url:
        _session_store = InMemorySessionStore()
    else:
        _session_store = RedisSessionStore(
            url=settings.redis_url,
            key_prefix=settings.redis_session_prefix,
            ttl_seconds=settings.session_ttl_seconds,
        )
    return _session_store


def get_storage_client() -> StorageClient:
    global _storage_client
    if _storage_client:
        return _storage_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.media_bucket:
        _storage_client = InMemoryStorageClient()
    else:
        _storage_client = S3StorageClient(
            bucket=settings.media_bucket,
            region=settings.media_region or "",
            endpoint=settings.media_endpoint or "",
            access_key_id=settings.aws_access_key_id or "",
            secret_access_key=settings.aws_secret_access_key or "",
        )
    return _storage_client


def get_current_session(
    authorization: Optional[str] = Header(default=None),
    store: SessionStore = Depends(get_session_store),
) -> Session:
    """Resolve the bearer token into a cached session or reject with 401."""
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Not authenticated")
    token = authorization.split(" ", 1)[1].strip()
    session = store.get(token)
    if not session:
        raise HTTPException(status_code=401, detail="Session expired or unknown")
    store.touch(token)
    return session


def get_club_id(
    session: Session = Depends(get_current_session),
    db: DbClient = Depends(get_db_client),
    store: SessionStore = Depends(get_session_store),
) -> str:
    club_id = resolve_club_id(session, db, store)
    if not club_id:
        raise HTTPException(status_code=403, detail=NotInClubError().args[0])
    return club_id


def require_roles(*roles: str):
    """Build a dependency that only admits sessions holding one of ``roles``."""

    def dependency(session: Session = Depends(get_current_session)) -> Session:
        if session.role not in roles:
            raise HTTPException(status_code=403, detail="Not allowed for this role")
        return session

    return dependency
