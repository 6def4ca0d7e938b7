"""
Session cache abstraction.

Holds the role payload and cached club id for a logged-in device. Supports an
in-memory fallback for tests/local runs and a Redis-backed implementation for
production.
"""

from __future__ import annotations

import json
import logging
import secrets
import time
from dataclasses import asdict, dataclass, field, replace
from typing import Mapping, Optional, Protocol

import redis
from redis import exceptions as redis_exceptions

logger = logging.getLogger(__name__)

ADMINISTRATOR = "administrator"
COACH = "coach"
PARENT = "parent"
ROLES = (ADMINISTRATOR, COACH, PARENT)


@dataclass
class Session:
    role: str
    user_id: str
    profile_id: str
    club_id: Optional[str] = None
    name: str = ""
    token: str = field(default_factory=lambda: secrets.token_urlsafe(32))
    created_at: float = field(default_factory=lambda: time.time())
    last_seen_at: float = field(default_factory=lambda: time.time())

    def as_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: Mapping) -> "Session":
        return cls(**{key: payload[key] for key in cls.__dataclass_fields__ if key in payload})


def resolve_role(payloads: Mapping[str, object], has_auth_session: bool) -> Optional[str]:
    """
    Pick the effective role when several role payloads are cached for one device.

    Parent data wins over coach data, which wins over administrator data; an
    administrator payload only counts while an auth session is live.

    Standalone helper for clients that cache several payloads per device.
    Server sessions are issued with exactly one role at login, so no login or
    token path calls this.
    """
    if payloads.get(PARENT):
        return PARENT
    if payloads.get(COACH):
        return COACH
    if payloads.get(ADMINISTRATOR) and has_auth_session:
        return ADMINISTRATOR
    return None


class SessionStore(Protocol):
    """Minimal key-value interface for cached sessions."""

    def get(self, token: str) -> Optional[Session]:
        ...

    def put(self, session: Session) -> None:
        ...

    def delete(self, token: str) -> None:
        ...

    def touch(self, token: str) -> None:
        ...

    def list_tokens(self) -> list[str]:
        ...


@dataclass
class InMemorySessionStore:
    """Simple dict-backed store for testing/dev."""

    items: dict[str, Session] = field(default_factory=dict)

    def get(self, token: str) -> Optional[Session]:
        session = self.items.get(token)
        return replace(session) if session else None

    def put(self, session: Session) -> None:
        self.items[session.token] = replace(session)

    def delete(self, token: str) -> None:
        self.items.pop(token, None)

    def touch(self, token: str) -> None:
        session = self.items.get(token)
        if session:
            session.last_seen_at = time.time()

    def list_tokens(self) -> list[str]:
        return list(self.items)


@dataclass
class RedisSessionStore:
    """Redis-backed store keeping each session as a JSON string with a TTL."""

    url: str
    key_prefix: str = "clubhub:session:"
    ttl_seconds: int = 60 * 60 * 24 * 30

    def __post_init__(self):
        self.client = redis.Redis.from_url(self.url)

    def _key(self, token: str) -> str:
        return f"{self.key_prefix}{token}"

    def _reconnect(self) -> None:
        # Connection resets can happen on managed Redis.
        self.client = redis.Redis.from_url(self.url)

    def get(self, token: str) -> Optional[Session]:
        try:
            raw = self.client.get(self._key(token))
        except redis_exceptions.ConnectionError:
            logger.warning("Redis connection lost while reading session")
            self._reconnect()
            return None
        if raw is None:
            return None
        try:
            return Session.from_dict(json.loads(raw))
        except (ValueError, TypeError):
            logger.warning("Discarding unreadable session payload for %s", token[:8])
            self.delete(token)
            return None

    def put(self, session: Session) -> None:
        self.client.set(
            self._key(session.token),
            json.dumps(session.as_dict()),
            ex=self.ttl_seconds,
        )

    def delete(self, token: str) -> None:
        self.client.delete(self._key(token))

    def touch(self, token: str) -> None:
        session = self.get(token)
        if session:
            session.last_seen_at = time.time()
            self.put(session)

    def list_tokens(self) -> list[str]:
        tokens = []
        try:
            for key in self.client.scan_iter(match=f"{self.key_prefix}*"):
                if isinstance(key, bytes):
                    key = key.decode("utf-8")
                tokens.append(key[len(self.key_prefix):])
        except redis_exceptions.ConnectionError:
            logger.warning("Redis connection lost while listing sessions")
            self._reconnect()
        return tokens
