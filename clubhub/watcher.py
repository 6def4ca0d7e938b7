"""
Background polling of the session store.

Each poll compares the cached sessions with the previous snapshot and reports
sessions that appeared, disappeared or switched role.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from clubhub.sessions import SessionStore

logger = logging.getLogger(__name__)

ADDED = "added"
REMOVED = "removed"
ROLE_CHANGED = "role_changed"


@dataclass(frozen=True)
class SessionChange:
    token: str
    kind: str
    role: Optional[str] = None


Listener = Callable[[SessionChange], None]


class SessionWatcher:
    def __init__(self, store: SessionStore, poll_seconds: float = 1.0):
        self.store = store
        self.poll_seconds = poll_seconds
        self._listeners: list[Listener] = []
        self._roles: dict[str, str] = {}

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def _snapshot(self) -> dict[str, str]:
        roles = {}
        for token in self.store.list_tokens():
            session = self.store.get(token)
            if session:
                roles[token] = session.role
        return roles

    def poll_once(self) -> list[SessionChange]:
        current = self._snapshot()
        changes = []
        for token, role in current.items():
            if token not in self._roles:
                changes.append(SessionChange(token, ADDED, role))
            elif self._roles[token] != role:
                changes.append(SessionChange(token, ROLE_CHANGED, role))
        for token, role in self._roles.items():
            if token not in current:
                changes.append(SessionChange(token, REMOVED, role))
        self._roles = current

        for change in changes:
            self._notify(change)
        return changes

    def _notify(self, change: SessionChange) -> None:
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                logger.exception("Session listener failed for %s", change.kind)

    def run_loop(self, max_polls: Optional[int] = None) -> None:
        polls = 0
        while max_polls is None or polls < max_polls:
            try:
                changes = self.poll_once()
                if changes:
                    logger.info("Detected %d session changes", len(changes))
            except Exception:
                logger.exception("Session poll failed")
            polls += 1
            if max_polls is not None and polls >= max_polls:
                break
            time.sleep(self.poll_seconds)
