# Session records and the keyed store that owns them
# (creation, lookup, atomic update, deletion).

import copy
import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Protocol

from app.core.config import settings
from app.core.errors import Conflict, InvalidInput, NotFound
from app.db import InMemoryDB, db as default_db
from app.services.lifecycle import Status, hint_for

logger = logging.getLogger(__name__)


@dataclass
class Session:
    token: str
    subject_id: str
    qr_payload: str
    qr_code_url: str
    created_at: datetime
    status: Status = Status.PENDING
    hint: str | None = None
    user_id: str | None = None

    def set_status(self, status: Status, hint_code: str) -> None:
        self.status = status
        self.hint = hint_for(status, hint_code)


class SessionStore(Protocol):
    def create(self, session: Session) -> Session: ...

    def get_by_token(self, token: str) -> Session | None: ...

    def save(self, session: Session) -> Session: ...

    def update(self, token: str, mutate: Callable[[Session], None]) -> Session: ...

    def delete(self, session: Session) -> None: ...


class InMemorySessionStore:
    """
    Lock-protected store over the shared InMemoryDB.

    Records are copied in and out, so a caller only changes the stored
    session through save() or update(). Deleted tokens stay reserved for
    `retention` seconds, long enough to outlive any poll of the old session.
    """

    def __init__(self, database: InMemoryDB | None = None, clock=time.monotonic, retention: float | None = None):
        self._db = database if database is not None else default_db
        self._clock = clock
        self.retention = retention if retention is not None else settings.SESSION_TTL_SECONDS

    def _forget_retired(self, now: float) -> None:
        # caller holds the lock
        expired = [t for t, retired_at in self._db.retired_tokens.items() if now - retired_at >= self.retention]
        for token in expired:
            del self._db.retired_tokens[token]

    def _check_token(self, token: str) -> None:
        if not isinstance(token, str) or not token.strip():
            raise InvalidInput("Token must be a non-empty string")

    def create(self, session: Session) -> Session:
        self._check_token(session.token)
        with self._db.lock:
            self._forget_retired(self._clock())
            if session.token in self._db.sessions or session.token in self._db.retired_tokens:
                logger.warning(f"Create rejected: token={session.token} already issued")
                raise Conflict(token=session.token)
            self._db.sessions[session.token] = copy.copy(session)
        return copy.copy(session)

    def get_by_token(self, token: str) -> Session | None:
        with self._db.lock:
            stored = self._db.sessions.get(token)
            return copy.copy(stored) if stored is not None else None

    def save(self, session: Session) -> Session:
        self._check_token(session.token)
        with self._db.lock:
            if session.token in self._db.retired_tokens:
                raise NotFound(token=session.token)
            self._db.sessions[session.token] = copy.copy(session)
        return copy.copy(session)

    def update(self, token: str, mutate: Callable[[Session], None]) -> Session:
        """Applies mutate to a copy of the stored session and replaces it in one step."""
        with self._db.lock:
            stored = self._db.sessions.get(token)
            if stored is None:
                raise NotFound(token=token)
            working = copy.copy(stored)
            mutate(working)
            self._db.sessions[token] = working
            return copy.copy(working)

    def delete(self, session: Session) -> None:
        with self._db.lock:
            if self._db.sessions.pop(session.token, None) is None:
                raise NotFound(token=session.token)
            now = self._clock()
            self._forget_retired(now)
            self._db.retired_tokens[session.token] = now

    def __len__(self) -> int:
        with self._db.lock:
            return len(self._db.sessions)
