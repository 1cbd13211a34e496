"""
auth/sessions.py -- Server-side session table: issue, validate, revoke, sweep.

A session id is an opaque bearer credential: secrets.token_urlsafe(32) gives
256 bits of entropy in a URL-safe alphabet. The id maps to (user_id,
expires_at) in an in-memory dict owned by one SessionAuthority instance. The
instance is created in the app lifespan and shared by reference with the
request gate and the background sweep task. Nothing is persisted, so a
restart logs every client out.

Expiry:
  expires_at = issue time + ttl. Validation never extends it. An expired
  entry is removed by whichever comes first: the next validate() of that id,
  or the periodic sweep().

Failures:
  EmptyCredentialError, SessionNotFoundError and SessionExpiredError all
  subclass InvalidSessionError. The request gate answers every one of them
  with the same 401; the subclass and its reason are for logs only.

Concurrency:
  The dict is guarded by a readers/writer lock. validate() looks up under the
  shared side, so concurrent authenticated requests do not serialize. issue(),
  revoke(), sweep() and the expired-entry delete in validate() take the
  exclusive side. Writers are preferred: once a writer is waiting, new
  readers queue behind it, so a steady stream of reads cannot starve logins.

Layer rule: no imports from api/ or tasks/.
"""

from __future__ import annotations

import logging
import secrets
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

logger = logging.getLogger("taskboard.auth.sessions")

DEFAULT_TTL = timedelta(hours=24)

# 32 random bytes -> 43 URL-safe characters.
_ID_BYTES = 32


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class InvalidSessionError(Exception):
    """Base for every reason a session id does not authenticate."""

    reason = "invalid session"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.reason)


class EmptyCredentialError(InvalidSessionError):
    reason = "empty session id"


class SessionNotFoundError(InvalidSessionError):
    reason = "session not found"


class SessionExpiredError(InvalidSessionError):
    reason = "session expired"


# ---------------------------------------------------------------------------
# Data
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Session:
    """One issued session. Frozen: entries are replaced or deleted, never edited."""

    id: str
    user_id: int
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Readers/writer lock
# ---------------------------------------------------------------------------


class _ReadWriteLock:
    """Writer-preferring readers/writer lock built on threading.Condition.

    Any number of readers may hold the lock together; a writer holds it alone.
    Not reentrant: a thread holding the read side must release it before
    asking for the write side.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


# ---------------------------------------------------------------------------
# Authority
# ---------------------------------------------------------------------------


class SessionAuthority:
    """Owns the mapping from session id to (user_id, expires_at).

    Usage:
        sessions = SessionAuthority(ttl=timedelta(hours=24))
        sid = sessions.issue(user.id)
        user_id = sessions.validate(sid)      # raises InvalidSessionError
        sessions.revoke(sid)                  # logout
        sessions.sweep()                      # periodic cleanup

    clock is injectable so tests can move time forward without sleeping. It
    must return timezone-aware datetimes.
    """

    def __init__(self, ttl: timedelta = DEFAULT_TTL, clock: Callable[[], datetime] = _utcnow) -> None:
        if ttl <= timedelta(0):
            raise ValueError("session ttl must be positive")
        self.ttl = ttl
        self._clock = clock
        self._sessions: dict[str, Session] = {}
        self._lock = _ReadWriteLock()

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._sessions)

    def issue(self, user_id: int) -> str:
        """Create a session for user_id and return its id.

        The only failure is the OS random source raising, which is not
        something a retry can fix; the exception propagates unchanged.
        """
        session_id = secrets.token_urlsafe(_ID_BYTES)
        session = Session(id=session_id, user_id=user_id, expires_at=self._clock() + self.ttl)
        with self._lock.write():
            self._sessions[session_id] = session
        logger.debug("Issued session for user %s (expires %s)", user_id, session.expires_at.isoformat())
        return session_id

    def validate(self, session_id: str) -> int:
        """Return the user id bound to session_id.

        Raises:
            EmptyCredentialError: session_id is empty.
            SessionNotFoundError: no such session (never issued, revoked, or already evicted).
            SessionExpiredError:  the session has expired; it is removed as a side effect.
        """
        if not session_id:
            raise EmptyCredentialError()

        with self._lock.read():
            session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError()

        if session.is_expired(self._clock()):
            with self._lock.write():
                # Another thread may have evicted it between the two locks.
                if self._sessions.get(session_id) is session:
                    del self._sessions[session_id]
            logger.debug("Evicted expired session for user %s on read", session.user_id)
            raise SessionExpiredError()

        return session.user_id

    def revoke(self, session_id: str) -> bool:
        """Delete a session (logout). Returns True if one was removed."""
        if not session_id:
            return False
        with self._lock.write():
            session = self._sessions.pop(session_id, None)
        if session is not None:
            logger.debug("Revoked session for user %s", session.user_id)
        return session is not None

    def sweep(self) -> int:
        """Remove every session whose expires_at <= now. Returns the number removed."""
        now = self._clock()
        with self._lock.write():
            expired = [sid for sid, s in self._sessions.items() if s.is_expired(now)]
            for sid in expired:
                del self._sessions[sid]
            remaining = len(self._sessions)
        if expired:
            logger.info("Session sweep removed %d expired session(s), %d active", len(expired), remaining)
        return len(expired)
