"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

get_current_user() is the request gate:
  1. Read the Authorization header. Missing -> 401.
  2. Trim surrounding whitespace. The value is the raw session id; a leading
     "Bearer " is stripped only when Settings.accept_bearer_prefix is on.
  3. SessionAuthority.validate(). Any InvalidSessionError -> one generic 401.
     The specific reason (empty / not found / expired) goes to the log only.
  4. Load the user. Missing or soft-deleted -> 401 "user not found".
  5. Attach user_id and user to request.state and return an AuthContext.

request.state is per-request, so nothing leaks between requests. FastAPI
caches a dependency's result for the lifetime of one request, so the gate
runs once even when a router-level dependency and a handler parameter both
ask for it; every later stage reads the same values.

Layer rule: no imports from api/ or tasks/.
  auth/dependencies.py may import from fastapi (for HTTPException/Request)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import HTTPException, Request

from auth.models import User
from auth.sessions import InvalidSessionError, SessionAuthority
from auth.store import UserStore
from core.config import get_settings

logger = logging.getLogger("taskboard.auth")

AUTH_HEADER = "Authorization"
_BEARER_PREFIX = "Bearer "


@dataclass(frozen=True)
class AuthContext:
    """Identity resolved by the gate for the current request."""

    user_id: int
    user: User
    session_id: str


def _unauthorized(code: str, message: str) -> HTTPException:
    return HTTPException(status_code=401, detail={"code": code, "message": message})


def extract_session_id(request: Request) -> str | None:
    """Return the session id carried by the request, or None if the header is absent.

    An Authorization header that is present but blank yields "", which
    validate() rejects as an empty credential.
    """
    raw = request.headers.get(AUTH_HEADER)
    if raw is None:
        return None
    value = raw.strip()
    if get_settings().accept_bearer_prefix and value.startswith(_BEARER_PREFIX):
        value = value[len(_BEARER_PREFIX) :].strip()
    return value


def get_current_user(request: Request) -> AuthContext:
    """Require a valid session. Raises HTTP 401 otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(auth: AuthContext = Depends(get_current_user)): ...
    """
    session_id = extract_session_id(request)
    if session_id is None:
        raise _unauthorized("missing_credentials", "Authorization header is required")

    sessions: SessionAuthority = request.app.state.sessions
    try:
        user_id = sessions.validate(session_id)
    except InvalidSessionError as exc:
        logger.info("Rejected session on %s %s: %s", request.method, request.url.path, exc.reason)
        raise _unauthorized("invalid_session", "Invalid session: session is invalid or has expired") from exc

    user_store: UserStore = request.app.state.user_store
    user = user_store.get_by_id(user_id)
    if user is None:
        logger.info("Session for user %s rejected: user no longer exists", user_id)
        raise _unauthorized("user_not_found", "user not found")

    request.state.user_id = user_id
    request.state.user = user
    return AuthContext(user_id=user_id, user=user, session_id=session_id)


def current_user_id(request: Request) -> int:
    """Read the user id the gate attached to this request. 401 if the gate did not run."""
    user_id = getattr(request.state, "user_id", None)
    if user_id is None:
        raise _unauthorized("unauthorized", "Unauthorized")
    return user_id


def current_user(request: Request) -> User:
    """Read the User the gate attached to this request. 401 if the gate did not run."""
    user = getattr(request.state, "user", None)
    if user is None:
        raise _unauthorized("unauthorized", "Unauthorized")
    return user
