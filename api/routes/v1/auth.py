"""
api/routes/v1/auth.py -- Registration, login and session endpoints.

Routes:
  POST /api/v1/auth/register  -- create account; returns {token, user}
  POST /api/v1/auth/login     -- email/password login; returns {token, user}
  POST /api/v1/auth/logout    -- revoke the presented session (requires auth)
  GET  /api/v1/auth/me        -- current user (requires auth)

The token is an opaque session id from SessionAuthority.issue(). Clients
send it back verbatim in the Authorization header.

Security:
  authenticate_user() provides timing equalization -- use it, never inline.
  Wrong email and wrong password return the same message.
  Cache-Control: no-store on every response that carries a token.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.models import (
    AuthResponse,
    ErrorDetail,
    ErrorResponse,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    UserPublic,
)
from auth.dependencies import AuthContext, current_user, get_current_user
from auth.models import User
from auth.passwords import authenticate_user, hash_password
from auth.sessions import SessionAuthority
from auth.store import UserStore

logger = logging.getLogger("taskboard.api.auth")

# Auth policy:
# - POST /api/v1/auth/register: public
# - POST /api/v1/auth/login:    public
# - POST /api/v1/auth/logout:   requires auth (get_current_user)
# - GET  /api/v1/auth/me:       requires auth (get_current_user)
router = APIRouter()


def _token_response(status_code: int, token: str, user: User) -> JSONResponse:
    resp = JSONResponse(
        status_code=status_code,
        content=AuthResponse(token=token, user=UserPublic.from_user(user)).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/register", response_model=AuthResponse, status_code=201)
def register(request: Request, body: RegisterRequest) -> JSONResponse:
    """Create an account and log it in.

    Duplicate username or email raises DuplicateKeyError from the store,
    which the app-level handler turns into 409 with the store's message.
    """
    user_store: UserStore = request.app.state.user_store
    sessions: SessionAuthority = request.app.state.sessions

    user_id = user_store.create_user(
        User(
            username=body.username,
            email=str(body.email),
            hashed_password=hash_password(body.password),
        )
    )
    user = user_store.get_by_id(user_id)
    token = sessions.issue(user_id)
    logger.info("Registered user %s (id=%s)", user.username, user_id)
    return _token_response(201, token, user)


@router.post("/auth/login", response_model=AuthResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password; issue a new session.

    Each login issues an additional session. Earlier sessions of the same
    user stay valid until they expire or are logged out.
    """
    user_store: UserStore = request.app.state.user_store
    sessions: SessionAuthority = request.app.state.sessions

    user = authenticate_user(user_store, str(body.email), body.password)
    if user is None:
        resp = JSONResponse(
            status_code=401,
            content=ErrorResponse(
                error=ErrorDetail(code="bad_credentials", message="Invalid email or password")
            ).model_dump(),
        )
        resp.headers["Cache-Control"] = "no-store"
        return resp

    token = sessions.issue(user.id)
    return _token_response(200, token, user)


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/logout", response_model=MessageResponse)
def logout(request: Request, auth: AuthContext = Depends(get_current_user)) -> MessageResponse:
    """Invalidate the session that authenticated this request. Other sessions are untouched."""
    sessions: SessionAuthority = request.app.state.sessions
    sessions.revoke(auth.session_id)
    return MessageResponse(message="Logged out")


@router.get("/auth/me", response_model=UserPublic, dependencies=[Depends(get_current_user)])
def me(request: Request) -> UserPublic:
    """Return the account bound to the presented session."""
    return UserPublic.from_user(current_user(request))
