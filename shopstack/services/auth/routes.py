"""
Auth service routes: login, token verification, logout.

Demo authentication only: a single configured username/password pair.
"""
import secrets
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Header, Request
from opentelemetry import trace

from ...common.auth import decode_token, get_settings_dep, issue_token, parse_bearer
from ...common.errors import AuthenticationError
from ...config import Settings
from ...observability.metrics import auth_logins_total
from .schemas import LoginRequest, LoginResponse, LogoutRequest, MessageResponse, VerifyResponse
from .sessions import SessionStore

logger = structlog.get_logger(__name__)
tracer = trace.get_tracer(__name__)

auth_router = APIRouter(prefix="/api/auth", tags=["auth"])


def get_sessions(request: Request) -> SessionStore:
    return request.app.state.sessions


def _credentials_match(payload: LoginRequest, settings: Settings) -> bool:
    return secrets.compare_digest(payload.username, settings.demo_username) and secrets.compare_digest(
        payload.password, settings.demo_password
    )


@auth_router.post("/login", response_model=LoginResponse)
async def login(
    payload: LoginRequest,
    sessions: SessionStore = Depends(get_sessions),
    settings: Settings = Depends(get_settings_dep),
) -> LoginResponse:
    """Open a session and issue a bearer token."""
    with tracer.start_as_current_span("login_attempt") as span:
        span.set_attribute("username", payload.username)

        if not _credentials_match(payload, settings):
            span.set_attribute("login.success", False)
            auth_logins_total.labels(outcome="invalid_credentials").inc()
            logger.warning("login_failed", username=payload.username)
            raise AuthenticationError("Invalid credentials")

        session = await sessions.create(payload.username)
        token = issue_token(payload.username, session["id"], settings)

        span.set_attribute("login.success", True)
        span.set_attribute("session.id", session["id"])
        auth_logins_total.labels(outcome="success").inc()
        logger.info("login_succeeded", username=payload.username, session_id=session["id"])

        return LoginResponse(token=token, session_id=session["id"], username=payload.username)


@auth_router.get("/verify", response_model=VerifyResponse)
async def verify(
    authorization: Optional[str] = Header(default=None),
    sessions: SessionStore = Depends(get_sessions),
    settings: Settings = Depends(get_settings_dep),
) -> VerifyResponse:
    """Check a token's signature and that its session is still open."""
    with tracer.start_as_current_span("verify_token") as span:
        try:
            user = decode_token(parse_bearer(authorization), settings)
        except AuthenticationError:
            span.set_attribute("token.valid", False)
            raise

        if await sessions.get(user.session_id) is None:
            span.set_attribute("session.valid", False)
            raise AuthenticationError("Invalid session")

        span.set_attribute("token.valid", True)
        return VerifyResponse(username=user.username, session_id=user.session_id)


@auth_router.post("/logout", response_model=MessageResponse)
async def logout(
    payload: LogoutRequest,
    sessions: SessionStore = Depends(get_sessions),
) -> MessageResponse:
    """Close a session. Unknown session ids are accepted silently."""
    with tracer.start_as_current_span("logout") as span:
        span.set_attribute("session.id", payload.session_id)
        removed = await sessions.delete(payload.session_id)
        span.set_attribute("logout.session_found", removed)
        logger.info("logout", session_id=payload.session_id, session_found=removed)
        return MessageResponse(message="Logged out successfully")
