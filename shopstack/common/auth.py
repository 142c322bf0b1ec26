"""
JWT issuing and bearer-token checks shared by the services.

Tokens are HS256 with claims user_id, username, session_id, iat, exp.
The auth service issues them; product/cart/order only verify the signature
and expiry.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends, Header, Request
from opentelemetry import trace

from ..config import Settings
from .errors import AuthenticationError


@dataclass(frozen=True)
class UserContext:
    """Identity carried by a validated token."""

    user_id: str
    username: str
    session_id: str


def issue_token(username: str, session_id: str, settings: Settings) -> str:
    now = datetime.now(timezone.utc)
    claims = {
        "user_id": session_id,
        "username": username,
        "session_id": session_id,
        "iat": now,
        "exp": now + timedelta(hours=settings.jwt_expiry_hours),
    }
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str, settings: Settings) -> UserContext:
    """
    Validate a token and return its identity.

    Raises:
        AuthenticationError: bad signature, expired or missing claims
    """
    try:
        claims = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token expired")
    except jwt.InvalidTokenError:
        raise AuthenticationError("Invalid token")

    session_id = claims.get("session_id")
    username = claims.get("username")
    if not session_id or not username:
        raise AuthenticationError("Invalid token")

    return UserContext(
        user_id=claims.get("user_id", session_id),
        username=username,
        session_id=session_id,
    )


def parse_bearer(authorization: Optional[str]) -> str:
    """Token from an `Authorization: Bearer <token>` header value."""
    if not authorization:
        raise AuthenticationError("Authorization header required")

    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
        raise AuthenticationError("Invalid authorization format")
    return parts[1]


def get_settings_dep(request: Request) -> Settings:
    return request.app.state.settings


async def get_current_user(
    authorization: Optional[str] = Header(default=None),
    settings: Settings = Depends(get_settings_dep),
) -> UserContext:
    """FastAPI dependency: the caller's identity, or 401."""
    user = decode_token(parse_bearer(authorization), settings)
    trace.get_current_span().set_attribute("enduser.id", user.user_id)
    return user
