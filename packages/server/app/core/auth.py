"""
Authentication for the Kanban service.

The identity provider issues signed JWTs whose ``sub`` claim is the profile id.
This service never logs anyone in; it only verifies those tokens and hands the
resulting principal to the route handlers, which authorize through the access
policy.

Supports:
- Bearer tokens in the Authorization header (API clients)
- The session cookie (browser clients, CSRF-protected by middleware)
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
import structlog
from fastapi import Depends, HTTPException, Request
from fastapi.security import APIKeyHeader

from app.core.config import get_settings

log = structlog.get_logger()
settings = get_settings()

authorization_header = APIKeyHeader(name="Authorization", auto_error=False)


# ---------------------------------------------------------------------------
# JWT
# ---------------------------------------------------------------------------

def create_jwt(
    profile_id: uuid.UUID,
    *,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a signed access token in the identity provider's format."""
    now = datetime.now(timezone.utc)
    exp = now + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    payload = {
        "sub": str(profile_id),
        "aud": settings.jwt_audience,
        "role": "authenticated",
        "iat": now,
        "exp": exp,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_jwt(token: str) -> dict:
    """Decode and verify a JWT. Raises jwt.PyJWTError on failure."""
    return jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=[settings.jwt_algorithm],
        audience=settings.jwt_audience,
    )


# ---------------------------------------------------------------------------
# Authentication dependency
# ---------------------------------------------------------------------------

class CurrentPrincipal:
    """The authenticated identity making the request."""

    def __init__(self, profile_id: uuid.UUID, claims: dict):
        self.profile_id = profile_id
        self.claims = claims

    def __repr__(self) -> str:
        return f"CurrentPrincipal(profile_id={self.profile_id})"


def _principal_from_token(token: str) -> CurrentPrincipal:
    try:
        payload = decode_jwt(token)
    except jwt.PyJWTError:
        raise HTTPException(status_code=401, detail="Invalid or expired session")

    try:
        profile_id = uuid.UUID(payload["sub"])
    except (KeyError, ValueError, TypeError):
        raise HTTPException(status_code=401, detail="Invalid token subject")

    return CurrentPrincipal(profile_id=profile_id, claims=payload)


async def get_current_principal(
    request: Request,
    authorization: Optional[str] = Depends(authorization_header),
) -> CurrentPrincipal:
    """Main authentication dependency. Tries the bearer token, then the session cookie."""
    if authorization and authorization.startswith("Bearer "):
        principal = _principal_from_token(authorization[7:].strip())
        request.state.principal = principal
        return principal

    token = request.cookies.get(settings.session_cookie_name)
    if token:
        principal = _principal_from_token(token)
        request.state.principal = principal
        return principal

    raise HTTPException(status_code=401, detail="Unauthorized")
