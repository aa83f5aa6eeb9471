"""
Response hardening and double-submit CSRF checks for cookie sessions.
"""

from __future__ import annotations

import secrets

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from app.core.config import get_settings
from kanban_shared.schemas.common import APIError, ErrorBody

settings = get_settings()

SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})
CSRF_HEADER = "X-CSRF-Token"

# The API only serves JSON, so nothing may be framed or loaded from it.
SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none';",
    "Cache-Control": "no-store",
}


def generate_csrf_token() -> str:
    return secrets.token_urlsafe(32)


def csrf_failure() -> JSONResponse:
    body = APIError(
        error=ErrorBody(
            code="CSRF_VALIDATION_FAILED",
            message="Invalid or missing CSRF token.",
            status=403,
        )
    )
    return JSONResponse(status_code=403, content=body.model_dump())


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Stamp every response with SECURITY_HEADERS, keeping any a route already set."""

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        for header, value in SECURITY_HEADERS.items():
            response.headers.setdefault(header, value)
        return response


class CSRFMiddleware(BaseHTTPMiddleware):
    """
    Double-submit cookie check for browser sessions.

    Only requests that ride on the session cookie are checked. Bearer
    requests carry no ambient credential and pass straight through.
    A session holder reading the API without a CSRF cookie is handed one,
    so the client can echo it back in the X-CSRF-Token header on writes.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        has_session = settings.session_cookie_name in request.cookies
        cookie_token = request.cookies.get(settings.csrf_cookie_name)

        if request.method in SAFE_METHODS:
            response = await call_next(request)
            if has_session and not cookie_token:
                response.set_cookie(
                    key=settings.csrf_cookie_name,
                    value=generate_csrf_token(),
                    httponly=False,  # the browser client reads it
                    secure=not settings.debug,
                    samesite="lax",
                    path="/",
                )
            return response

        if request.headers.get("Authorization") or not has_session:
            return await call_next(request)

        header_token = request.headers.get(CSRF_HEADER)
        if not cookie_token or not header_token:
            return csrf_failure()
        if not secrets.compare_digest(cookie_token.encode(), header_token.encode()):
            return csrf_failure()

        return await call_next(request)
