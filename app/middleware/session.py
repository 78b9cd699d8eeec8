from __future__ import annotations

from starlette.middleware.base import BaseHTTPMiddleware

from app.core.config import SESSION_COOKIE_NAME
from app.services.session import decode_session


class SessionMiddleware(BaseHTTPMiddleware):
    """Decodes the signed session cookie once per request."""

    async def dispatch(self, request, call_next):
        request.state.session_payload = None

        token = request.cookies.get(SESSION_COOKIE_NAME)
        if token:
            request.state.session_payload = decode_session(token)

        return await call_next(request)
