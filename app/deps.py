# app/deps.py
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, Request, status

from app.core.config import CUSTOMER_UPDATE_METHOD, SESSION_COOKIE_NAME
from app.services.customer_update import UpdateRequestContext
from app.services.session import decode_session

logger = logging.getLogger(__name__)


def _coerce_user_id(raw: Any) -> Optional[int]:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw if raw > 0 else None
    if isinstance(raw, str):
        raw = raw.strip()
        if raw.isdigit() and int(raw) > 0:
            return int(raw)
    return None


def get_session_payload(request: Request) -> Dict[str, Any]:
    """Session decoded by SessionMiddleware, or straight from the cookie."""
    if hasattr(request.state, "session_payload"):
        return request.state.session_payload or {}

    token = request.cookies.get(SESSION_COOKIE_NAME)
    if not token:
        return {}
    return decode_session(token) or {}


async def get_submitted_fields(request: Request) -> Dict[str, Any]:
    if request.method.upper() != CUSTOMER_UPDATE_METHOD:
        return {}

    content_type = (request.headers.get("content-type") or "").lower()
    if content_type.startswith("application/json"):
        try:
            body = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.warning("Malformed JSON body on %s", request.url.path)
            return {}
        return body if isinstance(body, dict) else {}

    form = await request.form()
    return {key: value for key, value in form.items() if isinstance(value, str)}


def get_update_context(
    request: Request,
    fields: Dict[str, Any] = Depends(get_submitted_fields),
) -> UpdateRequestContext:
    payload = get_session_payload(request)
    submitted_token = fields.get("csrf_token")
    session_token = payload.get("csrf_token")
    return UpdateRequestContext(
        authenticated=payload.get("logged_in") is True,
        user_id=_coerce_user_id(payload.get("user_id")),
        method=request.method,
        session_csrf_token=session_token if isinstance(session_token, str) else None,
        submitted_csrf_token=submitted_token if isinstance(submitted_token, str) else None,
    )


def require_session_user(request: Request) -> int:
    payload = get_session_payload(request)
    user_id = _coerce_user_id(payload.get("user_id"))
    if payload.get("logged_in") is not True or user_id is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized access. Please login again.")
    return user_id
