from __future__ import annotations

import hmac
import secrets
import time
from typing import Any, Dict, Optional

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from app.core.config import SESSION_MAX_AGE_SECONDS, SESSION_SECRET

SESSION_SALT = "oms-session"


def _serializer() -> URLSafeTimedSerializer:
    if not SESSION_SECRET:
        raise RuntimeError("SESSION_SECRET is not configured.")
    return URLSafeTimedSerializer(SESSION_SECRET, salt=SESSION_SALT)


def issue_csrf_token() -> str:
    return secrets.token_hex(32)


def create_session(user_id: int, *, csrf_token: str | None = None) -> str:
    """Sign a session for an authenticated user.

    Sessions are normally minted by the login module; the payload layout here
    is the contract the customer handlers read.
    """
    payload = {
        "logged_in": True,
        "user_id": user_id,
        "csrf_token": csrf_token or issue_csrf_token(),
        "exp": int(time.time()) + SESSION_MAX_AGE_SECONDS,
    }
    return _serializer().dumps(payload)


def decode_session(token: str) -> Optional[Dict[str, Any]]:
    try:
        payload = _serializer().loads(token, max_age=SESSION_MAX_AGE_SECONDS)
    except (BadSignature, SignatureExpired, ValueError):
        return None
    if not isinstance(payload, dict):
        return None
    exp = payload.get("exp")
    if exp is not None:
        try:
            if int(exp) < int(time.time()):
                return None
        except (TypeError, ValueError):
            return None
    return payload


def csrf_tokens_match(submitted: str | None, expected: str | None) -> bool:
    if not submitted or not expected:
        return False
    return hmac.compare_digest(submitted.encode("utf-8"), expected.encode("utf-8"))

