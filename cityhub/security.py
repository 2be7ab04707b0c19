from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import jwt

_JWT_ALG = "HS256"
SESSION_TTL_DAYS = 7


def create_session_token(
    *,
    secret: str,
    user_id: str,
    email: str | None,
    role: str | None,
    expires_days: int = SESSION_TTL_DAYS,
) -> str:
    if not secret:
        raise ValueError("jwt_secret_blank")

    now = datetime.now(timezone.utc)
    exp = now + timedelta(days=max(1, int(expires_days)))

    payload: Dict[str, Any] = {
        "id": user_id,
        "email": email,
        "role": role,
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
    }
    return jwt.encode(payload, secret, algorithm=_JWT_ALG)


def decode_session_token(*, token: str, secret: str) -> Dict[str, Any]:
    if not token:
        raise ValueError("token_blank")
    if not secret:
        raise ValueError("jwt_secret_blank")
    return jwt.decode(token, secret, algorithms=[_JWT_ALG])
