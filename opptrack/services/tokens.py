from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any

from jose import ExpiredSignatureError, JWTError, jwt

from ..settings import settings

_ALGORITHM = "HS256"


class TokenError(Exception):
    """Bearer token rejected; status_code follows the API's 401/403 split."""

    def __init__(self, message: str, *, status_code: int = 403):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class VerifiedUser:
    sub: str
    email: str | None
    claims: dict[str, Any]


def _secret() -> str:
    if not settings.jwt_secret:
        raise RuntimeError("JWT_SECRET is not set")
    return str(settings.jwt_secret)


def issue_token(*, user_id: str, email: str, now: int | None = None) -> str:
    issued_at = int(now if now is not None else time.time())
    claims = {
        "userId": str(user_id),
        "email": str(email),
        "iat": issued_at,
        "exp": issued_at + int(settings.jwt_expires_hours) * 3600,
    }
    return jwt.encode(claims, _secret(), algorithm=_ALGORITHM)


def verify_bearer_token(token: str) -> VerifiedUser:
    if not token:
        raise TokenError("Access token required", status_code=401)
    try:
        claims = jwt.decode(token, _secret(), algorithms=[_ALGORITHM])
    except ExpiredSignatureError as e:
        raise TokenError("Token expired") from e
    except JWTError as e:
        raise TokenError("Invalid token") from e

    sub = str(claims.get("userId") or "")
    if not sub:
        raise TokenError("Invalid token")
    email = claims.get("email")
    return VerifiedUser(sub=sub, email=str(email) if email is not None else None, claims=claims)
