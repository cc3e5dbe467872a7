from __future__ import annotations

import base64
import hashlib
import hmac
import os

from ..settings import settings

_SCHEME = "pbkdf2_sha256"


def _b64(raw: bytes) -> str:
    return base64.b64encode(raw).decode("ascii")


def hash_password(password: str, *, iterations: int | None = None) -> str:
    """Return `pbkdf2_sha256$<iterations>$<salt>$<digest>`."""
    rounds = int(iterations or settings.password_hash_iterations)
    salt = os.urandom(16)
    digest = hashlib.pbkdf2_hmac("sha256", str(password).encode("utf-8"), salt, rounds)
    return "$".join([_SCHEME, str(rounds), _b64(salt), _b64(digest)])


def verify_password(password: str, encoded: str | None) -> bool:
    parts = str(encoded or "").split("$")
    if len(parts) != 4 or parts[0] != _SCHEME:
        return False
    try:
        rounds = int(parts[1])
        salt = base64.b64decode(parts[2])
        expected = base64.b64decode(parts[3])
    except ValueError:
        return False
    digest = hashlib.pbkdf2_hmac("sha256", str(password).encode("utf-8"), salt, rounds)
    return hmac.compare_digest(digest, expected)
