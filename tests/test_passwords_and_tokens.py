from __future__ import annotations

import time

import pytest
from jose import jwt

from opptrack.services.passwords import hash_password, verify_password
from opptrack.services.tokens import TokenError, issue_token, verify_bearer_token


def test_password_hash_round_trip_and_salting():
    a = hash_password("hunter22", iterations=1000)
    b = hash_password("hunter22", iterations=1000)

    assert a.startswith("pbkdf2_sha256$1000$")
    assert a != b
    assert verify_password("hunter22", a)
    assert not verify_password("hunter23", a)


@pytest.mark.parametrize("encoded", [None, "", "plain", "md5$1$a$b", "pbkdf2_sha256$x$a$b"])
def test_malformed_hashes_never_verify(encoded):
    assert verify_password("anything", encoded) is False


def test_token_carries_user_and_expires_in_configured_hours(jwt_secret):
    now = int(time.time())
    token = issue_token(user_id="u1", email="a@example.com", now=now)

    user = verify_bearer_token(token)
    assert user.sub == "u1"
    assert user.email == "a@example.com"
    assert user.claims["exp"] - user.claims["iat"] == 24 * 3600


def test_missing_token_is_401(jwt_secret):
    with pytest.raises(TokenError) as exc:
        verify_bearer_token("")
    assert exc.value.status_code == 401


def test_expired_token_is_403(jwt_secret):
    token = issue_token(user_id="u1", email="a@example.com", now=int(time.time()) - 48 * 3600)
    with pytest.raises(TokenError) as exc:
        verify_bearer_token(token)
    assert exc.value.status_code == 403
    assert str(exc.value) == "Token expired"


def test_forged_or_incomplete_tokens_are_403(jwt_secret):
    forged = jwt.encode({"userId": "u1", "exp": int(time.time()) + 60}, "other-secret", algorithm="HS256")
    anonymous = jwt.encode({"exp": int(time.time()) + 60}, jwt_secret, algorithm="HS256")

    for token in (forged, anonymous, "not.a.jwt"):
        with pytest.raises(TokenError) as exc:
            verify_bearer_token(token)
        assert exc.value.status_code == 403


def test_signing_without_secret_fails_loudly(monkeypatch):
    from opptrack.settings import settings

    monkeypatch.setattr(settings, "jwt_secret", None)
    with pytest.raises(RuntimeError):
        issue_token(user_id="u1", email="a@example.com")
