from __future__ import annotations

from fastapi import APIRouter, HTTPException

from ..db.dynamodb.errors import DdbConflict
from ..models import Credentials
from ..observability.logging import get_logger
from ..repositories.users_repo import create_user, get_user_by_email
from ..services.passwords import hash_password, verify_password
from ..services.tokens import issue_token

router = APIRouter(tags=["authentication"])
log = get_logger("auth")

MIN_PASSWORD_LENGTH = 6


@router.post("/register", status_code=201)
def register(body: Credentials):
    if not body.email or not body.password:
        raise HTTPException(status_code=400, detail="Email and password required")
    if len(body.password) < MIN_PASSWORD_LENGTH:
        raise HTTPException(
            status_code=400,
            detail=f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
        )

    try:
        user = create_user(email=body.email, password_hash=hash_password(body.password))
    except DdbConflict:
        raise HTTPException(status_code=400, detail="User already exists")

    log.info("user_registered", user_id=user["userId"])
    token = issue_token(user_id=user["userId"], email=user["email"])
    return {"token": token, "userId": user["userId"]}


@router.post("/login")
def login(body: Credentials):
    user = get_user_by_email(body.email) if body.email else None
    if not user or not verify_password(body.password, user.get("passwordHash")):
        log.info("login_rejected")
        raise HTTPException(status_code=401, detail="Invalid credentials")

    token = issue_token(user_id=user["userId"], email=user["email"])
    return {"token": token, "userId": user["userId"]}
