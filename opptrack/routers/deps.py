from __future__ import annotations

from fastapi import HTTPException, Request


def current_user_id(request: Request) -> str:
    user = getattr(request.state, "user", None)
    sub = str(getattr(user, "sub", "") or "").strip() if user else ""
    if not sub:
        raise HTTPException(status_code=401, detail="Access token required")
    return sub
