from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from ..db.dynamodb.table import get_main_table


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def normalize_email(email: str | None) -> str:
    return str(email or "").strip().lower()


def user_key(user_id: str) -> dict[str, str]:
    uid = str(user_id or "").strip()
    if not uid:
        raise ValueError("user_id is required")
    return {"pk": f"USER#{uid}", "sk": "PROFILE"}


def email_key(email: str) -> dict[str, str]:
    e = normalize_email(email)
    if not e:
        raise ValueError("email is required")
    return {"pk": f"EMAIL#{e}", "sk": "LOOKUP"}


def normalize_user(item: dict[str, Any] | None) -> dict[str, Any] | None:
    if not item:
        return None
    out = dict(item)
    for k in ("pk", "sk", "entityType"):
        out.pop(k, None)
    return out


def create_user(*, email: str, password_hash: str) -> dict[str, Any]:
    """
    Create the user profile and claim the email in one transaction.

    Raises DdbConflict when the email is already registered.
    """
    e = normalize_email(email)
    user_id = uuid.uuid4().hex
    now = _now_iso()
    profile = {
        **user_key(user_id),
        "entityType": "User",
        "userId": user_id,
        "email": e,
        "passwordHash": str(password_hash),
        "createdAt": now,
    }
    lookup = {**email_key(e), "entityType": "EmailLookup", "userId": user_id, "createdAt": now}

    t = get_main_table()
    t.transact_write(
        puts=[
            t.tx_put(item=lookup, condition_expression="attribute_not_exists(pk)"),
            t.tx_put(item=profile, condition_expression="attribute_not_exists(pk)"),
        ]
    )
    return normalize_user(profile) or {}


def get_user_by_id(user_id: str) -> dict[str, Any] | None:
    return normalize_user(get_main_table().get_item(key=user_key(user_id)))


def get_user_by_email(email: str) -> dict[str, Any] | None:
    e = normalize_email(email)
    if not e:
        return None
    lookup = get_main_table().get_item(key=email_key(e))
    uid = str((lookup or {}).get("userId") or "").strip()
    if not uid:
        return None
    return get_user_by_id(uid)


def get_emails_for_users(user_ids: list[str]) -> dict[str, str]:
    out: dict[str, str] = {}
    for uid in dict.fromkeys(u for u in user_ids if u):
        user = get_user_by_id(uid)
        email = normalize_email((user or {}).get("email"))
        if email:
            out[uid] = email
    return out
