from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import Any

from boto3.dynamodb.conditions import Attr, Key

from ..db.dynamodb.table import get_main_table

_INTERNAL_KEYS = ("pk", "sk", "gsi1pk", "gsi1sk", "gsi2pk", "gsi2sk", "entityType", "opportunityId")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def opportunity_key(opportunity_id: str) -> dict[str, str]:
    oid = str(opportunity_id or "").strip()
    if not oid:
        raise ValueError("opportunity_id is required")
    return {"pk": f"OPPORTUNITY#{oid}", "sk": "PROFILE"}


def _owner_pk(user_id: str) -> str:
    return f"USER#{user_id}"


def _status_pk(status: str) -> str:
    return f"STATUS#{status}"


def _deadline_sk(deadline: str, opportunity_id: str) -> str:
    # ISO dates sort lexicographically, so the index is ordered by deadline.
    return f"{deadline}#{opportunity_id}"


def _index_attrs(*, user_id: str, status: str, deadline: str, opportunity_id: str) -> dict[str, str]:
    sk = _deadline_sk(deadline, opportunity_id)
    return {
        "gsi1pk": _owner_pk(user_id),
        "gsi1sk": sk,
        "gsi2pk": _status_pk(status),
        "gsi2sk": sk,
    }


def normalize_opportunity_for_api(item: dict[str, Any] | None) -> dict[str, Any] | None:
    if not item:
        return None
    out = dict(item)
    out["id"] = str(item.get("opportunityId") or "").strip() or None
    for k in _INTERNAL_KEYS:
        out.pop(k, None)
    return out


def create_opportunity(
    *,
    user_id: str,
    title: str,
    category: str,
    deadline: date | str,
    description: str = "",
) -> dict[str, Any]:
    uid = str(user_id or "").strip()
    if not uid:
        raise ValueError("user_id is required")

    oid = uuid.uuid4().hex
    dl = deadline.isoformat() if isinstance(deadline, date) else str(deadline)
    now = _now_iso()
    item: dict[str, Any] = {
        **opportunity_key(oid),
        "entityType": "Opportunity",
        "opportunityId": oid,
        "userId": uid,
        "title": str(title),
        "description": str(description or ""),
        "category": str(category),
        "deadline": dl,
        "status": "pending",
        "createdAt": now,
        "updatedAt": now,
        **_index_attrs(user_id=uid, status="pending", deadline=dl, opportunity_id=oid),
    }
    get_main_table().put_item(item=item, condition_expression="attribute_not_exists(pk)")
    return normalize_opportunity_for_api(item) or {}


def get_opportunity_by_id(opportunity_id: str) -> dict[str, Any] | None:
    it = get_main_table().get_item(key=opportunity_key(opportunity_id))
    return normalize_opportunity_for_api(it)


def update_opportunity(existing: dict[str, Any], patch: dict[str, Any]) -> dict[str, Any] | None:
    """
    Apply `patch` to an opportunity already loaded by the caller.

    Index attributes follow status/deadline so owner listings and the reminder
    scan stay consistent with the record.
    """
    oid = str(existing.get("id") or "").strip()
    if not oid:
        raise ValueError("opportunity id is required")

    allowed = {"title", "description", "category", "deadline", "status"}
    updates = {k: v for k, v in (patch or {}).items() if k in allowed and v is not None}

    merged = {**existing, **updates}
    updates.update(
        _index_attrs(
            user_id=str(merged.get("userId") or ""),
            status=str(merged.get("status") or "pending"),
            deadline=str(merged.get("deadline") or ""),
            opportunity_id=oid,
        )
    )
    updates["updatedAt"] = _now_iso()

    expr_parts: list[str] = []
    expr_names: dict[str, str] = {}
    expr_values: dict[str, Any] = {}
    for i, (k, v) in enumerate(updates.items(), start=1):
        expr_names[f"#k{i}"] = k
        expr_values[f":v{i}"] = v
        expr_parts.append(f"#k{i} = :v{i}")

    updated = get_main_table().update_item(
        key=opportunity_key(oid),
        update_expression="SET " + ", ".join(expr_parts),
        expression_attribute_names=expr_names,
        expression_attribute_values=expr_values,
        condition_expression="attribute_exists(pk)",
        return_values="ALL_NEW",
    )
    return normalize_opportunity_for_api(updated)


def delete_opportunity(opportunity_id: str) -> None:
    get_main_table().delete_item(key=opportunity_key(opportunity_id))


def list_opportunities_for_user(
    user_id: str,
    *,
    status: str | None = None,
    category: str | None = None,
) -> list[dict[str, Any]]:
    """Owner's opportunities ordered by deadline (earliest first)."""
    flt = None
    if status:
        flt = Attr("status").eq(status)
    if category:
        cat = Attr("category").eq(category)
        flt = cat if flt is None else flt & cat

    items = get_main_table().query_all(
        index_name="GSI1",
        key_condition_expression=Key("gsi1pk").eq(_owner_pk(user_id)),
        scan_index_forward=True,
        filter_expression=flt,
    )
    out: list[dict[str, Any]] = []
    for it in items:
        norm = normalize_opportunity_for_api(it)
        if norm:
            out.append(norm)
    return out


def list_pending_due_between(start: date, end: date) -> list[dict[str, Any]]:
    """Pending opportunities (all owners) with start <= deadline <= end."""
    items = get_main_table().query_all(
        index_name="GSI2",
        key_condition_expression=Key("gsi2pk").eq(_status_pk("pending"))
        & Key("gsi2sk").between(f"{start.isoformat()}#", f"{end.isoformat()}#\uffff"),
        scan_index_forward=True,
    )
    return [o for o in (normalize_opportunity_for_api(it) for it in items) if o]
