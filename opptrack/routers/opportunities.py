from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from ..models import Category, OpportunityCreate, OpportunityUpdate, Status
from ..repositories.opportunities_repo import (
    create_opportunity,
    delete_opportunity,
    get_opportunity_by_id,
    list_opportunities_for_user,
    update_opportunity,
)
from .deps import current_user_id

router = APIRouter(tags=["opportunities"])


def _owned_or_raise(opportunity_id: str, user_id: str) -> dict[str, Any]:
    oid = str(opportunity_id or "").strip()
    if not oid:
        raise HTTPException(status_code=400, detail="id is required")
    opp = get_opportunity_by_id(oid)
    if not opp:
        raise HTTPException(status_code=404, detail="Opportunity not found")
    if str(opp.get("userId") or "") != user_id:
        raise HTTPException(status_code=403, detail="Access denied")
    return opp


@router.get("/opportunities")
def list_opportunities(
    status: Status | None = None,
    category: Category | None = None,
    user_id: str = Depends(current_user_id),
):
    return list_opportunities_for_user(user_id, status=status, category=category)


@router.post("/opportunities", status_code=201)
def create_one(body: OpportunityCreate, user_id: str = Depends(current_user_id)):
    return create_opportunity(
        user_id=user_id,
        title=body.title,
        description=body.description,
        category=body.category,
        deadline=body.deadline,
    )


@router.get("/opportunities/{opportunityId}")
def get_one(opportunityId: str, user_id: str = Depends(current_user_id)):
    return _owned_or_raise(opportunityId, user_id)


@router.put("/opportunities/{opportunityId}")
def update_one(opportunityId: str, body: OpportunityUpdate, user_id: str = Depends(current_user_id)):
    existing = _owned_or_raise(opportunityId, user_id)
    updated = update_opportunity(existing, body.patch())
    return {"message": "Opportunity updated successfully", "opportunity": updated}


@router.delete("/opportunities/{opportunityId}")
def delete_one(opportunityId: str, user_id: str = Depends(current_user_id)):
    existing = _owned_or_raise(opportunityId, user_id)
    delete_opportunity(str(existing["id"]))
    return {"message": "Opportunity deleted successfully"}
