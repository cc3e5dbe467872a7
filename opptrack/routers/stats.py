from __future__ import annotations

from fastapi import APIRouter, Depends

from ..repositories.opportunities_repo import list_opportunities_for_user
from ..services.statistics import compute_statistics
from .deps import current_user_id

router = APIRouter(tags=["statistics"])


@router.get("/stats")
def get_stats(user_id: str = Depends(current_user_id)):
    return compute_statistics(list_opportunities_for_user(user_id))
