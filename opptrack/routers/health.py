from __future__ import annotations

from fastapi import APIRouter

from .. import __version__
from ..settings import settings

router = APIRouter()


@router.get("/", tags=["health"])
def health():
    return {
        "message": "Opportunity Tracker API",
        "version": __version__,
        "status": "running",
        "port": settings.port,
        "environment": settings.normalized_environment,
        "dynamodb": "configured" if settings.ddb_table_name else "missing",
        "endpoints": [
            "POST /api/register",
            "POST /api/login",
            "GET /api/opportunities",
            "POST /api/opportunities",
            "GET /api/opportunities/{id}",
            "PUT /api/opportunities/{id}",
            "DELETE /api/opportunities/{id}",
            "GET /api/stats",
        ],
    }
