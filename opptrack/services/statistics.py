from __future__ import annotations

from typing import Any, Iterable

from ..models import CATEGORIES, STATUSES


def empty_statistics() -> dict[str, Any]:
    return {
        "total": 0,
        **{s: 0 for s in STATUSES},
        "byCategory": {c: 0 for c in CATEGORIES},
    }


def compute_statistics(opportunities: Iterable[dict[str, Any]]) -> dict[str, Any]:
    """
    Aggregate counts per status and per category.

    Values outside the known enumerations only contribute to `total`.
    """
    stats = empty_statistics()
    by_category = stats["byCategory"]
    for opp in opportunities:
        if not isinstance(opp, dict):
            continue
        stats["total"] += 1
        status = str(opp.get("status") or "")
        if status in STATUSES:
            stats[status] += 1
        category = str(opp.get("category") or "")
        if category in by_category:
            by_category[category] += 1
    return stats
