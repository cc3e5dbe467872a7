from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable

from .models import CATEGORY_LABELS, STATUS_LABELS

URGENT_WITHIN_DAYS = 7


def format_category(category: str | None) -> str:
    c = str(category or "")
    return CATEGORY_LABELS.get(c, c)


def format_status(status: str | None) -> str:
    s = str(status or "")
    return STATUS_LABELS.get(s, s)


def parse_deadline(value: Any) -> date | None:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value or "")[:10])
    except ValueError:
        return None


def format_date(value: Any) -> str:
    d = parse_deadline(value)
    if d is None:
        return "Invalid Date"
    return f"{d.strftime('%b')} {d.day}, {d.year}"


def days_left_label(days_left: int) -> str:
    if days_left == 0:
        return "Due Today!"
    if days_left == 1:
        return "Due Tomorrow"
    return f"{days_left} days left"


@dataclass(frozen=True)
class UpcomingDeadline:
    opportunity: dict[str, Any]
    deadline: date
    days_left: int

    @property
    def is_urgent(self) -> bool:
        return self.days_left <= URGENT_WITHIN_DAYS

    @property
    def label(self) -> str:
        return days_left_label(self.days_left)


def upcoming_deadlines(
    opportunities: Iterable[dict[str, Any]],
    *,
    today: date,
    limit: int | None = 5,
) -> list[UpcomingDeadline]:
    """Pending opportunities due today or later, earliest first."""
    out: list[UpcomingDeadline] = []
    for opp in opportunities:
        if str(opp.get("status") or "") != "pending":
            continue
        d = parse_deadline(opp.get("deadline"))
        if d is None or d < today:
            continue
        out.append(UpcomingDeadline(opportunity=opp, deadline=d, days_left=(d - today).days))
    out.sort(key=lambda u: (u.deadline, str(u.opportunity.get("title") or "")))
    return out if limit is None else out[: max(0, int(limit))]
