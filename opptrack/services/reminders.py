from __future__ import annotations

from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any

from ..formatting import format_category, format_date, upcoming_deadlines
from ..observability.logging import get_logger
from ..repositories.opportunities_repo import list_pending_due_between
from ..repositories.users_repo import get_emails_for_users
from ..settings import settings
from .email_ses import send_text_email

log = get_logger("deadline_reminders")


@dataclass
class ReminderEmail:
    user_id: str
    to_email: str
    subject: str
    text: str
    count: int


def group_by_owner(opportunities: list[dict[str, Any]]) -> dict[str, list[dict[str, Any]]]:
    grouped: dict[str, list[dict[str, Any]]] = defaultdict(list)
    for opp in opportunities:
        uid = str(opp.get("userId") or "").strip()
        if uid:
            grouped[uid].append(opp)
    return dict(grouped)


def build_reminder_text(opportunities: list[dict[str, Any]], *, today: date) -> tuple[str, str]:
    upcoming = upcoming_deadlines(opportunities, today=today, limit=None)
    n = len(upcoming)
    subject = f"{n} opportunity deadline{'s' if n != 1 else ''} coming up"

    lines = ["Here are your pending opportunities with deadlines coming up:", ""]
    for u in upcoming:
        title = str(u.opportunity.get("title") or "(untitled)")
        lines.append(
            f"- {title} [{format_category(u.opportunity.get('category'))}] "
            f"due {format_date(u.deadline)} ({u.label})"
        )
    lines.append("")
    lines.append("Update the status once you have submitted to stop these reminders.")
    return subject, "\n".join(lines)


def plan_reminders(
    *,
    today: date,
    window_days: int,
) -> tuple[list[ReminderEmail], dict[str, int]]:
    """Collect pending opportunities due within the window and build one email per owner."""
    end = today + timedelta(days=max(0, int(window_days)))
    due = list_pending_due_between(today, end)
    grouped = group_by_owner(due)
    emails = get_emails_for_users(list(grouped.keys()))

    planned: list[ReminderEmail] = []
    skipped = 0
    for uid, opps in grouped.items():
        to_email = emails.get(uid)
        if not to_email:
            skipped += 1
            log.warning("reminder_owner_without_email", user_id=uid, count=len(opps))
            continue
        subject, text = build_reminder_text(opps, today=today)
        planned.append(ReminderEmail(user_id=uid, to_email=to_email, subject=subject, text=text, count=len(opps)))

    return planned, {"opportunities": len(due), "owners": len(grouped), "skipped": skipped}


def _send_one(email: ReminderEmail, from_email: str) -> bool:
    try:
        res = send_text_email(
            to_email=email.to_email,
            from_email=from_email,
            subject=email.subject,
            text=email.text,
        )
    except Exception:
        log.exception("reminder_send_failed", user_id=email.user_id)
        return False
    if not res.get("ok"):
        log.warning("reminder_send_rejected", user_id=email.user_id, error=res.get("error"))
        return False
    log.info("reminder_sent", user_id=email.user_id, count=email.count, message_id=res.get("messageId"))
    return True


def send_reminders(
    planned: list[ReminderEmail],
    *,
    from_email: str,
    max_workers: int | None = None,
) -> dict[str, int]:
    if not planned:
        return {"sent": 0, "failed": 0}
    workers = max(1, min(len(planned), int(max_workers or settings.reminder_max_workers)))
    with ThreadPoolExecutor(max_workers=workers) as pool:
        results = list(pool.map(lambda e: _send_one(e, from_email), planned))
    sent = sum(1 for ok in results if ok)
    return {"sent": sent, "failed": len(results) - sent}
