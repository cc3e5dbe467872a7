from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any

from ..observability.logging import configure_logging, get_logger
from ..services.reminders import plan_reminders, send_reminders
from ..settings import settings


log = get_logger("reminder_worker")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def run_once(*, today: date | None = None, window_days: int | None = None) -> dict[str, Any]:
    """
    Email every owner a digest of their pending opportunities due within the window.
    Intended to run once a day as a scheduled task.
    """
    started_at = _now_iso()
    from_email = str(settings.reminder_from_email or "").strip()
    if not from_email:
        out = {"ok": False, "startedAt": started_at, "finishedAt": _now_iso(), "error": "REMINDER_FROM_EMAIL not set"}
        log.warning("reminders_skipped", **out)
        return out

    day = today or datetime.now(timezone.utc).date()
    window = settings.reminder_window_days if window_days is None else int(window_days)

    planned, counts = plan_reminders(today=day, window_days=window)
    delivery = send_reminders(planned, from_email=from_email)

    out = {
        "ok": True,
        "startedAt": started_at,
        "finishedAt": _now_iso(),
        "today": day.isoformat(),
        "windowDays": window,
        **counts,
        **delivery,
    }
    log.info("reminders_done", **out)
    return out


if __name__ == "__main__":
    configure_logging(level="INFO")
    run_once()
