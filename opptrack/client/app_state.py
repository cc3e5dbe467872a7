from __future__ import annotations

import asyncio
from typing import Any, Callable, Literal

from ..observability.logging import get_logger

log = get_logger("app_state")

Section = Literal["dashboard", "opportunities", "stats"]
View = Literal["auth", "main"]

SECTIONS: tuple[str, ...] = ("dashboard", "opportunities", "stats")

Subscriber = Callable[[Any], None]


def _default_filters() -> dict[str, str]:
    return {"status": "", "category": ""}


def call_soon_scheduler(flush: Callable[[], None]) -> bool:
    """Schedule `flush` on the running event loop; False when no loop is running."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        return False
    loop.call_soon(flush)
    return True


class AppState:
    """
    In-memory mirror of the user's opportunities and statistics plus UI state.

    Updates mark keys dirty; subscribers hear about each dirty key once per
    flush, in the order the keys were first marked. The flush runs on the next
    scheduler tick (the event loop by default) or when `flush()` is called.
    """

    FIELDS = ("current_user", "opportunities", "stats", "filters", "current_section", "view")

    def __init__(
        self,
        *,
        scheduler: Callable[[Callable[[], None]], bool] = call_soon_scheduler,
        on_logout: Callable[[], None] | None = None,
    ):
        self.current_user: dict[str, Any] | None = None
        self.opportunities: list[dict[str, Any]] = []
        self.stats: dict[str, Any] | None = None
        self.filters: dict[str, str] = _default_filters()
        self.current_section: Section = "dashboard"
        self.view: View = "auth"

        self._subscribers: dict[str, list[Subscriber]] = {}
        self._dirty: dict[str, None] = {}
        self._flush_scheduled = False
        self._scheduler = scheduler
        self._on_logout = on_logout

    def set_logout_hook(self, hook: Callable[[], None] | None) -> None:
        self._on_logout = hook

    def subscribe(self, key: str, callback: Subscriber) -> Callable[[], None]:
        """Register `callback` for changes to `key`; returns an unsubscribe function."""
        if key not in self.FIELDS:
            raise KeyError(f"unknown state field: {key}")
        callbacks = self._subscribers.setdefault(key, [])
        callbacks.append(callback)

        def _unsubscribe() -> None:
            if callback in callbacks:
                callbacks.remove(callback)

        return _unsubscribe

    def update(self, key: str, value: Any) -> bool:
        """Set `key` and schedule a notification; no-op when the value is unchanged."""
        if key not in self.FIELDS:
            raise KeyError(f"unknown state field: {key}")
        current = getattr(self, key)
        if value is current or value == current:
            return False
        setattr(self, key, value)
        self._mark_dirty(key)
        return True

    @property
    def pending_keys(self) -> list[str]:
        return list(self._dirty)

    def flush(self) -> list[str]:
        """Notify subscribers of every dirty key; returns the keys notified."""
        self._flush_scheduled = False
        keys = list(self._dirty)
        self._dirty.clear()
        for key in keys:
            self._notify(key)
        return keys

    def has_recent_dashboard_data(self) -> bool:
        return bool(self.opportunities) and self.stats is not None

    def logout(self) -> None:
        """Tear down all user data; safe to call when already logged out."""
        self.update("current_user", None)
        self.update("opportunities", [])
        self.update("stats", None)
        self.update("filters", _default_filters())
        self.update("current_section", "dashboard")
        self.update("view", "auth")
        if self._on_logout is not None:
            self._on_logout()

    def _mark_dirty(self, key: str) -> None:
        self._dirty.setdefault(key, None)
        if self._flush_scheduled:
            return
        self._flush_scheduled = bool(self._scheduler(self.flush))

    def _notify(self, key: str) -> None:
        value = getattr(self, key)
        for callback in list(self._subscribers.get(key) or []):
            try:
                callback(value)
            except Exception:
                log.exception("subscriber_callback_failed", key=key)
