from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import date
from typing import Any

import httpx

from ..formatting import UpcomingDeadline, upcoming_deadlines
from ..observability.logging import get_logger
from ..settings import Settings, get_settings
from .app_state import SECTIONS, AppState
from .cache import ResponseCache
from .credentials import CredentialStore
from .errors import TransportError
from .request_client import ApiResult, RequestClient

log = get_logger("tracker_session")

REQUIRED_FIELDS = ("title", "category", "deadline")


@dataclass(frozen=True)
class Outcome:
    ok: bool
    message: str
    data: Any = None


class TrackerSession:
    """
    One signed-in (or signed-out) user session against the tracker API.

    Owns the cache, request client, app state and credential store for its
    lifetime; nothing here is process-global.
    """

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
        credential_store: CredentialStore | None = None,
        cache: ResponseCache | None = None,
        state: AppState | None = None,
    ):
        self.settings = settings or get_settings()
        self.credentials = (
            credential_store if credential_store is not None else CredentialStore(self.settings.credentials_path)
        )
        self.cache = (
            cache
            if cache is not None
            else ResponseCache(
                ttl_seconds=self.settings.client_cache_ttl_seconds,
                maxsize=self.settings.client_cache_maxsize,
            )
        )
        self.state = state if state is not None else AppState()
        self.state.set_logout_hook(self._teardown)
        self.client = RequestClient(
            base_url=self.settings.api_base_url,
            cache=self.cache,
            token_provider=self._token,
            on_unauthorized=self.state.logout,
            http_client=http_client,
        )
        self.editing_id: str | None = None

    # --- lifecycle ---

    def restore(self) -> bool:
        """Resume a session from the stored credential, if any."""
        token = self.credentials.load()
        if not token:
            self.state.update("view", "auth")
            return False
        self.state.update("current_user", {"token": token})
        self.state.update("view", "main")
        return True

    async def aclose(self) -> None:
        await self.client.aclose()

    def _token(self) -> str | None:
        user = self.state.current_user or {}
        return user.get("token") or None

    def _teardown(self) -> None:
        self.credentials.clear()
        self.client.clear_cache()
        self.editing_id = None
        log.info("logged_out")

    # --- authentication ---

    async def login(self, email: str, password: str) -> Outcome:
        return await self._authenticate("/login", email, password, verb="Login")

    async def register(self, email: str, password: str) -> Outcome:
        return await self._authenticate("/register", email, password, verb="Registration")

    def logout(self) -> Outcome:
        self.state.logout()
        return Outcome(ok=True, message="Logged out successfully")

    async def _authenticate(self, endpoint: str, email: str, password: str, *, verb: str) -> Outcome:
        try:
            result = await self.client.call(
                endpoint,
                method="POST",
                json={"email": email, "password": password},
                skip_cache=True,
                auth=False,
            )
        except TransportError:
            return Outcome(ok=False, message="Network error. Please try again.")

        if result is None or not result.ok or not isinstance(result.data, dict):
            msg = (result.error_message if result else None) or f"{verb} failed"
            return Outcome(ok=False, message=msg)

        token = str(result.data.get("token") or "")
        self.credentials.save(token)
        self.state.update("current_user", {"token": token, "userId": result.data.get("userId")})
        self.state.update("view", "main")
        await self.load_dashboard()
        return Outcome(ok=True, message=f"{verb} successful!")

    # --- navigation ---

    async def navigate(self, section: str) -> Outcome | None:
        """Switch sections; returns the load outcome when a load was needed."""
        if section not in SECTIONS:
            raise ValueError(f"unknown section: {section}")
        if self.state.current_section == section:
            return None
        self.state.update("current_section", section)

        if section == "dashboard":
            if self.state.has_recent_dashboard_data():
                return None
            return await self.load_dashboard()
        if section == "opportunities":
            if self.state.opportunities:
                return None
            return await self.load_opportunities()
        # Statistics are volatile, reload on every entry.
        return await self.load_stats()

    # --- loads ---

    async def load_dashboard(self) -> Outcome:
        try:
            opportunities, stats = await asyncio.gather(
                self.client.call("/opportunities"),
                self.client.call("/stats"),
            )
        except TransportError:
            return Outcome(ok=False, message="Failed to load dashboard")

        if opportunities is not None and opportunities.ok:
            self.state.update("opportunities", opportunities.data)
        if stats is not None and stats.ok:
            self.state.update("stats", stats.data)
        return Outcome(ok=True, message="Dashboard loaded")

    async def load_opportunities(self) -> Outcome:
        params = {k: v for k, v in self.state.filters.items() if v}
        try:
            result = await self.client.call("/opportunities", params=params)
        except TransportError:
            return Outcome(ok=False, message="Failed to load opportunities")
        if result is None or not result.ok:
            return Outcome(ok=False, message=_message(result, "Failed to load opportunities"))
        self.state.update("opportunities", result.data)
        return Outcome(ok=True, message="Opportunities loaded", data=result.data)

    async def load_stats(self) -> Outcome:
        try:
            result = await self.client.call("/stats")
        except TransportError:
            log.exception("stats_load_failed")
            return Outcome(ok=False, message="Failed to load statistics")
        if result is None or not result.ok or not result.data:
            log.warning("stats_unavailable", status_code=result.status_code if result else None)
            return Outcome(ok=False, message="No statistics data available")
        self.state.update("stats", result.data)
        return Outcome(ok=True, message="Statistics loaded", data=result.data)

    async def apply_filters(self, *, status: str = "", category: str = "") -> Outcome:
        self.state.update("filters", {"status": status or "", "category": category or ""})
        return await self.load_opportunities()

    # --- mutations ---

    def start_editing(self, opportunity_id: str | None) -> dict[str, Any] | None:
        """Begin editing an existing opportunity (None starts a new one)."""
        if opportunity_id is None:
            self.editing_id = None
            return None
        for opp in self.state.opportunities:
            if opp.get("id") == opportunity_id:
                self.editing_id = opportunity_id
                return opp
        return None

    async def save_opportunity(self, fields: dict[str, Any]) -> Outcome:
        payload = {k: (v.strip() if isinstance(v, str) else v) for k, v in fields.items()}
        if isinstance(payload.get("deadline"), date):
            payload["deadline"] = payload["deadline"].isoformat()
        if any(not payload.get(f) for f in REQUIRED_FIELDS):
            return Outcome(ok=False, message="Please fill in all required fields")

        editing = self.editing_id
        try:
            if editing:
                result = await self.client.call(
                    f"/opportunities/{editing}", method="PUT", json=payload, skip_cache=True
                )
            else:
                payload.pop("status", None)
                result = await self.client.call("/opportunities", method="POST", json=payload, skip_cache=True)
        except TransportError:
            return Outcome(ok=False, message="Failed to save opportunity")

        if result is None or not result.ok:
            return Outcome(ok=False, message=_message(result, "Failed to save opportunity"))

        self.editing_id = None
        await self._refresh_after_mutation()
        return Outcome(
            ok=True,
            message="Opportunity updated!" if editing else "Opportunity added!",
            data=result.data,
        )

    async def delete_opportunity(self, opportunity_id: str) -> Outcome:
        try:
            result = await self.client.call(f"/opportunities/{opportunity_id}", method="DELETE", skip_cache=True)
        except TransportError:
            return Outcome(ok=False, message="Failed to delete opportunity")
        if result is None or not result.ok:
            return Outcome(ok=False, message=_message(result, "Failed to delete opportunity"))
        await self._refresh_after_mutation()
        return Outcome(ok=True, message="Opportunity deleted!")

    async def _refresh_after_mutation(self) -> None:
        self.client.invalidate_cache("/opportunities")
        self.client.invalidate_cache("/stats")
        await asyncio.gather(self.load_opportunities(), self.load_stats())

    # --- derived views ---

    def upcoming(self, *, today: date | None = None, limit: int = 5) -> list[UpcomingDeadline]:
        return upcoming_deadlines(self.state.opportunities, today=today or date.today(), limit=limit)


def _message(result: ApiResult | None, default: str) -> str:
    if result is None:
        return default
    return result.error_message or default
