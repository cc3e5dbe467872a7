from __future__ import annotations

import asyncio
import hashlib
import json
from dataclasses import dataclass
from typing import Any, Callable, Mapping
from urllib.parse import parse_qsl, urlsplit

import httpx

from ..observability.logging import get_logger
from .cache import ResponseCache
from .errors import TransportError

log = get_logger("request_client")


@dataclass(frozen=True)
class ApiResult:
    status_code: int
    data: Any

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def error_message(self) -> str | None:
        if self.ok or not isinstance(self.data, dict):
            return None
        msg = self.data.get("error") or self.data.get("detail") or self.data.get("title")
        return str(msg) if msg else None


@dataclass(frozen=True)
class RequestKey:
    """Structured request signature: method, path, sorted query, body digest."""

    method: str
    path: str
    query: tuple[tuple[str, str], ...]
    body_digest: str | None

    @classmethod
    def build(
        cls,
        method: str,
        endpoint: str,
        *,
        params: Mapping[str, Any] | None = None,
        json_body: Any = None,
    ) -> "RequestKey":
        parts = urlsplit(endpoint)
        query = parse_qsl(parts.query, keep_blank_values=False)
        for k, v in (params or {}).items():
            if v is None or v == "":
                continue
            query.append((str(k), str(v)))

        digest = None
        if json_body is not None:
            canonical = json.dumps(json_body, sort_keys=True, separators=(",", ":"), default=str)
            digest = hashlib.sha256(canonical.encode("utf-8")).hexdigest()

        return cls(
            method=str(method or "GET").upper(),
            path=parts.path or "/",
            query=tuple(sorted(query)),
            body_digest=digest,
        )

    @property
    def query_string(self) -> str:
        return "&".join(f"{k}={v}" for k, v in self.query)

    def __str__(self) -> str:
        out = f"{self.method} {self.path}"
        if self.query:
            out += f"?{self.query_string}"
        if self.body_digest:
            out += f"#{self.body_digest}"
        return out


class RequestClient:
    """
    Calls the tracker API with response caching and in-flight deduplication.

    At most one request per RequestKey is outstanding; concurrent callers with
    the same key share its result. A 401 on an authenticated call ends the
    session through `on_unauthorized` and resolves to None.
    """

    def __init__(
        self,
        *,
        base_url: str,
        cache: ResponseCache,
        token_provider: Callable[[], str | None] = lambda: None,
        on_unauthorized: Callable[[], None] | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.cache = cache
        self._token_provider = token_provider
        self._on_unauthorized = on_unauthorized
        self._http = http_client or httpx.AsyncClient(base_url=str(base_url).rstrip("/"))
        self._in_flight: dict[str, asyncio.Future[ApiResult | None]] = {}

    def set_unauthorized_handler(self, handler: Callable[[], None] | None) -> None:
        self._on_unauthorized = handler

    @property
    def in_flight_count(self) -> int:
        return len(self._in_flight)

    async def call(
        self,
        endpoint: str,
        *,
        method: str = "GET",
        params: Mapping[str, Any] | None = None,
        json: Any = None,
        headers: Mapping[str, str] | None = None,
        skip_cache: bool = False,
        auth: bool = True,
    ) -> ApiResult | None:
        key = RequestKey.build(method, endpoint, params=params, json_body=json)
        cache_key = str(key)

        if not skip_cache:
            cached = self.cache.get(cache_key)
            if cached is not None:
                return cached

        pending = self._in_flight.get(cache_key)
        if pending is not None:
            return await asyncio.shield(pending)

        task = asyncio.ensure_future(
            self._execute(
                key,
                cache_key,
                headers=self._build_headers(headers, auth=auth),
                json_body=json,
                skip_cache=skip_cache,
                auth=auth,
            )
        )
        self._in_flight[cache_key] = task
        return await asyncio.shield(task)

    def clear_cache(self) -> None:
        self.cache.clear()

    def invalidate_cache(self, pattern: str) -> int:
        return self.cache.invalidate(pattern)

    async def aclose(self) -> None:
        await self._http.aclose()

    def _build_headers(self, extra: Mapping[str, str] | None, *, auth: bool) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        token = self._token_provider() if auth else None
        if token:
            headers["Authorization"] = f"Bearer {token}"
        headers.update(extra or {})
        return headers

    async def _execute(
        self,
        key: RequestKey,
        cache_key: str,
        *,
        headers: dict[str, str],
        json_body: Any,
        skip_cache: bool,
        auth: bool,
    ) -> ApiResult | None:
        try:
            result = await self._send(key, headers=headers, json_body=json_body, auth=auth)
            if result is not None and result.ok and not skip_cache:
                self.cache.set(cache_key, result)
            return result
        finally:
            self._in_flight.pop(cache_key, None)

    async def _send(
        self,
        key: RequestKey,
        *,
        headers: dict[str, str],
        json_body: Any,
        auth: bool,
    ) -> ApiResult | None:
        try:
            response = await self._http.request(
                key.method,
                key.path,
                params=list(key.query) or None,
                json=json_body,
                headers=headers,
            )
        except httpx.HTTPError as e:
            log.warning("api_call_failed", method=key.method, path=key.path, error=str(e))
            raise TransportError(str(e) or type(e).__name__, method=key.method, path=key.path) from e

        if response.status_code == 401 and auth:
            log.info("session_expired", method=key.method, path=key.path)
            if self._on_unauthorized is not None:
                self._on_unauthorized()
            return None

        try:
            data = response.json() if response.content else None
        except ValueError as e:
            log.warning(
                "api_response_undecodable",
                method=key.method,
                path=key.path,
                status_code=response.status_code,
            )
            raise TransportError("Response body is not valid JSON", method=key.method, path=key.path) from e

        return ApiResult(status_code=response.status_code, data=data)
