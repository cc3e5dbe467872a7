from __future__ import annotations

from http import HTTPStatus
from typing import Any

from fastapi import Request
from fastapi.responses import ORJSONResponse

from .settings import get_settings

PROBLEM_JSON = "application/problem+json"


def default_title(status_code: int) -> str:
    if status_code >= 500:
        return "Internal Server Error"
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Error"


def request_id_of(request: Request) -> str | None:
    rid = getattr(request.state, "request_id", None) or request.headers.get("x-request-id")
    return str(rid) if rid else None


def problem_payload(
    *,
    request: Request,
    status_code: int,
    title: str | None = None,
    detail: str | None = None,
    errors: list[dict[str, Any]] | None = None,
    extensions: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    RFC 7807 body. `error` mirrors `detail` because the tracker clients
    display that field verbatim.
    """
    status = int(status_code)
    optional = {
        "detail": str(detail) if detail else None,
        "error": str(detail) if detail else None,
        "instance": request.url.path or None,
        "requestId": request_id_of(request),
        "errors": errors or None,
        "extensions": extensions or None,
    }
    return {
        "type": "about:blank",
        "title": title or default_title(status),
        "status": status,
        **{k: v for k, v in optional.items() if v is not None},
    }


def problem_response(
    *,
    request: Request,
    status_code: int,
    title: str | None = None,
    detail: str | None = None,
    errors: list[dict[str, Any]] | None = None,
    extensions: dict[str, Any] | None = None,
) -> ORJSONResponse:
    status = int(status_code)
    # Server-side failure text stays in the logs in production.
    if status >= 500 and get_settings().is_production:
        detail = None
    return ORJSONResponse(
        status_code=status,
        content=problem_payload(
            request=request,
            status_code=status,
            title=title,
            detail=detail,
            errors=errors,
            extensions=extensions,
        ),
        media_type=PROBLEM_JSON,
    )
