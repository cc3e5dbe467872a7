from __future__ import annotations

from fastapi import HTTPException, Request
from starlette.middleware.base import BaseHTTPMiddleware

from ..observability.logging import get_logger
from ..problem_details import problem_response
from ..services.tokens import TokenError, verify_bearer_token

PUBLIC_PATHS = frozenset(
    {
        "/",
        "/api/register",
        "/api/login",
        "/api-docs",
        "/openapi.json",
    }
)


def is_public_path(path: str) -> bool:
    return path in PUBLIC_PATHS


async def require_auth(request: Request) -> None:
    path = request.url.path

    # Let CORS preflight through; CORSMiddleware answers it.
    if request.method.upper() == "OPTIONS":
        return

    if not path.startswith("/api/") or is_public_path(path):
        return

    auth = request.headers.get("authorization")
    parts = str(auth or "").split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(status_code=401, detail="Access token required")

    try:
        user = verify_bearer_token(parts[1].strip())
    except TokenError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    request.state.user = user


class AuthMiddleware(BaseHTTPMiddleware):
    """
    Bearer-token enforcement for /api routes.

    Added before CORSMiddleware so CORS wraps auth failures too.
    """

    async def dispatch(self, request: Request, call_next):
        log = get_logger("auth_middleware")
        try:
            await require_auth(request)
        except HTTPException as exc:
            log.info("auth_middleware_denied", status_code=exc.status_code, path=request.url.path)
            return problem_response(
                request=request,
                status_code=exc.status_code,
                detail=str(exc.detail) if isinstance(exc.detail, str) else None,
            )
        except Exception:
            log.exception("auth_middleware_error", path=request.url.path)
            return problem_response(request=request, status_code=500, detail="Authentication unavailable")
        return await call_next(request)
