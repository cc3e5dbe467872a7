from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import Response

from . import __version__
from .db.dynamodb.errors import (
    DdbConflict,
    DdbError,
    DdbNotFound,
    DdbThrottled,
    DdbUnavailable,
    DdbValidation,
)
from .middleware.access_log import AccessLogMiddleware
from .middleware.auth import AuthMiddleware
from .middleware.cors import build_allowed_origins
from .middleware.request_context import RequestContextMiddleware
from .observability.logging import configure_logging, get_logger
from .problem_details import problem_response
from .routers.auth import router as auth_router
from .routers.health import router as health_router
from .routers.opportunities import router as opportunities_router
from .routers.stats import router as stats_router
from .settings import settings

# First match wins, so subclasses must precede their bases.
_STORAGE_STATUS: tuple[tuple[type[DdbError], int, str], ...] = (
    (DdbValidation, 400, "Bad Request"),
    (DdbNotFound, 404, "Not Found"),
    (DdbConflict, 409, "Conflict"),
    (DdbThrottled, 503, "Service Unavailable"),
    (DdbUnavailable, 503, "Service Unavailable"),
)


def create_app() -> FastAPI:
    configure_logging(level="INFO")
    log = get_logger("startup")

    app = FastAPI(
        title="Opportunity Tracker API",
        description="Track scholarships, applications and other opportunities with deadlines and status.",
        version=__version__,
        default_response_class=ORJSONResponse,
        docs_url="/api-docs",
        redirect_slashes=False,
    )

    origins = build_allowed_origins(frontend_url=settings.frontend_url, frontend_urls=settings.frontend_urls)
    log.info("app_starting", settings=settings.to_log_safe_dict(), cors_origins=origins)

    # Last added runs first: request id -> CORS -> access log -> auth -> routes.
    app.add_middleware(AuthMiddleware)
    app.add_middleware(AccessLogMiddleware, exclude_paths={"/"})
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=origins != ["*"],
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-Id"],
        expose_headers=["X-Request-Id"],
        max_age=3000,
    )
    app.add_middleware(RequestContextMiddleware)

    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(DdbError, _storage_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _unhandled_exception_handler)

    app.include_router(health_router)
    for router in (auth_router, opportunities_router, stats_router):
        app.include_router(router, prefix="/api")

    return app


def _storage_error_handler(request: Request, exc: DdbError) -> Response:
    status_code, title = next(
        ((code, t) for cls, code, t in _STORAGE_STATUS if isinstance(exc, cls)),
        (500, "Storage Error"),
    )
    get_logger("storage").warning(
        "storage_error",
        operation=exc.operation,
        table=exc.table_name,
        aws_request_id=exc.aws_request_id,
        status_code=status_code,
        error=exc.message,
    )
    extensions = {"operation": exc.operation, "retryable": bool(exc.retryable), "awsRequestId": exc.aws_request_id}
    return problem_response(
        request=request,
        status_code=status_code,
        title=title,
        detail=exc.message,
        extensions={k: v for k, v in extensions.items() if v is not None},
    )


def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> Response:
    detail = str(exc.detail) if exc.detail is not None else None
    if exc.status_code == 404 and not detail:
        detail = "Route not found"
    return problem_response(request=request, status_code=exc.status_code, detail=detail)


def _validation_error_handler(request: Request, exc: RequestValidationError) -> Response:
    errors = [
        {
            "location": list(e.get("loc") or ()),
            "path": ".".join(str(x) for x in (e.get("loc") or ()) if x not in ("body", "query", "path")),
            "message": e.get("msg", "Invalid value"),
            "type": e.get("type"),
        }
        for e in exc.errors()
    ]
    # Absent body fields are a bad request; present but malformed ones stay 422.
    if any(e["type"] == "missing" and e["location"][:1] == ["body"] for e in errors):
        return problem_response(
            request=request,
            status_code=400,
            title="Bad Request",
            detail="Missing fields",
            errors=errors,
        )
    return problem_response(
        request=request,
        status_code=422,
        title="Validation Failed",
        detail="Missing or invalid fields",
        errors=errors,
    )


def _unhandled_exception_handler(request: Request, exc: Exception) -> Response:
    user = getattr(request.state, "user", None)
    get_logger("unhandled").exception(
        "unhandled_exception",
        http_method=request.method.upper(),
        path=request.url.path,
        user_sub=getattr(user, "sub", None),
    )
    return problem_response(request=request, status_code=500, title="Internal Server Error", detail=str(exc))


app = create_app()
