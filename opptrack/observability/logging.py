from __future__ import annotations

import logging
import sys

import structlog

from .context import get_request_id

SERVICE_NAME = "opptrack"

# Third-party loggers that are chatty at INFO (every HTTP call, every AWS request).
_NOISY_LOGGERS = ("botocore", "boto3", "urllib3", "httpx", "httpcore")

_configured = False


def _add_context(_: logging.Logger, __: str, event_dict: dict) -> dict:
    event_dict.setdefault("service", SERVICE_NAME)
    rid = get_request_id()
    if rid:
        event_dict["request_id"] = rid
    return event_dict


def _shared_processors() -> list:
    return [
        _add_context,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]


def configure_logging(*, level: str | int = "INFO") -> None:
    """
    Route stdlib logging and structlog through one JSON renderer on stdout.

    Idempotent; the API app, the reminder worker and tests all call it.
    """
    global _configured
    if _configured:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.processors.JSONRenderer(),
            foreign_pre_chain=_shared_processors(),
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    # uvicorn installs its own handlers; send its records through root instead.
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        lg = logging.getLogger(name)
        lg.handlers = []
        lg.propagate = True
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            *_shared_processors(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    _configured = True


def get_logger(name: str | None = None):
    return structlog.get_logger(name)
