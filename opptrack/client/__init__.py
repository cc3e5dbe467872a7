"""
Client core for the tracker API.

`TrackerSession` is the composition root: it builds one ResponseCache, one
RequestClient and one AppState per session and wires them together.
"""

from __future__ import annotations

from .app_state import AppState
from .cache import ResponseCache
from .errors import TransportError
from .request_client import ApiResult, RequestClient, RequestKey
from .session import Outcome, TrackerSession

__all__ = [
    "ApiResult",
    "AppState",
    "Outcome",
    "RequestClient",
    "RequestKey",
    "ResponseCache",
    "TrackerSession",
    "TransportError",
]
