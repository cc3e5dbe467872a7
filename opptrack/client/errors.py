from __future__ import annotations


class TransportError(Exception):
    """The API could not be reached or its response could not be decoded."""

    def __init__(self, message: str, *, method: str | None = None, path: str | None = None):
        super().__init__(message)
        self.method = method
        self.path = path
