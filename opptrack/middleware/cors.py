from __future__ import annotations


def build_allowed_origins(*, frontend_url: str | None, frontend_urls: str | None) -> list[str]:
    """
    Explicit origins from FRONTEND_URL / FRONTEND_URLS (comma-separated).

    With nothing configured every origin is allowed, as the tracker's
    single-page frontend is served from arbitrary static hosts.
    """
    allowed: set[str] = set()
    for v in (frontend_url, frontend_urls):
        if not v:
            continue
        allowed.update(s.strip() for s in str(v).split(",") if s.strip())
    return sorted(allowed) or ["*"]
