from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

import opptrack.routers.auth as auth_router
import opptrack.routers.opportunities as opportunities_router
import opptrack.routers.stats as stats_router
from opptrack.db.dynamodb.errors import DdbConflict, DdbThrottled
from opptrack.main import create_app
from opptrack.services.tokens import issue_token


@pytest.fixture
def client(jwt_secret) -> TestClient:
    return TestClient(create_app())


@pytest.fixture
def auth_headers(jwt_secret) -> dict[str, str]:
    return {"Authorization": f"Bearer {issue_token(user_id='u1', email='a@example.com')}"}


@pytest.fixture
def store(monkeypatch) -> dict[str, dict]:
    """In-memory opportunities wired into the routers in place of DynamoDB."""
    opps: dict[str, dict] = {
        "o1": {"id": "o1", "userId": "u1", "title": "Job", "category": "job", "deadline": "2026-02-01", "status": "pending"},
        "o2": {"id": "o2", "userId": "u2", "title": "Not mine", "category": "other", "deadline": "2026-01-01", "status": "pending"},
    }

    def _list(user_id, *, status=None, category=None):
        out = [o for o in opps.values() if o["userId"] == user_id]
        if status:
            out = [o for o in out if o["status"] == status]
        if category:
            out = [o for o in out if o["category"] == category]
        return sorted(out, key=lambda o: o["deadline"])

    def _create(*, user_id, title, category, deadline, description):
        oid = f"o{len(opps) + 1}"
        opps[oid] = {
            "id": oid,
            "userId": user_id,
            "title": title,
            "category": category,
            "deadline": deadline.isoformat(),
            "description": description,
            "status": "pending",
        }
        return opps[oid]

    def _update(existing, patch):
        opps[existing["id"]] = {**existing, **patch}
        return opps[existing["id"]]

    monkeypatch.setattr(opportunities_router, "list_opportunities_for_user", _list)
    monkeypatch.setattr(stats_router, "list_opportunities_for_user", _list)
    monkeypatch.setattr(opportunities_router, "create_opportunity", _create)
    monkeypatch.setattr(opportunities_router, "get_opportunity_by_id", lambda oid: opps.get(oid))
    monkeypatch.setattr(opportunities_router, "update_opportunity", _update)
    monkeypatch.setattr(opportunities_router, "delete_opportunity", lambda oid: opps.pop(oid, None))
    return opps


def test_health_is_public_and_carries_request_id(client):
    r = client.get("/", headers={"X-Request-Id": "req-42"})
    assert r.status_code == 200
    assert r.json()["status"] == "running"
    assert r.headers["X-Request-Id"] == "req-42"


def test_missing_token_is_401_problem_json(client):
    r = client.get("/api/opportunities")
    assert r.status_code == 401
    assert r.headers["content-type"].startswith("application/problem+json")
    body = r.json()
    assert body["error"] == "Access token required"
    assert body["requestId"]


def test_invalid_token_is_403(client):
    r = client.get("/api/stats", headers={"Authorization": "Bearer garbage"})
    assert r.status_code == 403
    assert r.json()["error"] == "Invalid token"


def test_register_validates_and_rejects_duplicates(client, monkeypatch):
    created: list[str] = []

    def _create_user(*, email, password_hash):
        if email in created:
            raise DdbConflict(message="Conditional check failed")
        created.append(email)
        return {"userId": f"user-{len(created)}", "email": email}

    monkeypatch.setattr(auth_router, "create_user", _create_user)
    monkeypatch.setattr(auth_router, "hash_password", lambda p: f"hashed:{p}")

    assert client.post("/api/register", json={"email": "a@example.com"}).status_code == 400
    short = client.post("/api/register", json={"email": "a@example.com", "password": "12345"})
    assert short.status_code == 400
    assert short.json()["error"] == "Password must be at least 6 characters"

    ok = client.post("/api/register", json={"email": "A@example.com", "password": "123456"})
    assert ok.status_code == 201
    assert ok.json()["userId"] == "user-1"
    assert ok.json()["token"]
    assert created == ["a@example.com"]

    dup = client.post("/api/register", json={"email": "a@example.com", "password": "123456"})
    assert dup.status_code == 400
    assert dup.json()["error"] == "User already exists"


def test_login_checks_password(client, monkeypatch):
    user = {"userId": "u1", "email": "a@example.com", "passwordHash": "hashed:secret1"}
    monkeypatch.setattr(auth_router, "get_user_by_email", lambda e: user if e == "a@example.com" else None)
    monkeypatch.setattr(auth_router, "verify_password", lambda p, h: h == f"hashed:{p}")

    ok = client.post("/api/login", json={"email": "a@example.com", "password": "secret1"})
    assert ok.status_code == 200
    assert ok.json()["userId"] == "u1"

    for body in ({"email": "a@example.com", "password": "wrong"}, {"email": "x@example.com", "password": "secret1"}):
        r = client.post("/api/login", json=body)
        assert r.status_code == 401
        assert r.json()["error"] == "Invalid credentials"


def test_list_only_returns_callers_opportunities_with_filters(client, auth_headers, store):
    r = client.get("/api/opportunities", headers=auth_headers)
    assert [o["id"] for o in r.json()] == ["o1"]

    r = client.get("/api/opportunities", params={"category": "scholarship"}, headers=auth_headers)
    assert r.json() == []

    bad = client.get("/api/opportunities", params={"status": "lost"}, headers=auth_headers)
    assert bad.status_code == 422


def test_create_forces_pending_and_validates(client, auth_headers, store):
    r = client.post(
        "/api/opportunities",
        json={"title": " Grad school ", "category": "graduate_school", "deadline": "2026-12-15", "status": "offered"},
        headers=auth_headers,
    )
    assert r.status_code == 201
    body = r.json()
    assert body["status"] == "pending"
    assert body["title"] == "Grad school"
    assert body["userId"] == "u1"

    bad = client.post(
        "/api/opportunities",
        json={"title": "x", "category": "hobby", "deadline": "2026-12-15"},
        headers=auth_headers,
    )
    assert bad.status_code == 422
    assert bad.json()["title"] == "Validation Failed"
    assert {e["path"] for e in bad.json()["errors"]} == {"category"}


@pytest.mark.parametrize(
    "payload",
    [
        {"title": "x", "category": "job"},
        {"category": "job", "deadline": "2026-12-15"},
        {"title": "   ", "category": "job", "deadline": "2026-12-15"},
        {},
    ],
)
def test_create_with_missing_fields_is_a_bad_request(client, auth_headers, store, payload):
    r = client.post("/api/opportunities", json=payload, headers=auth_headers)
    assert r.status_code == 400
    assert r.json()["error"] == "Missing fields"
    assert r.headers["content-type"].startswith("application/problem+json")


def test_ownership_is_enforced(client, auth_headers, store):
    assert client.get("/api/opportunities/o1", headers=auth_headers).status_code == 200

    missing = client.get("/api/opportunities/nope", headers=auth_headers)
    assert missing.status_code == 404
    assert missing.json()["error"] == "Opportunity not found"

    for method in ("get", "put", "delete"):
        kwargs = {"json": {"status": "submitted"}} if method == "put" else {}
        r = getattr(client, method)("/api/opportunities/o2", headers=auth_headers, **kwargs)
        assert r.status_code == 403
        assert r.json()["error"] == "Access denied"
    assert store["o2"]["status"] == "pending"


def test_update_and_delete(client, auth_headers, store):
    r = client.put("/api/opportunities/o1", json={"status": "interview"}, headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["message"] == "Opportunity updated successfully"
    assert r.json()["opportunity"]["status"] == "interview"

    r = client.delete("/api/opportunities/o1", headers=auth_headers)
    assert r.json() == {"message": "Opportunity deleted successfully"}
    assert "o1" not in store


def test_stats_counts_callers_opportunities(client, auth_headers, store):
    r = client.get("/api/stats", headers=auth_headers)
    body = r.json()
    assert body["total"] == 1
    assert body["pending"] == 1
    assert body["byCategory"]["job"] == 1
    assert body["byCategory"]["other"] == 0


def test_storage_errors_map_to_http(client, auth_headers, monkeypatch):
    def _throttled(user_id, **_):
        raise DdbThrottled(message="Storage request throttled or unavailable", operation="Query", retryable=True)

    monkeypatch.setattr(stats_router, "list_opportunities_for_user", _throttled)
    r = client.get("/api/stats", headers=auth_headers)
    assert r.status_code == 503
    assert r.json()["extensions"]["retryable"] is True


def test_unsafe_inbound_request_id_is_replaced(client):
    r = client.get("/", headers={"X-Request-Id": "bad id <with> spaces"})
    assert r.status_code == 200
    assert r.headers["X-Request-Id"] != "bad id <with> spaces"
    assert len(r.headers["X-Request-Id"]) == 32


def test_unknown_route_is_problem_json(client):
    r = client.get("/api/nowhere", headers={"X-Request-Id": "req-404"})
    assert r.status_code in (401, 404)
    assert r.headers["content-type"].startswith("application/problem+json")
    assert r.json()["requestId"] == "req-404"


def test_cors_origins_from_settings():
    from opptrack.middleware.cors import build_allowed_origins

    assert build_allowed_origins(frontend_url=None, frontend_urls=None) == ["*"]
    assert build_allowed_origins(
        frontend_url="https://app.example.com", frontend_urls="https://a.example.com, https://app.example.com"
    ) == ["https://a.example.com", "https://app.example.com"]
