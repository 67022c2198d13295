"""Health check, middleware, provider fallback and storage"""
import asyncio
from types import SimpleNamespace
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from triptrackr.main import rate_limiter
from triptrackr.middleware import SecurityHeadersMiddleware
from triptrackr.utils.database import InMemoryItineraryStore, SupabaseItineraryStore
from triptrackr.utils.fallback import FallbackChain, ProvidersExhaustedError
from triptrackr.utils.rate_limiter import InMemoryRateLimiter
from triptrackr.validators.input_validator import ValidationError, validate_city, validate_location


def test_health(client):
    for path in ("/", "/api/health"):
        body = client.get(path).json()
        assert body["status"] == "OK"
        assert body["database"] == "In-memory storage"


def test_security_headers(client):
    response = client.get("/api/health")

    assert response.headers["x-content-type-options"] == "nosniff"
    assert response.headers["x-frame-options"] == "DENY"
    assert "strict-transport-security" not in response.headers
    assert response.headers["x-ratelimit-limit"] == str(rate_limiter.max_requests)


def test_hsts_when_enabled():
    app = FastAPI()
    app.add_middleware(SecurityHeadersMiddleware, enable_hsts=True)

    @app.get("/ping")
    async def ping():
        return {"ok": True}

    response = TestClient(app).get("/ping")

    assert response.headers["strict-transport-security"].startswith("max-age=")


def test_rate_limit_applies_to_api_routes_only(client, monkeypatch):
    monkeypatch.setattr(rate_limiter, "max_requests", 2)

    assert client.get("/api/health").status_code == 200
    assert client.get("/api/health").status_code == 200
    limited = client.get("/api/health")

    assert limited.status_code == 429
    assert limited.json()["detail"]["error"] == "RateLimitExceeded"
    assert int(limited.headers["retry-after"]) > 0
    assert client.get("/").status_code == 200


def test_rate_limiter_window():
    limiter = InMemoryRateLimiter(max_requests=2, window_seconds=60)

    assert limiter.is_allowed("1.2.3.4")
    assert limiter.get_remaining("1.2.3.4") == 1
    assert limiter.is_allowed("1.2.3.4")
    assert not limiter.is_allowed("1.2.3.4")
    assert limiter.is_allowed("5.6.7.8")
    assert 0 < limiter.retry_after("1.2.3.4") <= 61


async def _value(value):
    return value


async def _fail(message):
    raise RuntimeError(message)


def test_fallback_chain_uses_first_answer():
    chain = FallbackChain("lookup")
    chain.add("disabled", lambda: _value("never"), enabled=False)
    chain.add("broken", lambda: _fail("boom"))
    chain.add("empty", lambda: _value([]))
    chain.add("working", lambda: _value(["result"]))

    assert chain.providers == ["broken", "empty", "working"]
    assert asyncio.run(chain.run()) == ("working", ["result"])


def test_fallback_chain_exhausted():
    chain = FallbackChain("lookup")
    chain.add("broken", lambda: _fail("boom"))
    chain.add("empty", lambda: _value(None))

    with pytest.raises(ProvidersExhaustedError) as info:
        asyncio.run(chain.run())

    assert info.value.errors == {"broken": "boom", "empty": "empty result"}
    assert info.value.any_empty
    assert not info.value.all_empty


def test_in_memory_store_roundtrip():
    store = InMemoryItineraryStore()

    async def scenario():
        first = await store.create({"title": "A", "status": "planning"})
        second = await store.create({"title": "B", "status": "active"})
        updated = await store.update(first["id"], {"title": "A2", "status": "planning"})
        listed = await store.list()
        active = await store.list(status="active")
        deleted = await store.delete(second["id"])
        missing = await store.get(second["id"])
        return first, updated, listed, active, deleted, missing

    first, updated, listed, active, deleted, missing = asyncio.run(scenario())

    assert first["id"] == "1"
    assert updated["title"] == "A2"
    assert updated["created_at"] == first["created_at"]
    assert [item["id"] for item in listed] == ["2", "1"]
    assert [item["title"] for item in active] == ["B"]
    assert deleted is True
    assert missing is None


class FakeSupabaseQuery:
    """Just enough of the supabase query builder to run against a list of rows"""

    def __init__(self, rows):
        self.rows = rows
        self.operation = None
        self.payload = None
        self.filters = []
        self.descending = False

    def insert(self, payload):
        self.operation, self.payload = "insert", payload
        return self

    def select(self, columns):
        self.operation = "select"
        return self

    def update(self, payload):
        self.operation, self.payload = "update", payload
        return self

    def delete(self):
        self.operation = "delete"
        return self

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def order(self, column, desc=False):
        self.descending = desc
        return self

    def execute(self):
        matched = [row for row in self.rows if all(row[c] == v for c, v in self.filters)]
        if self.operation == "insert":
            stamp = f"2026-10-0{len(self.rows) + 1}T09:00:00+00:00"
            row = {"id": f"row-{len(self.rows) + 1}", "created_at": stamp, "updated_at": stamp, **self.payload}
            self.rows.append(row)
            matched = [row]
        elif self.operation == "select":
            matched = sorted(matched, key=lambda row: row["created_at"], reverse=self.descending)
        elif self.operation == "update":
            for row in matched:
                row.update(self.payload)
        elif self.operation == "delete":
            self.rows[:] = [row for row in self.rows if row not in matched]
        return SimpleNamespace(data=[dict(row) for row in matched])


class FakeSupabase:
    def __init__(self):
        self.rows = []
        self.tables = []

    def table(self, name):
        self.tables.append(name)
        return FakeSupabaseQuery(self.rows)


def test_supabase_store_roundtrip():
    supabase = FakeSupabase()
    store = SupabaseItineraryStore(client=supabase, table="trips")

    async def scenario():
        first = await store.create({"title": "A", "status": "planning"})
        await store.create({"title": "B", "status": "active"})
        listed = await store.list()
        active = await store.list(status="active")
        updated = await store.update(first["id"], {"id": "other", "title": "A2", "status": "completed"})
        deleted = await store.delete("row-2")
        deleted_again = await store.delete("row-2")
        missing = await store.get("row-2")
        return first, listed, active, updated, deleted, deleted_again, missing

    first, listed, active, updated, deleted, deleted_again, missing = asyncio.run(scenario())

    assert set(supabase.tables) == {"trips"}
    assert first == {
        "title": "A",
        "status": "planning",
        "id": "row-1",
        "created_at": "2026-10-01T09:00:00+00:00",
        "updated_at": "2026-10-01T09:00:00+00:00"
    }
    assert [item["id"] for item in listed] == ["row-2", "row-1"]
    assert [item["title"] for item in active] == ["B"]
    assert updated["id"] == "row-1"
    assert updated["title"] == "A2"
    assert updated["created_at"] == first["created_at"]
    assert supabase.rows[0]["status"] == "completed"
    assert "id" not in supabase.rows[0]["document"]
    assert deleted is True
    assert deleted_again is False
    assert missing is None


def test_validate_city():
    assert validate_city("  Kochi ") == "Kochi"
    with pytest.raises(ValidationError):
        validate_city(" ")
    with pytest.raises(ValidationError):
        validate_city("x" * 101)


def test_validate_location():
    assert validate_location(None) is None
    assert validate_location("9.93, 76.26") == "9.93,76.26"
    with pytest.raises(ValidationError):
        validate_location("95,10")
