"""Pytest configuration and fixtures for DriveDock tests.

Redis is replaced by a small in-memory double and the record API by an
httpx MockTransport backed by ``FakeRecordAPI``, so no external service
is needed.
"""

import asyncio
import copy
import fnmatch
import json
from typing import AsyncGenerator

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from drivedock.main import app
from drivedock.services.record_api import RecordAPIClient, get_record_api
from drivedock.utils import cache

RECORD_API_BASE = "http://records.test"


# ── Redis double ─────────────────────────────────────────────────

class FakeRedis:
    """The subset of redis.asyncio.Redis the service uses."""

    def __init__(self):
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value, nx=False, ex=None):
        if nx and key in self.store:
            return None
        self.store[key] = value
        if ex is not None:
            self.ttls[key] = ex
        return True

    async def setex(self, key, ttl, value):
        self.store[key] = value
        self.ttls[key] = ttl
        return True

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
        return removed

    async def scan_iter(self, match=None):
        for key in list(self.store):
            if match is None or fnmatch.fnmatchcase(key, match):
                yield key

    async def ping(self):
        return True

    async def aclose(self):
        pass


@pytest.fixture(autouse=True)
def fake_redis(monkeypatch) -> FakeRedis:
    """Every test gets a fresh in-memory Redis."""
    fake = FakeRedis()
    monkeypatch.setattr(cache, "_redis_client", fake)
    return fake


# ── Record API double ────────────────────────────────────────────

class FakeRecordAPI:
    """In-memory record API served through httpx.MockTransport.

    ``fail`` maps an HTTP method to a status every such request returns;
    ``locked`` holds section paths that answer 403 (step not reached).
    ``hold_patches`` parks section PATCHes until ``release_patches``.
    """

    def __init__(self):
        self.trackers: dict[str, dict] = {}
        self.sections: dict[tuple[str, str], dict] = {}
        self.fail: dict[str, int] = {}
        self.locked: set[str] = set()
        self.requests: list[httpx.Request] = []
        self.patch_started: asyncio.Event | None = None
        self._patch_gate: asyncio.Event | None = None

    def add_tracker(self, raw: dict) -> dict:
        self.trackers[raw["_id"]] = raw
        return raw

    def calls(self, method: str, path: str | None = None) -> list[httpx.Request]:
        return [
            r for r in self.requests
            if r.method == method and (path is None or r.url.path == path)
        ]

    def hold_patches(self) -> None:
        self.patch_started = asyncio.Event()
        self._patch_gate = asyncio.Event()

    def release_patches(self) -> None:
        self._patch_gate.set()

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        fail_status = self.fail.get(request.method)
        if fail_status:
            return httpx.Response(fail_status, json={"message": f"Upstream failure {fail_status}"})

        path = request.url.path.strip("/")
        if not path:
            return httpx.Response(200)

        tracker_id, _, rest = path.partition("/")
        tracker = self.trackers.get(tracker_id)
        if tracker is None:
            return httpx.Response(404, json={"message": "Onboarding tracker not found"})

        if not rest:
            return httpx.Response(200, json={"data": tracker})

        if rest == "change-company":
            tracker["companyId"] = json.loads(request.content)["companyId"]
            return httpx.Response(200, json={"data": tracker})

        if rest in self.locked:
            return httpx.Response(403, json={"message": "Driver hasn't completed this step yet"})

        key = (tracker_id, rest)
        if request.method == "PATCH":
            if self._patch_gate is not None:
                self.patch_started.set()
                await self._patch_gate.wait()
            self.sections[key] = json.loads(request.content)
            return httpx.Response(200, json={"data": self.sections[key]})
        return httpx.Response(200, json={"data": copy.deepcopy(self.sections.get(key, {}))})


def make_tracker(**overrides) -> dict:
    """Raw camelCase tracker as the record API returns it (at the drive test)."""
    tracker = {
        "_id": "t1",
        "companyId": "c1",
        "status": {"currentStep": "drive-test", "completed": False},
        "needsFlatbedTraining": False,
        "forms": {},
        "notes": None,
    }
    tracker.update(overrides)
    return tracker


@pytest.fixture
def record_api() -> FakeRecordAPI:
    return FakeRecordAPI()


@pytest_asyncio.fixture
async def api_client(record_api) -> AsyncGenerator[RecordAPIClient, None]:
    async with httpx.AsyncClient(
        transport=httpx.MockTransport(record_api.handler),
        base_url=RECORD_API_BASE,
    ) as http:
        yield RecordAPIClient(http)


@pytest_asyncio.fixture
async def client(api_client) -> AsyncGenerator[AsyncClient, None]:
    """App client with the record API dependency pointed at the double."""
    app.dependency_overrides[get_record_api] = lambda: api_client

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ── Test Markers ─────────────────────────────────────────────────

def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "api: HTTP endpoint tests")
    config.addinivalue_line("markers", "cache: Redis cache tests")
