"""
Centralized Test Configuration.
"""

import io
import re
import time
from datetime import timedelta

import httpx
import pytest
from httpx import AsyncClient, ASGITransport
from PIL import Image
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from weighcheck.app.main import app
from weighcheck.app.db.session import get_db, Base
from weighcheck.app.core.dependencies import get_geocoder, get_uploader
from weighcheck.app.core.jwt import issue_worker_token
from weighcheck.app.core.redis_client import get_redis
from weighcheck.app.core.reliability import CircuitBreaker
from weighcheck.app.models.enums import WorkerRole
from weighcheck.app.services.geocoding import ReverseGeocoder
from weighcheck.app.services.storage import EvidenceUploader

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

STORAGE_BASE_URL = "https://storage.test"
GEOCODER_BASE_URL = "https://geocoder.test"

NOMINATIM_PAYLOAD = {
    "display_name": "Jalan Sudirman 1, Jakarta Pusat, DKI Jakarta, 10220, Indonesia",
    "address": {
        "road": "Jalan Sudirman",
        "city": "Jakarta Pusat",
        "state": "DKI Jakarta",
        "postcode": "10220",
        "country": "Indonesia",
    },
}


# Mock Redis for reliability in CI/CD
class MockRedis:
    def __init__(self):
        self.store = {}
        self.expiry = {}
        self._closed = False

    def _purge(self, key):
        deadline = self.expiry.get(key)
        if deadline is not None and time.monotonic() >= deadline:
            self.store.pop(key, None)
            self.expiry.pop(key, None)

    async def ping(self):
        if self._closed:
            return False
        return True

    async def get(self, key):
        if self._closed:
            return None
        self._purge(key)
        return self.store.get(key)

    async def set(self, key, value, ex=None, px=None, nx=False):
        if self._closed:
            return False
        self._purge(key)
        if nx and key in self.store:
            return None
        self.store[key] = value
        if ex is not None:
            self.expiry[key] = time.monotonic() + ex
        elif px is not None:
            self.expiry[key] = time.monotonic() + px / 1000
        else:
            self.expiry.pop(key, None)
        return True

    async def setex(self, key, seconds, value):
        if isinstance(seconds, timedelta):
            seconds = seconds.total_seconds()
        return await self.set(key, value, ex=seconds)

    async def delete(self, key):
        if self._closed:
            return 0
        self.expiry.pop(key, None)
        if key in self.store:
            del self.store[key]
            return 1
        return 0

    async def exists(self, key):
        if self._closed:
            return 0
        self._purge(key)
        return 1 if key in self.store else 0

    async def flushdb(self):
        if not self._closed:
            self.store = {}
            self.expiry = {}

    async def aclose(self):
        self._closed = True
        self.store = {}


@pytest.fixture
def mock_redis():
    return MockRedis()


@pytest.fixture
async def engine():
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


# Shared session for fixture data creation
@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


# Object storage double

@pytest.fixture
def storage_requests():
    return []


@pytest.fixture
def storage_transport(storage_requests):
    def handler(request: httpx.Request) -> httpx.Response:
        storage_requests.append(request)

        if request.method == "POST" and request.url.path.endswith("/image/upload"):
            match = re.search(rb'name="public_id"\r\n\r\n([^\r]+)\r\n', request.content)
            public_id = match.group(1).decode() if match else "unnamed"
            return httpx.Response(
                200,
                json={
                    "public_id": f"weight-entries/{public_id}",
                    "secure_url": f"https://res.cloudinary.com/test/image/upload/v1712345678/weight-entries/{public_id}.jpg",
                },
            )

        if request.method == "DELETE":
            public_ids = request.url.params.get_list("public_ids[]")
            return httpx.Response(200, json={"deleted": {pid: "deleted" for pid in public_ids}})

        return httpx.Response(404)

    return httpx.MockTransport(handler)


@pytest.fixture
def uploader(storage_transport):
    return EvidenceUploader(
        transport=storage_transport,
        base_url=STORAGE_BASE_URL,
        cloud_name="test",
        upload_preset="unsigned_test",
        folder="weight-entries",
        api_key="key",
        api_secret="secret",
    )


# Reverse geocoder double

@pytest.fixture
def nominatim_payload():
    return NOMINATIM_PAYLOAD


@pytest.fixture
def geocoder_requests():
    return []


@pytest.fixture
async def geocoder_http(geocoder_requests):
    def handler(request: httpx.Request) -> httpx.Response:
        geocoder_requests.append(request)
        return httpx.Response(200, json=NOMINATIM_PAYLOAD)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
        yield http_client


@pytest.fixture
def geocoder(mock_redis, geocoder_http):
    return ReverseGeocoder(
        mock_redis,
        http_client=geocoder_http,
        breaker=CircuitBreaker(failure_threshold=3, reset_timeout=30),
        base_url=GEOCODER_BASE_URL,
    )


@pytest.fixture
def apply_overrides(session_factory, mock_redis, uploader, geocoder):
    """Point the app at the in-memory database and the collaborator doubles."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    async def override_get_redis():
        return mock_redis

    async def override_get_geocoder():
        return geocoder

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = override_get_redis
    app.dependency_overrides[get_uploader] = lambda: uploader
    app.dependency_overrides[get_geocoder] = override_get_geocoder
    yield
    app.dependency_overrides = {}


@pytest.fixture
async def client(apply_overrides):
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# Auth helpers

def make_headers(worker_id: int, username: str, role: WorkerRole = WorkerRole.WORKER) -> dict:
    token = issue_worker_token(worker_id, username, role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers_for():
    return make_headers


@pytest.fixture
def worker_headers():
    return make_headers(1, "budi")


@pytest.fixture
def other_worker_headers():
    return make_headers(2, "siti")


@pytest.fixture
def admin_headers():
    return make_headers(99, "admin", WorkerRole.ADMIN)


# Images

@pytest.fixture
def image_factory():
    def make(size=(640, 480), color=(120, 160, 200), fmt="JPEG", noise=False) -> bytes:
        image = Image.new("RGB", size, color)
        if noise:
            image = Image.effect_noise(size, 64).convert("RGB")
        buffer = io.BytesIO()
        image.save(buffer, format=fmt)
        return buffer.getvalue()

    return make


def entry_payload(receipt_number: str = "JT1234567890", **overrides) -> dict:
    payload = {
        "worker_name": "Budi",
        "receipt_number": receipt_number,
        "manifest_weight": 5.0,
        "measured_weight": 5.8,
        "photo_url_1": f"https://res.cloudinary.com/test/image/upload/v1712345678/weight-entries/{receipt_number}_foto1.jpg",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def make_entry_payload():
    return entry_payload
