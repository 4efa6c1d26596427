"""
Failure Injection Tests.

Validates resilience against collaborator and component failures.
"""

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from weighcheck.app.core.dependencies import get_uploader
from weighcheck.app.core.reliability import CircuitBreaker, CircuitOpenError
from weighcheck.app.main import app
from weighcheck.app.models.audit_log import AuditLog
from weighcheck.app.models.entry import Entry
from weighcheck.app.services.audit import AuditAction, get_audit_trail, log_event
from weighcheck.app.services.storage import EvidenceUploader


@pytest.mark.asyncio
async def test_circuit_breaker_activates():
    """Test that circuit breaker opens after threshold failures."""
    cb = CircuitBreaker(failure_threshold=2, reset_timeout=1)

    async def failing_func():
        raise ValueError("Boom")

    # Fail 1
    try:
        await cb.call(failing_func)
    except ValueError:
        pass

    # Fail 2 (Threshold reached)
    try:
        await cb.call(failing_func)
    except ValueError:
        pass

    # Call 3 (Should be CircuitOpenError)
    try:
        await cb.call(failing_func)
        assert False, "Circuit should be open"
    except CircuitOpenError:
        pass  # Success


@pytest.mark.asyncio
async def test_circuit_breaker_recovers_after_timeout(mocker):
    """A successful half-open trial call closes the circuit again."""
    clock = mocker.patch("weighcheck.app.core.reliability.time.time", return_value=1000.0)
    cb = CircuitBreaker(failure_threshold=1, reset_timeout=30)

    async def failing_func():
        raise ValueError("Boom")

    async def ok_func():
        return "ok"

    with pytest.raises(ValueError):
        await cb.call(failing_func)
    assert cb.state == "OPEN"

    clock.return_value = 1031.0
    assert await cb.call(ok_func) == "ok"
    assert cb.state == "CLOSED"
    assert cb.failures == 0


@pytest.mark.asyncio
async def test_failed_half_open_trial_reopens(mocker):
    clock = mocker.patch("weighcheck.app.core.reliability.time.time", return_value=1000.0)
    cb = CircuitBreaker(failure_threshold=3, reset_timeout=30)
    cb.state = "OPEN"
    cb.last_failure_time = 1000.0

    async def failing_func():
        raise ValueError("Boom")

    clock.return_value = 1031.0
    with pytest.raises(ValueError):
        await cb.call(failing_func)

    assert cb.state == "OPEN"


@pytest.mark.asyncio
async def test_audit_failure_is_swallowed(db_session):
    """An audit write that cannot be stored never breaks the caller."""
    result = await log_event(
        db_session,
        AuditAction.ENTRY_CREATED,
        actor_id=1,
        actor_name="budi",
        resource="entry:1",
        details={"unserializable": object()},
    )

    assert result is None

    # The session is still usable afterwards
    db_session.add(
        Entry(
            receipt_number="JT1234567890",
            worker_id=1,
            worker_name="Budi",
            manifest_weight=5.0,
            measured_weight=5.8,
            discrepancy=0.8,
            photo_url_1="https://example.com/a.jpg",
        )
    )
    await db_session.commit()

    logs, total = await get_audit_trail(db_session)
    assert total == 0


@pytest.mark.asyncio
async def test_audit_trail_filters(db_session):
    await log_event(db_session, AuditAction.ENTRY_CREATED, actor_id=1, actor_name="budi")
    await log_event(db_session, AuditAction.ENTRY_DELETED, actor_id=99, actor_name="admin")
    await log_event(db_session, AuditAction.SETTINGS_UPDATED, actor_id=99, actor_name="admin")

    logs, total = await get_audit_trail(db_session, actor_id=99)
    assert total == 2
    assert logs[0].action == AuditAction.SETTINGS_UPDATED
    assert all(isinstance(log, AuditLog) for log in logs)

    logs, total = await get_audit_trail(db_session, action=AuditAction.ENTRY_CREATED)
    assert [log.actor_name for log in logs] == ["budi"]


@pytest.mark.asyncio
async def test_storage_outage_returns_retryable_error(client, worker_headers, image_factory):
    """A storage 5xx surfaces as a 502 naming the slot, with try_again."""
    app.dependency_overrides[get_uploader] = lambda: EvidenceUploader(
        transport=httpx.MockTransport(lambda request: httpx.Response(503)),
        base_url="https://storage.test",
        cloud_name="test",
    )

    response = await client.post(
        "/v1/evidence/2",
        data={"receipt_number": "JT1234567890", "latitude": "-6.2", "longitude": "106.8"},
        files={"photo": ("scale.jpg", image_factory(), "image/jpeg")},
        headers=worker_headers,
    )

    assert response.status_code == 502
    body = response.json()
    assert body["error_code"] == "ERR_UPLOAD_001"
    assert body["action"] == "try_again"
    assert body["details"]["slot"] == 2


@pytest.mark.asyncio
async def test_geocoder_outage_falls_back(client, worker_headers, mocker, geocoder):
    mocker.patch.object(geocoder, "_fetch", side_effect=httpx.ConnectError("down"))

    response = await client.get("/v1/geocode?lat=-6.2&lon=106.8", headers=worker_headers)

    assert response.status_code == 200
    assert response.json()["address"] == "Unknown Location"
    assert response.json()["fallback"] is True


@pytest.mark.asyncio
async def test_unhandled_error_uses_envelope(apply_overrides, worker_headers, image_factory):
    """Unexpected exceptions become a 500 with the standard error envelope."""

    def broken_uploader():
        raise RuntimeError("storage client misconfigured")

    app.dependency_overrides[get_uploader] = broken_uploader

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        response = await ac.post(
            "/v1/evidence/1",
            data={"receipt_number": "JT1234567890", "latitude": "-6.2", "longitude": "106.8"},
            files={"photo": ("scale.jpg", image_factory(), "image/jpeg")},
            headers={**worker_headers, "Accept-Language": "id"},
        )

    assert response.status_code == 500
    body = response.json()
    assert body["error_code"] == "ERR_INTERNAL_SERVER"
    assert body["message"] == "Terjadi kesalahan server"
    assert body["action"] == "contact_admin"


@pytest.mark.asyncio
async def test_responses_carry_correlation_id(client):
    response = await client.get("/health", headers={"X-Correlation-ID": "abc-123"})

    assert response.status_code == 200
    assert response.json()["redis"] == "ok"
    assert response.headers["X-Correlation-ID"] == "abc-123"
    assert "X-Process-Time" in response.headers
