"""
Integration tests for the enrollment, confirmation and health routes.
"""

import logging

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from push_mfa_simulator import __version__
from push_mfa_simulator.dependencies import (
    get_http_client,
    get_settings,
    get_sse_service,
)
from push_mfa_simulator.main import app
from push_mfa_simulator.services.sse_service import SseService
from tests.fixtures.keys import make_session_token


@pytest_asyncio.fixture
async def client(iam_http_client, test_settings):
    app.dependency_overrides[get_http_client] = lambda: iam_http_client
    app.dependency_overrides[get_settings] = lambda: test_settings
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://simulator.test"
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.mark.asyncio
async def test_health(client):
    service = SseService()
    service.start()
    app.dependency_overrides[get_sse_service] = lambda: service

    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {
        "status": "ok",
        "version": __version__,
        "sse_running": True,
    }
    assert "X-Request-ID" in response.headers


@pytest.mark.asyncio
async def test_request_id_is_echoed(client):
    response = await client.get("/health", headers={"X-Request-ID": "req-42"})

    assert response.headers["X-Request-ID"] == "req-42"


@pytest.mark.asyncio
async def test_enroll_complete(client, fake_iam):
    token = make_session_token({"enrollmentId": "enr-1", "nonce": "n", "sub": "user123"})

    response = await client.post(
        "/enroll/complete",
        data={"token": token, "context": "ctx", "pushProviderType": "fcm"},
    )

    assert response.status_code == 200
    assert response.text == '{"status":"ENROLLED"}'
    assert response.headers["content-type"].startswith("text/plain")
    assert len(fake_iam.requests_to("enroll")) == 1


@pytest.mark.asyncio
async def test_enroll_missing_claims(client, fake_iam):
    token = make_session_token({"enrollmentId": "enr-1"})

    response = await client.post("/enroll/complete", data={"token": token})

    assert response.status_code == 400
    assert response.text == "Invalid token: missing required claims"
    assert fake_iam.requests == []


@pytest.mark.asyncio
async def test_confirm_login(client, fake_iam):
    fake_iam.challenges = [{"cid": "challenge-1"}]
    token = make_session_token(
        {"cid": "challenge-1", "credId": "user123-device-alias-ctx"}
    )

    response = await client.post(
        "/confirm/login", data={"token": token, "action": "approve"}
    )

    assert response.status_code == 200
    assert response.text == (
        "userId: user123; responseStatus: 200 OK; "
        "userVerification: null; action: approve"
    )


@pytest.mark.asyncio
async def test_confirm_login_verification_required(client, fake_iam):
    fake_iam.challenges = [{"cid": "challenge-1", "userVerification": "PIN"}]
    token = make_session_token(
        {"cid": "challenge-1", "credId": "user123-device-alias-ctx"}
    )

    response = await client.post("/confirm/login", data={"token": token})

    assert response.status_code == 400
    assert response.text == "userVerification required"

    response = await client.post(
        "/confirm/login", data={"token": token, "userVerification": "1234"}
    )
    assert response.status_code == 200
    assert "userVerification: 1234;" in response.text


@pytest.mark.asyncio
async def test_confirm_login_challenge_not_found(client, fake_iam):
    token = make_session_token(
        {"cid": "challenge-1", "credId": "user123-device-alias-ctx"}
    )

    response = await client.post("/confirm/login", data={"token": token})

    assert response.status_code == 404
    assert response.text == "Challenge not found"


@pytest.mark.asyncio
async def test_confirm_login_malformed_token(client, fake_iam):
    response = await client.post("/confirm/login", data={"token": "not-a-jwt"})

    assert response.status_code == 500
    assert "detail" in response.json()
    assert fake_iam.requests == []


@pytest.mark.asyncio
async def test_confirm_login_requires_token_field(client):
    response = await client.post("/confirm/login", data={"action": "deny"})

    assert response.status_code == 422
    missing = [err for err in response.json()["detail"] if err.get("type") == "missing"]
    assert missing and missing[0]["loc"][-1] == "token"


def request_records(caplog, path):
    return [
        record.extra
        for record in caplog.records
        if record.getMessage() == "Request processed"
        and record.extra["request"]["path"] == path
    ]


@pytest.mark.asyncio
async def test_request_log_carries_confirmation_outcome(client, fake_iam, caplog):
    caplog.set_level(logging.INFO, logger="push_mfa_simulator")
    token = make_session_token(
        {"cid": "challenge-1", "credId": "user123-device-alias-ctx"}
    )

    await client.post("/confirm/login", data={"token": token, "action": "deny"})

    [record] = request_records(caplog, "/confirm/login")
    assert record["response"]["status_code"] == 404
    assert record["outcome"] == {
        "state": "match_challenge",
        "reason": "not_found",
        "user_id": "user123",
        "action": "deny",
    }


@pytest.mark.asyncio
async def test_request_log_carries_iam_status_of_enrollment(client, fake_iam, caplog):
    caplog.set_level(logging.INFO, logger="push_mfa_simulator")
    fake_iam.enroll_status = 409
    token = make_session_token({"enrollmentId": "enr-1", "nonce": "n", "sub": "user123"})

    await client.post("/enroll/complete", data={"token": token})

    [record] = request_records(caplog, "/enroll/complete")
    assert record["outcome"] == {"iam_status": 409}
