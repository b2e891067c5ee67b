import asyncio

import httpx
import pytest

from backend.app.core.errors import QRLoginFailedError, UpstreamError
from backend.app.schemas.qr import QRStatus
from backend.app.services.qr_login import QRLoginBroker

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
SESSION_REF = {"uid": "qr-session-1", "sign": "sign-1", "time": 1700000000}


def test_start(client):
    response = client.post("/api/v1/qr/start")
    assert response.status_code == 200
    assert response.json() == {
        "uid": "qr-session-1",
        "sign": "sign-1",
        "time": 1700000000,
        "qrcode": "https://115.com/scan/dg-qr-session-1",
    }


def test_image_is_png(client, upstream):
    response = client.get("/api/v1/qr/image", params={"uid": "qr-session-1"})
    assert response.status_code == 200
    assert response.headers["content-type"] == "image/png"
    assert response.headers["cache-control"] == "no-cache"
    assert response.content.startswith(PNG_SIGNATURE)
    # Rendered locally
    assert upstream.requests == []


def test_image_requires_uid(client):
    assert client.get("/api/v1/qr/image").status_code == 400


@pytest.mark.parametrize(
    "code, status",
    [(0, "waiting"), (1, "scanned"), (2, "confirmed"), (-1, "expired"), (-2, "canceled")],
)
def test_status(client, upstream, code, status):
    upstream.qr_status = code
    response = client.post("/api/v1/qr/status", json=SESSION_REF)
    assert response.status_code == 200
    assert response.json()["status"] == status

    sent = upstream.last_request("qrcodeapi.115.com")
    assert sent.url.params["uid"] == "qr-session-1"
    assert sent.url.params["sign"] == "sign-1"


def test_status_unknown_code_is_upstream_error(client, upstream):
    upstream.qr_status = 7
    response = client.post("/api/v1/qr/status", json=SESSION_REF)
    assert response.status_code == 502
    assert response.json()["kind"] == "upstream_error"


def test_login_after_confirmation(client, upstream):
    upstream.qr_status = 2
    response = client.post("/api/v1/qr/login", json=dict(SESSION_REF, app="android"))
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["credentials"] == {"uid": "qr_uid", "cid": "qr_cid", "seid": "qr_seid", "kid": "qr_kid"}

    sent = upstream.last_request("passportapi.115.com")
    assert "/app/1.0/android/1.0/login/qrcode/" in sent.url.path


@pytest.mark.parametrize("code", [0, 1, -1, -2])
def test_login_before_confirmation_fails(client, upstream, code):
    upstream.qr_status = code
    response = client.post("/api/v1/qr/login", json=SESSION_REF)
    assert response.status_code == 400
    assert response.json()["kind"] == "login_failed"
    assert not any(r.url.host == "passportapi.115.com" for r in upstream.requests)


def test_login_rejects_unknown_app(client):
    response = client.post("/api/v1/qr/login", json=dict(SESSION_REF, app="desktop"))
    assert response.status_code == 400
    assert response.json()["kind"] == "validation_error"


def test_login_with_incomplete_cookies_fails(client, upstream):
    upstream.qr_status = 2
    del upstream.qr_cookie["SEID"]
    response = client.post("/api/v1/qr/login", json=SESSION_REF)
    assert response.status_code == 400
    assert "credentials" not in response.json()


def test_credentials_from_qr(client, upstream, auth_headers):
    upstream.qr_status = 2
    body = dict(SESSION_REF, name="phone login", activate=True)
    response = client.post("/api/v1/credentials/qr", json=body, headers=auth_headers)
    assert response.status_code == 201
    assert response.json()["is_active"] is True

    stored = client.get(f"/api/v1/credentials/{response.json()['id']}", headers=auth_headers).json()
    assert stored["uid"] == "qr_uid"
    assert stored["kid"] == "qr_kid"


def test_credentials_from_unconfirmed_qr_stores_nothing(client, upstream, auth_headers):
    upstream.qr_status = -1
    body = dict(SESSION_REF, name="phone login")
    response = client.post("/api/v1/credentials/qr", json=body, headers=auth_headers)
    assert response.status_code == 400
    assert client.get("/api/v1/credentials", headers=auth_headers).json() == []


# --- QRLoginBroker ----------------------------------------------------------

def test_broker_poll_and_complete(settings, upstream):
    broker = QRLoginBroker(settings, transport=httpx.MockTransport(upstream))

    async def scenario():
        session = await broker.start()
        upstream.qr_status = 1
        status = await broker.poll(session.uid, session.sign, session.time)
        assert status.status is QRStatus.SCANNED

        with pytest.raises(QRLoginFailedError):
            await broker.complete(session.uid, session.sign, session.time)

        upstream.qr_status = 2
        cookies = await broker.complete(session.uid, session.sign, session.time)
        assert cookies.uid == "qr_uid"

        upstream.qr_login_state = False
        with pytest.raises(QRLoginFailedError):
            await broker.complete(session.uid, session.sign, session.time)

    asyncio.run(scenario())


def test_broker_network_error_is_upstream_error(settings):
    def unreachable(request):
        raise httpx.ConnectError("connection refused", request=request)

    broker = QRLoginBroker(settings, transport=httpx.MockTransport(unreachable))
    with pytest.raises(UpstreamError):
        asyncio.run(broker.start())


def test_display_image_uses_payload_template(settings):
    broker = QRLoginBroker(settings)
    first = broker.fetch_display_image("abc")
    assert first.startswith(PNG_SIGNATURE)
    assert broker.fetch_display_image("abc") == first
    assert broker.fetch_display_image("xyz") != first
