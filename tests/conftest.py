import asyncio
from urllib.parse import parse_qs

import httpx
import pytest
from fastapi.testclient import TestClient

from backend.app.core.config import Settings
from backend.app.db import create_engine_from_settings, create_session_factory, init_models
from backend.app.main import create_app

VALID_COOKIES = {"uid": "115uid_1", "cid": "cid_1", "seid": "seid_1", "kid": "kid_1"}
OTHER_COOKIES = {"uid": "115uid_2", "cid": "cid_2", "seid": "seid_2", "kid": "kid_2"}


class FakeDrive115:
    """
    In-process stand-in for the 115 web API, used as an ``httpx.MockTransport``
    handler. Attributes can be flipped by tests to drive error paths.
    """

    def __init__(self):
        self.valid_uids = {VALID_COOKIES["uid"], OTHER_COOKIES["uid"]}
        self.qr_status = 0
        self.qr_cookie = {"UID": "qr_uid", "CID": "qr_cid", "SEID": "qr_seid", "KID": "qr_kid"}
        self.qr_login_state = True
        self.rejected_urls = set()
        self.files = {42: {"fid": "42", "n": "movie.mkv", "s": 1024, "pc": "pick42"}}
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        host = request.url.host
        path = request.url.path
        params = request.url.params

        if host == "passportapi.115.com" and path.endswith("/check/sso"):
            return self._login_check(request)
        if host == "passportapi.115.com" and path.endswith("/login/qrcode/"):
            return self._qr_login(request)
        if host == "qrcodeapi.115.com" and path.endswith("/token/"):
            return self._json({
                "state": 1,
                "data": {
                    "uid": "qr-session-1",
                    "sign": "sign-1",
                    "time": 1700000000,
                    "qrcode": "https://115.com/scan/dg-qr-session-1",
                },
            })
        if host == "qrcodeapi.115.com" and path == "/get/status/":
            return self._json({"state": 1, "data": {"status": self.qr_status}})

        if host == "my.115.com":
            return self._json({"state": True, "data": {"user_id": 12345, "user_name": "alice115"}})
        if host == "115.com" and path == "/" and params.get("ct") == "offline":
            return self._json({"state": True, "sign": "offline-sign", "time": 1700000001})
        if params.get("ac") == "task_lists":
            return self._json({
                "state": True,
                "page": 1,
                "page_count": 1,
                "count": 1,
                "tasks": [{"info_hash": "hash-1", "name": "ubuntu.iso", "percentDone": 100}],
            })
        if params.get("ac") == "add_task_urls":
            return self._add_task_urls(request)
        if params.get("ac") in ("task_del", "task_clear"):
            return self._json({"state": True})

        if host == "webapi.115.com" and path == "/files":
            return self._json({
                "state": True,
                "count": len(self.files),
                "data": list(self.files.values()),
            })
        if host == "webapi.115.com" and path == "/files/get_info":
            entry = self.files.get(int(params.get("file_id")))
            return self._json({"state": True, "data": [entry] if entry else []})
        if host == "webapi.115.com" and path == "/files/download":
            return self._json({
                "state": True,
                "file_name": "movie.mkv",
                "file_size": 1024,
                "file_url": f"https://cdn.115.com/{params.get('pickcode')}",
            })

        return httpx.Response(404)

    @staticmethod
    def _json(payload) -> httpx.Response:
        return httpx.Response(200, json=payload)

    @staticmethod
    def form(request: httpx.Request) -> dict:
        parsed = parse_qs(request.content.decode("utf-8"))
        return {key: values[0] for key, values in parsed.items()}

    def _login_check(self, request: httpx.Request) -> httpx.Response:
        cookie = request.headers.get("cookie", "")
        if any(f"UID={uid};" in cookie for uid in self.valid_uids):
            return self._json({"state": 1, "data": {"user_id": 12345}})
        return self._json({"state": 0, "message": "not logged in"})

    def _qr_login(self, request: httpx.Request) -> httpx.Response:
        if not self.qr_login_state:
            return self._json({"state": 0, "message": "login expired"})
        return self._json({"state": 1, "data": {"cookie": dict(self.qr_cookie)}})

    def _add_task_urls(self, request: httpx.Request) -> httpx.Response:
        form = self.form(request)
        keys = sorted((k for k in form if k.startswith("url[")), key=lambda k: int(k[4:-1]))
        urls = [form[k] for k in keys]
        result = []
        for index, url in enumerate(urls):
            if url in self.rejected_urls:
                result.append({"state": False, "url": url})
            else:
                result.append({"state": True, "url": url, "info_hash": f"hash-{index}"})
        return self._json({"state": True, "result": result})

    def last_request(self, host: str) -> httpx.Request:
        return [r for r in self.requests if r.url.host == host][-1]


@pytest.fixture
def settings(tmp_path):
    return Settings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        BCRYPT_ROUNDS=4,
        CORS_ORIGINS="",
        _env_file=None,
    )


@pytest.fixture
def upstream():
    return FakeDrive115()


@pytest.fixture
def app(settings, upstream):
    return create_app(settings, upstream_transport=httpx.MockTransport(upstream))


@pytest.fixture
def client(app):
    # Context manager runs the lifespan, which creates the tables
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def session_factory(settings):
    engine = create_engine_from_settings(settings)
    asyncio.run(init_models(engine))
    yield create_session_factory(engine)
    asyncio.run(engine.dispose())


@pytest.fixture
def login_as(client):
    """Register (if needed) and log in; returns the Authorization headers."""

    def _login(username="alice", email="a@x.com", password="password123"):
        client.post(
            "/api/v1/auth/register",
            json={"username": username, "email": email, "password": password},
        )
        response = client.post(
            "/api/v1/auth/login", json={"username": username, "password": password}
        )
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['session_token']}"}

    return _login


@pytest.fixture
def auth_headers(login_as):
    return login_as()


@pytest.fixture
def add_credential(client):
    """Store a credential for the given headers; returns its id."""

    def _add(headers, name="main", cookies=None, activate=False):
        body = dict(cookies or VALID_COOKIES, name=name, activate=activate)
        response = client.post("/api/v1/credentials", json=body, headers=headers)
        assert response.status_code == 201, response.text
        return response.json()["id"]

    return _add
