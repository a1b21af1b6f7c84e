# tests/conftest.py
import base64
import json

import pytest

from core.db import get_engine, init_db
from core.i18n import Labels
from core.session import Session


def make_token(claims: dict) -> str:
    """Unsigned JWT carrying ``claims``."""
    def seg(obj):
        raw = json.dumps(obj).encode("utf-8")
        return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")
    return f"{seg({'alg': 'none', 'typ': 'JWT'})}.{seg(claims)}.sig"


class FakeResponse:
    def __init__(self, status_code=200, payload=None, raise_json=False):
        self.status_code = status_code
        self._payload = payload
        self._raise_json = raise_json

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self._raise_json:
            raise ValueError("not json")
        return self._payload


class FakeHttp:
    """Stand-in for requests.Session: replays queued responses, records calls."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def request(self, method, url, headers=None, json=None, timeout=None):
        self.calls.append({"method": method, "url": url, "headers": headers or {}, "json": json})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class RoutedHttp:
    """Answers by URL path, for calls that run concurrently and arrive in any order."""

    def __init__(self, routes):
        self.routes = dict(routes)
        self.calls = []

    def request(self, method, url, headers=None, json=None, timeout=None):
        self.calls.append({"method": method, "url": url, "headers": headers or {}, "json": json})
        path = url.split("?", 1)[0]
        for suffix, response in self.routes.items():
            if path.endswith(suffix):
                if isinstance(response, Exception):
                    raise response
                return response
        return FakeResponse(status_code=404, payload={"message": f"no route for {path}"})


@pytest.fixture
def labels():
    return Labels("es")


@pytest.fixture
def admin_session():
    token = make_token({"sub": "admin", "role": "ADMIN", "school_id": 3})
    return Session(token=token, user={"first_name": "Ana", "role": "ADMIN"})


@pytest.fixture
def student_session():
    token = make_token({"sub": "alumno", "role": "STUDENT"})
    return Session(token=token, user={"first_name": "Luis"})


@pytest.fixture
def state_engine(tmp_path):
    engine = get_engine(f"sqlite:///{tmp_path / 'state.db'}")
    init_db(engine)
    return engine


@pytest.fixture
def token_for():
    return make_token


@pytest.fixture
def fake_http():
    return FakeHttp


@pytest.fixture
def fake_response():
    return FakeResponse


@pytest.fixture
def routed_http():
    return RoutedHttp
