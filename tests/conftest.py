"""Test configuration ensuring local package import when editable install not active.

If users invoke `pytest` outside the project's virtualenv, we still add the project
root to sys.path so `import review_app` works. Also provides a scripted stand-in
for ``requests.Session`` so no test touches the network.
"""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest
import requests
from requests.structures import CaseInsensitiveDict

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def make_response(status: int = 200, payload: Any = None, headers: dict | None = None, url: str = "") -> requests.Response:
    resp = requests.Response()
    resp.status_code = status
    resp._content = json.dumps(payload).encode("utf-8") if payload is not None else b""
    resp.headers = CaseInsensitiveDict(headers or {})
    resp.encoding = "utf-8"
    resp.url = url
    return resp


@dataclass
class _Route:
    method: str
    prefix: str
    status: int = 200
    payload: Any = None
    headers: dict | None = None
    times: int | None = None
    raises: Exception | None = None


@dataclass
class FakeCall:
    method: str
    url: str
    kwargs: dict = field(default_factory=dict)

    @property
    def json(self) -> Any:
        return self.kwargs.get("json")


class FakeSession:
    """Routes requests by method + URL prefix; first live match wins."""

    def __init__(self):
        self.routes: list[_Route] = []
        self.calls: list[FakeCall] = []

    def add(self, method, prefix, status=200, payload=None, *, headers=None, times=None, raises=None):
        self.routes.append(_Route(method.upper(), prefix, status, payload, headers, times, raises))
        return self

    def calls_to(self, prefix: str) -> list[FakeCall]:
        return [c for c in self.calls if c.url.startswith(prefix)]

    def request(self, method, url, **kwargs):
        self.calls.append(FakeCall(method.upper(), url, kwargs))
        for route in self.routes:
            if route.method != method.upper() or not url.startswith(route.prefix):
                continue
            if route.times is not None:
                if route.times <= 0:
                    continue
                route.times -= 1
            if route.raises is not None:
                raise route.raises
            return make_response(route.status, route.payload, route.headers, url)
        return make_response(404, {"message": "not found"}, url=url)


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def no_sleep():
    waits: list[float] = []
    return waits.append, waits
