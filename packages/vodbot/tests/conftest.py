from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Callable, Iterable

import pytest
import requests

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "src"))

from vodbot.gql import Fragment  # noqa: E402

_MISSING = object()


class FakeResponse:
    def __init__(
        self,
        status_code: int = 200,
        *,
        json_data: Any = _MISSING,
        text: str = "",
        content: bytes = b"",
    ):
        self.status_code = status_code
        self._json = json_data
        self.text = text
        self.content = content

    def json(self) -> Any:
        if self._json is _MISSING:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self._json

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")

    def iter_content(self, chunk_size: int = 1):
        for i in range(0, len(self.content), chunk_size):
            yield self.content[i : i + chunk_size]

    def close(self) -> None:
        pass

    def __enter__(self) -> "FakeResponse":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class FakeSession:
    """Stand-in for ``requests.Session``: routes GETs by URL, records every call."""

    def __init__(self, routes: dict[str, Any] | None = None, post: Callable[..., Any] | None = None):
        self.headers: dict[str, str] = {}
        self.routes = routes or {}
        self._post = post
        self.calls: list[tuple[str, str, dict]] = []

    def _answer(self, value: Any) -> FakeResponse:
        if isinstance(value, BaseException):
            raise value
        if callable(value):
            return value()
        return value

    def get(self, url: str, params=None, timeout=None, stream=False) -> FakeResponse:
        self.calls.append(("GET", url, {"params": params, "timeout": timeout, "stream": stream}))
        if url not in self.routes:
            return FakeResponse(404, text="not found")
        return self._answer(self.routes[url])

    def post(self, url: str, json=None, headers=None, timeout=None) -> FakeResponse:
        self.calls.append(("POST", url, {"json": json, "headers": headers, "timeout": timeout}))
        return self._answer(self._post(json=json, headers=headers))


class ScriptedClient:
    """A GQL client whose answers come from ``handler(fragments) -> response``."""

    def __init__(self, handler: Callable[[list[Fragment]], dict]):
        self.handler = handler
        self.waves: list[list[Fragment]] = []

    def query(self, fragments: Iterable[Fragment]) -> dict:
        wave = list(fragments)
        self.waves.append(wave)
        return self.handler(wave)


@pytest.fixture(autouse=True)
def fixed_user_agent(monkeypatch):
    monkeypatch.setattr("vodbot.gql.pick_user_agent", lambda *a, **kw: "vodbot-tests/1.0")
    yield


@pytest.fixture
def fake_session():
    return FakeSession()
