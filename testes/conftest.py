import json
import os
import sys

# Ensure project root is on sys.path for imports when running tests directly
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import pytest
import requests
from requests.structures import CaseInsensitiveDict


class FakeResponse:
    """Minimal stand-in for ``requests.Response``."""

    def __init__(self, status_code=200, payload=None, headers=None, text=None):
        self.status_code = status_code
        self._payload = payload
        self.headers = CaseInsensitiveDict(headers or {})
        if text is None:
            text = json.dumps(payload) if payload is not None else ""
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON body")
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)


@pytest.fixture
def fake_response():
    return FakeResponse


@pytest.fixture(autouse=True)
def fast_rate_limiter(monkeypatch):
    from src.migrators import builder_migrator

    monkeypatch.setattr(builder_migrator, "_limiter", builder_migrator.RateLimiter(60_000_000))


@pytest.fixture
def no_sleep(monkeypatch):
    from src.migrators import builder_migrator

    monkeypatch.setattr(builder_migrator.time, "sleep", lambda _s: None)
