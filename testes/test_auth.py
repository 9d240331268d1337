import os
import sys

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import pytest

from conftest import FakeResponse
from src.extractors import auth
from src.extractors.auth import TokenProvider, call_with_auth_retry
from src.utils.errors import AuthError, FetchError

WP_CFG = {"url": "https://wp.example.com", "username": "admin", "password": "secret"}


@pytest.fixture
def token_server(monkeypatch):
    issued = []

    def fake_post(url, json=None, headers=None, timeout=None):
        issued.append(json)
        return FakeResponse(200, {"token": f"token-{len(issued)}"})

    monkeypatch.setattr(auth.requests, "post", fake_post)
    return issued


def test_token_is_cached(token_server):
    provider = TokenProvider(WP_CFG)
    assert provider.get_token() == "token-1"
    assert provider.get_token() == "token-1"
    assert len(token_server) == 1
    assert token_server[0] == {"username": "admin", "password": "secret"}
    assert provider.auth_url == "https://wp.example.com/wp-json/jwt-auth/v1/token"


def test_without_credentials_reads_anonymously(token_server):
    provider = TokenProvider({"url": "https://wp.example.com"})
    assert provider.get_token() is None
    assert token_server == []


def test_rejected_credentials_raise_auth_error(monkeypatch):
    monkeypatch.setattr(
        auth.requests, "post",
        lambda url, json=None, headers=None, timeout=None: FakeResponse(403, {"message": "bad password"}),
    )
    with pytest.raises(AuthError) as excinfo:
        TokenProvider(WP_CFG).get_token()
    assert excinfo.value.status_code == 403


def test_unauthorized_fetch_retries_once_with_fresh_token(token_server):
    provider = TokenProvider(WP_CFG)
    seen = []

    def fetch(token):
        seen.append(token)
        if len(seen) == 1:
            raise FetchError("posts", "HTTP 401", 401)
        return ["ok"]

    assert call_with_auth_retry(provider, fetch) == ["ok"]
    assert seen == ["token-1", "token-2"]


def test_second_rejection_is_terminal(token_server):
    provider = TokenProvider(WP_CFG)
    calls = []

    def fetch(token):
        calls.append(token)
        raise FetchError("users", "HTTP 403", 403)

    with pytest.raises(AuthError) as excinfo:
        call_with_auth_retry(provider, fetch)
    assert len(calls) == 2
    assert excinfo.value.kind == "users"


def test_other_fetch_errors_are_not_retried(token_server):
    provider = TokenProvider(WP_CFG)
    calls = []

    def fetch(token):
        calls.append(token)
        raise FetchError("pages", "HTTP 500", 500)

    with pytest.raises(FetchError):
        call_with_auth_retry(provider, fetch)
    assert len(calls) == 1
