"""
Bearer credentials for the WordPress REST API.

WordPress issues tokens through the JWT Authentication plugin
(``/wp-json/jwt-auth/v1/token``).  :class:`TokenProvider` obtains one token
and caches it; :func:`call_with_auth_retry` wraps a fetch so that an
authorization failure invalidates the cache and retries exactly once with a
fresh token.  A second rejection is terminal (:class:`AuthError`).
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Dict, Optional, TypeVar

import requests

from src.utils.errors import AuthError, FetchError

T = TypeVar("T")


class TokenProvider:
    """Obtains and caches one WordPress JWT for the lifetime of the tool."""

    def __init__(self, cfg: Dict[str, Any], *, timeout: float = 30.0) -> None:
        self.cfg = cfg
        self.timeout = timeout
        self._token: Optional[str] = None
        self._lock = threading.Lock()

    @property
    def has_credentials(self) -> bool:
        return bool(self.cfg.get("username") and self.cfg.get("password"))

    @property
    def auth_url(self) -> str:
        return f"{self.cfg.get('url', '').rstrip('/')}{self.cfg.get('auth_endpoint', '/wp-json/jwt-auth/v1/token')}"

    def invalidate(self) -> None:
        with self._lock:
            self._token = None

    def get_token(self, force: bool = False) -> Optional[str]:
        """
        Return the cached token, requesting a new one when ``force`` is set
        or nothing is cached.  Without configured credentials the API is read
        anonymously and ``None`` is returned.

        :raises AuthError: if the token endpoint rejects the credentials or
            cannot be reached.
        """
        if not self.has_credentials:
            return None
        with self._lock:
            if self._token and not force:
                return self._token
            self._token = self._request_token()
            return self._token

    def _request_token(self) -> str:
        try:
            resp = requests.post(
                self.auth_url,
                json={"username": self.cfg["username"], "password": self.cfg["password"]},
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
            resp.raise_for_status()
            token = resp.json().get("token")
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise AuthError("token", f"Failed to authenticate with WordPress: {e}", status) from e
        except (requests.RequestException, ValueError) as e:
            raise AuthError("token", f"Failed to authenticate with WordPress: {e}") from e
        if not token:
            raise AuthError("token", "WordPress token endpoint returned no token")
        return token


def call_with_auth_retry(provider: TokenProvider, fn: Callable[[Optional[str]], T]) -> T:
    """
    Call ``fn(token)``.  On a 401/403 the cached token is dropped and ``fn``
    runs once more with a freshly acquired token; a second authorization
    failure raises :class:`AuthError` instead of retrying again.
    """
    try:
        return fn(provider.get_token())
    except FetchError as e:
        if not e.is_authorization_error or isinstance(e, AuthError):
            raise
        print(f"[WARNING] Authorization rejected while fetching {e.kind}; refreshing token.")
        provider.invalidate()

    try:
        return fn(provider.get_token(force=True))
    except FetchError as e:
        if e.is_authorization_error and not isinstance(e, AuthError):
            raise AuthError(e.kind, f"authorization rejected after token refresh ({e.message})", e.status_code) from e
        raise
