"""
Builder.io API helper functions for WordPress → Builder.io migration.

This module implements low-level interactions with the Builder.io REST
APIs.  Functions defined here check whether a WordPress item was already
migrated (content API queried by the ``originalWordPressId`` metadata
field) and create content entries through the Write API.  A simple rate
limiter is included to stay well under Builder's request limits.  A
generic retry wrapper is provided to handle transient network errors and
server-side rate limiting responses (429 or 5xx).

Usage example::

    from src.parsers.content_transformer import transform_content
    from src.migrators.builder_migrator import upload_page

    cfg = {"api_key": ..., "model": "page",
           "api_endpoint": "https://builder.io/api/v1",
           "content_endpoint": "https://builder.io/api/v3/content"}
    doc = transform_content(item)
    result = upload_page(cfg, doc, item.id)
    if result["skipped"]:
        print("already migrated")

"""

from __future__ import annotations

import json
import time
from typing import Any, Callable, Dict, Optional, Union

import requests

from models.builder_page import PageDocument
from src.utils.errors import DedupQueryError, UploadError

###############################################################################
# Rate limiting and retry utilities
###############################################################################

class RateLimiter:
    """
    Simple time-based rate limiter.  Ensures that no more than ``rpm``
    requests are dispatched per minute.  The limiter is used by all
    Builder.io calls in this module.
    """

    def __init__(self, rpm: int = 200) -> None:
        self.rpm = max(1, rpm)
        self.interval = 60.0 / float(self.rpm)
        self._last = 0.0

    def wait(self, time_fn: Callable[[], float] = time.time, sleep_fn: Callable[[float], None] = time.sleep) -> None:
        now = time_fn()
        dt = now - self._last
        if dt < self.interval:
            sleep_fn(self.interval - dt)
        self._last = time_fn()


def builder_headers(cfg: Dict[str, Any]) -> Dict[str, str]:
    """
    Construct the default headers required for Builder.io API requests.

    :param cfg: A configuration dictionary with the private ``api_key``.
    :return: A dictionary of headers including Authorization.
    """
    return {
        "Authorization": f"Bearer {cfg['api_key']}",
    }


def with_retries(fn: Callable[[], requests.Response], *, max_attempts: int = 5, base_delay: float = 0.7) -> requests.Response:
    """
    Execute a function returning a ``requests.Response``, retrying on
    transient HTTP errors.  Retries are attempted on status codes 429
    (too many requests) and 5xx server errors.  Backoff is exponential.

    :param fn: A zero-argument callable that performs the HTTP request.
    :param max_attempts: Maximum number of attempts before giving up.
    :param base_delay: Base delay in seconds for exponential backoff.
    :return: The successful ``requests.Response``.
    :raises requests.HTTPError: if all attempts fail.
    """
    attempt = 0
    while True:
        try:
            resp = fn()
            resp.raise_for_status()
            return resp
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            if status not in (429, 500, 502, 503, 504) or attempt >= max_attempts - 1:
                raise
            # Use Retry-After header if provided, otherwise exponential backoff
            retry_after = e.response.headers.get("Retry-After")
            try:
                wait = float(retry_after) if retry_after else base_delay * (2 ** attempt)
            except ValueError:
                wait = base_delay * (2 ** attempt)
            time.sleep(wait)
            attempt += 1
        except requests.RequestException:
            if attempt >= max_attempts - 1:
                raise
            time.sleep(base_delay * (2 ** attempt))
            attempt += 1


def api_error_message(resp: Optional[requests.Response]) -> str:
    """Human-readable reason from a Builder.io error response."""
    if resp is None:
        return "No response from Builder.io"
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        message = body.get("message") or body.get("error")
        if message:
            return str(message)
    text = (resp.text or "").strip()
    return text[:300] if text else f"HTTP {resp.status_code}"


_limiter = RateLimiter(180)  # Use a conservative default


###############################################################################
# Duplicate detection
###############################################################################

def _query_existing(cfg: Dict[str, Any], origin_id: Union[int, str], model: str) -> bool:
    url = f"{cfg['content_endpoint'].rstrip('/')}/{model}"
    params: Dict[str, Any] = {
        "query.meta.originalWordPressId": origin_id,
        "limit": 1,
        "includeUnpublished": "true",
        "cachebust": "true",
        "fields": "id",
    }
    if cfg.get("public_api_key"):
        params["apiKey"] = cfg["public_api_key"]

    def do_request() -> requests.Response:
        _limiter.wait()
        return requests.get(url, headers=builder_headers(cfg), params=params, timeout=30)

    try:
        resp = with_retries(do_request, max_attempts=int(cfg.get("max_attempts", 5)))
        body = resp.json()
    except requests.HTTPError as e:
        raise DedupQueryError(f"Builder.io content query failed: {api_error_message(e.response)}") from e
    except (requests.RequestException, ValueError) as e:
        raise DedupQueryError(f"Builder.io content query failed: {e}") from e
    results = body.get("results") if isinstance(body, dict) else None
    return bool(results)


def content_exists(cfg: Dict[str, Any], origin_id: Union[int, str], model: Optional[str] = None) -> bool:
    """
    Whether a Builder.io entry for the WordPress item ``origin_id`` exists.

    A failing query answers ``False`` so the item is uploaded rather than
    silently skipped.

    :param cfg: Builder.io configuration dictionary.
    :param origin_id: WordPress id stored as ``meta.originalWordPressId``.
    :param model: Builder.io model name, defaults to ``cfg["model"]``.
    """
    try:
        return _query_existing(cfg, origin_id, model or cfg.get("model", "page"))
    except DedupQueryError as e:
        print(f"[WARNING] {e}. Assuming item {origin_id} was not migrated yet.")
        return False


###############################################################################
# Write helpers
###############################################################################

def upload_page(cfg: Dict[str, Any], doc: PageDocument, origin_id: Optional[Union[int, str]] = None) -> Dict[str, Any]:
    """
    Create a Builder.io content entry for ``doc`` unless one already exists.

    :param cfg: Builder.io configuration dictionary.
    :param doc: Page document returned by
                :func:`src.parsers.content_transformer.transform_content`.
    :param origin_id: WordPress id; defaults to the document's origin id.
    :return: ``{"skipped": True, ...}`` when the item was already migrated,
             otherwise ``{"skipped": False, "page": <API response>, "url": ...}``.
    :raises UploadError: when Builder.io rejects the entry or cannot be reached.
    """
    if origin_id is None:
        origin_id = doc.origin_meta.origin_id
    model = doc.model or cfg.get("model", "page")

    if content_exists(cfg, origin_id, model):
        return {"skipped": True, "url": doc.target_url}

    api_url = f"{cfg['api_endpoint'].rstrip('/')}/write/{model}"
    body = doc.to_builder_payload()

    def do_request() -> requests.Response:
        _limiter.wait()
        return requests.post(
            api_url,
            headers={**builder_headers(cfg), "Content-Type": "application/json"},
            data=json.dumps(body),
            timeout=30,
        )

    try:
        resp = with_retries(do_request, max_attempts=int(cfg.get("max_attempts", 5)))
    except requests.HTTPError as e:
        status = e.response.status_code if e.response is not None else None
        raise UploadError(api_error_message(e.response), status) from e
    except requests.RequestException as e:
        raise UploadError(f"Network error communicating with Builder.io: {e}") from e

    try:
        ack = resp.json()
    except ValueError:
        ack = {}
    return {"skipped": False, "page": ack, "url": doc.target_url}
