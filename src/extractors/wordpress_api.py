"""
Read-only access to the WordPress REST API (``/wp-json/wp/v2``).

Collections are paginated; WordPress reports the number of pages in the
``X-WP-TotalPages`` response header.  :func:`fetch_collection` requests the
first page, then fetches the remaining pages concurrently and joins them.
Every failure is raised as :class:`~src.utils.errors.FetchError` tagged with
the collection kind.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional

import requests

from models.builder_page import ContentItem
from src.migrators.builder_migrator import with_retries
from src.utils.errors import FetchError

DEFAULT_PER_PAGE = 100


def wp_headers(token: Optional[str]) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"} if token else {}


def collection_base_url(cfg: Dict[str, Any]) -> str:
    """``https://site/wp-json/wp/v2`` from the ``wordpress`` config section."""
    return f"{cfg.get('url', '').rstrip('/')}{cfg.get('api_endpoint', '/wp-json/wp/v2')}"


def _error_text(resp: Optional[requests.Response]) -> str:
    if resp is None:
        return ""
    try:
        body = resp.json()
    except ValueError:
        return (resp.text or "")[:300]
    if isinstance(body, dict):
        return body.get("message") or body.get("code") or str(body)[:300]
    return str(body)[:300]


def _get_page(
    kind: str,
    base_url: str,
    token: Optional[str],
    page: int,
    *,
    per_page: int,
    embed: bool,
    max_attempts: int,
) -> requests.Response:
    url = f"{base_url.rstrip('/')}/{kind}"
    params: Dict[str, Any] = {"per_page": per_page, "page": page}
    if embed:
        params["_embed"] = "true"

    def do_request() -> requests.Response:
        return requests.get(url, headers=wp_headers(token), params=params, timeout=30)

    try:
        return with_retries(do_request, max_attempts=max_attempts)
    except requests.HTTPError as e:
        status = e.response.status_code if e.response is not None else None
        raise FetchError(kind, f"HTTP {status} on page {page}: {_error_text(e.response)}", status) from e
    except requests.RequestException as e:
        raise FetchError(kind, f"network error on page {page}: {e}") from e


def _records(kind: str, resp: requests.Response) -> List[Dict[str, Any]]:
    try:
        data = resp.json()
    except ValueError as e:
        raise FetchError(kind, "response is not valid JSON", resp.status_code) from e
    if not isinstance(data, list):
        raise FetchError(kind, f"expected a JSON array, got {type(data).__name__}", resp.status_code)
    return data


def _total_pages(resp: requests.Response) -> int:
    raw = resp.headers.get("X-WP-TotalPages")
    try:
        return max(1, int(raw))
    except (TypeError, ValueError):
        return 1


def _dedupe(records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    seen = set()
    unique: List[Dict[str, Any]] = []
    for record in records:
        key = record.get("id") if isinstance(record, dict) else None
        if key is not None:
            if key in seen:
                continue
            seen.add(key)
        unique.append(record)
    return unique


def fetch_collection(
    kind: str,
    base_url: str,
    token: Optional[str] = None,
    *,
    per_page: int = DEFAULT_PER_PAGE,
    max_workers: int = 4,
    embed: bool = True,
    max_attempts: int = 5,
) -> List[Dict[str, Any]]:
    """
    Fetch every record of a WordPress collection.

    :param kind: Collection name, e.g. ``users``, ``pages`` or ``posts``.
    :param base_url: REST root such as ``https://site/wp-json/wp/v2``.
    :param token: Optional bearer token.
    :param per_page: Page size (WordPress caps it at 100).
    :param max_workers: Concurrent requests used for pages 2..N.
    :param embed: Request ``_embed`` so author and featured media come inline.
    :return: All records; order across pages is not guaranteed to be
        meaningful, but none is lost or duplicated.
    :raises FetchError: on network errors, non-2xx responses or non-list
        payloads.
    """
    opts = {"per_page": per_page, "embed": embed, "max_attempts": max_attempts}
    first = _get_page(kind, base_url, token, 1, **opts)
    records = list(_records(kind, first))
    total_pages = _total_pages(first)

    if total_pages > 1:
        with ThreadPoolExecutor(max_workers=max(1, max_workers)) as pool:
            futures = [
                pool.submit(_get_page, kind, base_url, token, page, **opts)
                for page in range(2, total_pages + 1)
            ]
            for future in futures:
                records.extend(_records(kind, future.result()))

    return _dedupe(records)


def fetch_seo_data(cfg: Dict[str, Any], item: ContentItem, token: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """
    Fetch Yoast SEO data for ``item``.  This is an optional enrichment: any
    failure returns ``None``.
    """
    base = f"{cfg.get('url', '').rstrip('/')}{cfg.get('seo_endpoint', '/wp-json/yoast/v1')}"
    url = f"{base}/{item.content_type}s/{item.id}"
    try:
        resp = requests.get(url, headers=wp_headers(token), timeout=15)
        resp.raise_for_status()
        data = resp.json()
    except (requests.RequestException, ValueError) as e:
        print(f"Could not fetch SEO data for {item.content_type} {item.id}: {e}")
        return None
    return data if isinstance(data, dict) else None
