"""
Extractors for the WordPress REST API.

This subpackage fetches paginated collections (``users``, ``pages``,
``posts``) and optional Yoast SEO data, and manages the JWT bearer token
used to read private content.
"""

from .auth import TokenProvider, call_with_auth_retry
from .wordpress_api import fetch_collection, fetch_seo_data

__all__ = ["TokenProvider", "call_with_auth_retry", "fetch_collection", "fetch_seo_data"]
