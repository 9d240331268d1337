"""
WordPress item → Builder.io page document conversion.

The block tree is built locally from the rendered HTML (no network).  SEO
metadata can optionally be merged in through an injected ``seo_fetcher``;
that call is isolated so a failing SEO lookup never aborts the conversion.

If the conversion raises for any reason, a minimal fallback document is
produced instead (title heading plus a raw dump of the body), so every
WordPress item yields exactly one :class:`PageDocument`.
"""

from __future__ import annotations

import html as html_lib
from typing import Any, Callable, Dict, Optional

from models.builder_page import ContentItem, OriginMeta, PageDocument, epoch_ms
from src.utils.errors import TransformError
from . import builder_schema as schema
from .builder_local import convert_html_to_blocks

__all__ = [
    "transform_content",
    "build_fallback_document",
]

SeoFetcher = Callable[[ContentItem], Optional[Dict[str, Any]]]


def _target_url(item: ContentItem) -> str:
    if item.slug:
        return "/" + item.slug.strip("/")
    return f"/{item.content_type}-{item.id}"


def _common_fields(item: ContentItem, model: str) -> Dict[str, Any]:
    title = item.title or "Untitled"
    return {
        "name": title,
        "title": title,
        "description": item.excerpt_html or "",
        "publish_state": "published" if item.status == "publish" else "draft",
        "last_updated": epoch_ms(item.modified_at),
        "scheduled_at": epoch_ms(item.publish_at) if item.status == "future" else None,
        "target_url": _target_url(item),
        "model": model,
        "origin_meta": OriginMeta(
            origin_id=item.id,
            origin_url=item.link,
            author_id=item.author_id,
            author_name=item.author_name,
            content_type=item.content_type,
        ),
    }


def _og_image(seo: Dict[str, Any]) -> Optional[str]:
    image = seo.get("open_graph_image") or seo.get("og_image")
    # Yoast returns a list of {url, width, height}
    if isinstance(image, list):
        image = image[0] if image else None
    if isinstance(image, dict):
        image = image.get("url")
    return image or None


def seo_meta(seo: Optional[Dict[str, Any]], item: ContentItem) -> Dict[str, Any]:
    if not seo:
        return {}
    title = seo.get("title") or item.title
    description = seo.get("description") or item.excerpt_html
    return {
        "title": title,
        "description": description,
        "og": {
            "title": seo.get("open_graph_title") or title,
            "description": seo.get("open_graph_description") or description,
            "image": _og_image(seo) or item.featured_image_url or "",
        },
    }


def _safe_seo(seo_fetcher: Optional[SeoFetcher], item: ContentItem) -> Optional[Dict[str, Any]]:
    if seo_fetcher is None:
        return None
    try:
        return seo_fetcher(item)
    except Exception as e:
        print(f"Could not fetch SEO data for {item.content_type} {item.id}: {e}")
        return None


def _build_document(item: ContentItem, *, model: str, seo_fetcher: Optional[SeoFetcher]) -> PageDocument:
    children = convert_html_to_blocks(item.body_html)
    if item.featured_image_url:
        children.insert(0, schema.featured_image(item.featured_image_url, item.title))
    root = schema.validate_blocks(schema.section(children))
    meta = seo_meta(_safe_seo(seo_fetcher, item), item)
    return PageDocument(blocks=[root], meta=meta, **_common_fields(item, model))


def build_fallback_document(item: ContentItem, *, model: str = "page", reason: str = "") -> PageDocument:
    """
    Minimal document: a title heading and the original markup as a raw
    CustomCode block.  Falls back to the excerpt when the body is unusable.
    """
    try:
        body = item.body_html if isinstance(item.body_html, str) else ""
        raw = body if body.strip() else (item.excerpt_html or "")
        title_markup = html_lib.escape(item.title or "Untitled")
        root = schema.section([
            schema.heading_text("h1", title_markup, 0),
            schema.custom_code(raw, 1, prefix="raw-content"),
        ])
        return PageDocument(blocks=[root], fallback_reason=reason or "fallback", **_common_fields(item, model))
    except Exception as e:
        raise TransformError(f"Fallback document for {item.content_type} {item.id} could not be built: {e}") from e


def transform_content(
    item: ContentItem,
    *,
    model: str = "page",
    seo_fetcher: Optional[SeoFetcher] = None,
) -> PageDocument:
    """
    Converts a WordPress item into a Builder.io page document.

    Args:
        item: The normalized WordPress page or post.
        model: Builder.io model the document is written to.
        seo_fetcher: Optional callable returning Yoast SEO data for ``item``.
                     Errors it raises are logged and ignored.

    Returns:
        The page document.  When conversion failed, the fallback document is
        returned with ``fallback_reason`` set.

    Raises:
        TransformError: Only when even the fallback document cannot be built.
    """
    try:
        return _build_document(item, model=model, seo_fetcher=seo_fetcher)
    except Exception as e:
        reason = str(TransformError(f"{type(e).__name__}: {e}"))
        print(f"[ERROR] Failed to transform {item.content_type} {item.id}, using fallback. Error: {reason}")
        return build_fallback_document(item, model=model, reason=reason)
