from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


def slugify(value: str) -> str:
    text = value.strip().lower()
    out = []
    prev_dash = False
    for ch in text:
        if ch.isalnum():
            out.append(ch)
            prev_dash = False
        else:
            if not prev_dash:
                out.append("-")
            prev_dash = True
    slug = "".join(out).strip("-")
    return slug[:200]


def epoch_ms(value: Optional[datetime]) -> Optional[int]:
    # WordPress *_gmt fields carry no offset; read them as UTC.
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp() * 1000)


def _rendered(field: Any) -> str:
    if isinstance(field, dict):
        return field.get("rendered") or ""
    return field or ""


OriginId = Union[int, str]


class ContentItem(BaseModel):
    """A WordPress page or post, normalized from the REST API payload."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: OriginId
    content_type: str = Field("page", alias="contentType")
    title: str = ""
    body_html: Any = Field("", alias="bodyHtml")
    excerpt_html: str = Field("", alias="excerptHtml")
    slug: Optional[str] = None
    status: str = "draft"
    author_id: Optional[OriginId] = Field(None, alias="authorId")
    author_name: Optional[str] = Field(None, alias="authorName")
    link: Optional[str] = None
    modified_at: Optional[datetime] = Field(None, alias="modifiedAt")
    publish_at: Optional[datetime] = Field(None, alias="publishAt")
    featured_image_url: Optional[str] = Field(None, alias="featuredImageUrl")

    @field_validator("modified_at", "publish_at", mode="before")
    @classmethod
    def _empty_date(cls, v: Any):
        if v in ("", None):
            return None
        return v

    @classmethod
    def from_wordpress(cls, record: dict[str, Any], content_type: str = "page") -> "ContentItem":
        """Build an item from a ``/wp/v2/pages`` or ``/wp/v2/posts`` record fetched with ``_embed``."""
        embedded = record.get("_embedded") or {}
        featured = None
        media = embedded.get("wp:featuredmedia") or []
        if media and isinstance(media[0], dict):
            featured = media[0].get("source_url") or None
        author_name = None
        authors = embedded.get("author") or []
        if authors and isinstance(authors[0], dict):
            author_name = authors[0].get("name")

        return cls(
            id=record["id"],
            content_type=content_type,
            title=_rendered(record.get("title")),
            body_html=_rendered(record.get("content")),
            excerpt_html=_rendered(record.get("excerpt")),
            slug=record.get("slug") or None,
            status=record.get("status") or "draft",
            author_id=record.get("author"),
            author_name=author_name,
            link=record.get("link"),
            modified_at=record.get("modified_gmt") or record.get("modified"),
            publish_at=record.get("date_gmt") or record.get("date"),
            featured_image_url=featured,
        )

    def describe(self) -> dict[str, Any]:
        return {"id": self.id, "type": self.content_type, "title": self.title}


class BuilderComponent(BaseModel):
    name: str
    options: dict[str, Any] = Field(default_factory=dict)


class BlockNode(BaseModel):
    """One Builder.io element: a typed component with options, styles and children."""

    model_config = ConfigDict(populate_by_name=True)

    element_type: str = Field("@builder.io/sdk:Element", alias="@type")
    version: int = Field(2, alias="@version")
    id: Optional[str] = None
    component: BuilderComponent
    responsive_styles: dict[str, dict[str, Any]] = Field(default_factory=dict, alias="responsiveStyles")
    children: list["BlockNode"] = Field(default_factory=list)

    @property
    def kind(self) -> str:
        return self.component.name

    @property
    def options(self) -> dict[str, Any]:
        return self.component.options

    def to_builder(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class OriginMeta(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    origin_id: OriginId = Field(..., alias="originId")
    origin_url: Optional[str] = Field(None, alias="originUrl")
    author_id: Optional[OriginId] = Field(None, alias="authorId")
    author_name: Optional[str] = Field(None, alias="authorName")
    content_type: str = Field("page", alias="contentType")


class PageDocument(BaseModel):
    """The unit of upload: one Builder.io content entry per WordPress item."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1)
    title: str
    description: str = ""
    blocks: list[BlockNode]
    publish_state: Literal["published", "draft"] = Field("draft", alias="publishState")
    last_updated: Optional[int] = Field(None, alias="lastUpdated")
    scheduled_at: Optional[int] = Field(None, alias="scheduledAt")
    target_url: str = Field(..., alias="targetUrl")
    model: str = "page"
    meta: dict[str, Any] = Field(default_factory=dict)
    origin_meta: OriginMeta = Field(..., alias="originMeta")
    fallback_reason: Optional[str] = Field(None, alias="fallbackReason", exclude=True)

    @property
    def is_fallback(self) -> bool:
        return self.fallback_reason is not None

    def to_builder_payload(self) -> dict[str, Any]:
        """Body for ``POST /api/v1/write/{model}``."""
        meta: dict[str, Any] = dict(self.meta)
        meta.update({
            "originalWordPressId": self.origin_meta.origin_id,
            "originalWordPressUrl": self.origin_meta.origin_url,
            "author": self.origin_meta.author_id,
            "authorName": self.origin_meta.author_name,
            "contentType": self.origin_meta.content_type,
        })
        body: dict[str, Any] = {
            "name": self.name,
            "data": {
                "title": self.title,
                "description": self.description,
                "blocks": [b.to_builder() for b in self.blocks],
            },
            "published": self.publish_state,
            "url": self.target_url,
            "model": self.model,
            "meta": meta,
        }
        if self.last_updated is not None:
            body["lastUpdated"] = self.last_updated
        if self.scheduled_at is not None:
            body["scheduledPublishDate"] = self.scheduled_at
        return body

