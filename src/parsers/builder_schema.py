from __future__ import annotations

import uuid
from typing import Any, Dict, List, Optional

from models.builder_page import BlockNode, BuilderComponent


# Heading scale: tag -> (fontSize, fontWeight). Strictly decreasing h1 -> h6.
HEADING_SCALE: Dict[str, tuple] = {
    "h1": ("36px", "600"),
    "h2": ("30px", "500"),
    "h3": ("24px", "400"),
    "h4": ("20px", "400"),
    "h5": ("18px", "400"),
    "h6": ("16px", "400"),
}

DEFAULT_MEDIA_WIDTH = "100%"
DEFAULT_MEDIA_HEIGHT = "400px"

_FLEX_COLUMN: Dict[str, str] = {
    "display": "flex",
    "flexDirection": "column",
    "position": "relative",
    "flexShrink": "0",
    "boxSizing": "border-box",
}

_MEDIA_SPACING: Dict[str, str] = {
    "marginTop": "20px",
    "marginBottom": "20px",
    "width": "100%",
}


def node_id(prefix: str, index: Optional[int] = None) -> str:
    uid = uuid.uuid4().hex[:12]
    if index is None:
        return f"builder-{prefix}-{uid}"
    return f"builder-{prefix}-{index}-{uid}"


def element(
    name: str,
    options: Optional[Dict[str, Any]] = None,
    large: Optional[Dict[str, Any]] = None,
    *,
    id: Optional[str] = None,
    children: Optional[List[BlockNode]] = None,
) -> BlockNode:
    return BlockNode(
        id=id,
        component=BuilderComponent(name=name, options=options or {}),
        responsive_styles={"large": dict(large)} if large else {},
        children=children or [],
    )


# --- Builders for common Builder.io elements ---

def section(children: List[BlockNode]) -> BlockNode:
    return element(
        "Core:Section",
        {
            "maxWidth": 1200,
            "marginTop": 0,
            "marginBottom": 0,
            "padding": 20,
            "backgroundColor": "#ffffff",
        },
        {**_FLEX_COLUMN, "marginTop": "0", "width": "100%"},
        id=node_id("main-section"),
        children=children,
    )


def heading_text(tag: str, markup: str, index: Optional[int] = None) -> BlockNode:
    size, weight = HEADING_SCALE.get(tag, HEADING_SCALE["h6"])
    return element(
        "Text",
        {"text": markup},
        {
            **_FLEX_COLUMN,
            "marginTop": "20px",
            "marginBottom": "10px",
            "paddingLeft": "0px",
            "paddingRight": "0px",
            "fontWeight": weight,
            "fontSize": size,
        },
        id=node_id("heading", index),
    )


def paragraph_text(markup: str, index: Optional[int] = None) -> BlockNode:
    return element(
        "Text",
        {"text": markup},
        {
            **_FLEX_COLUMN,
            "marginTop": "0",
            "marginBottom": "15px",
            "paddingLeft": "0px",
            "paddingRight": "0px",
            "fontSize": "16px",
            "lineHeight": "1.5",
        },
        id=node_id("paragraph", index),
    )


def container_text(markup: str, index: Optional[int] = None) -> BlockNode:
    return element(
        "Text",
        {"text": markup},
        {**_FLEX_COLUMN, "marginTop": "10px", "marginBottom": "10px"},
        id=node_id("div", index),
    )


def plain_text(markup: str, index: Optional[int] = None, prefix: str = "element") -> BlockNode:
    return element("Text", {"text": markup}, id=node_id(prefix, index))


def image(src: str, alt: str = "", index: Optional[int] = None) -> BlockNode:
    return element(
        "Image",
        {"image": src, "altText": alt or ""},
        {
            **_FLEX_COLUMN,
            **_MEDIA_SPACING,
            "minHeight": "20px",
            "minWidth": "20px",
            "overflow": "hidden",
        },
        id=node_id("image", index),
    )


def featured_image(src: str, alt: str) -> BlockNode:
    return element(
        "Image",
        {"image": src, "altText": alt or "Featured image"},
        {
            **_FLEX_COLUMN,
            "marginTop": "0",
            "marginBottom": "30px",
            "width": "100%",
            "maxHeight": "500px",
            "objectFit": "contain",
        },
        id=node_id("featured-image"),
    )


def video(
    src: str,
    *,
    autoplay: bool = False,
    controls: bool = False,
    muted: bool = False,
    loop: bool = False,
    width: Optional[str] = None,
    height: Optional[str] = None,
    index: Optional[int] = None,
) -> BlockNode:
    return element(
        "Video",
        {
            "video": src,
            "autoPlay": autoplay,
            "controls": controls,
            "muted": muted,
            "loop": loop,
            "width": width or DEFAULT_MEDIA_WIDTH,
            "height": height or DEFAULT_MEDIA_HEIGHT,
        },
        _MEDIA_SPACING,
        id=node_id("video", index),
    )


def embed(url: str, width: Optional[str] = None, height: Optional[str] = None, index: Optional[int] = None) -> BlockNode:
    return element(
        "Embed",
        {
            "url": url,
            "width": width or DEFAULT_MEDIA_WIDTH,
            "height": height or DEFAULT_MEDIA_HEIGHT,
        },
        _MEDIA_SPACING,
        id=node_id("embed", index),
    )


def custom_code(code: str, index: Optional[int] = None, prefix: str = "custom-code") -> BlockNode:
    """Raw markup passthrough; Builder has no native audio or raw-HTML element."""
    return element("CustomCode", {"code": code or ""}, _MEDIA_SPACING, id=node_id(prefix, index))


def columns(column_blocks: List[List[BlockNode]], index: Optional[int] = None) -> BlockNode:
    """Side-by-side layout that stacks to one column below the tablet breakpoint."""
    return element(
        "Columns",
        {
            "columns": [
                {"blocks": [b.to_builder() for b in blocks]} for blocks in column_blocks
            ],
            "space": 20,
            "stackColumnsAt": "tablet",
        },
        {"display": "flex", "marginTop": "20px", "marginBottom": "20px", "width": "100%"},
        id=node_id("columns", index),
    )


# --- Minimal validator ---

def validate_blocks(root: BlockNode) -> BlockNode:
    """
    Ensure the tree follows basic Builder expectations.
    - Root is a single ``Core:Section``.
    - Every node carries an id.
    """
    if root.kind != "Core:Section":
        raise ValueError(f"Root block must be a Core:Section, got {root.kind!r}")
    pending = [root]
    while pending:
        node = pending.pop()
        if not node.id:
            node.id = node_id(node.kind.lower().replace(":", "-"))
        pending.extend(node.children)
    return root
