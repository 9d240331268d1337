from __future__ import annotations

import html as html_lib
import re
from typing import Callable, List, Optional, Tuple

from bs4 import BeautifulSoup, Tag

from models.builder_page import BlockNode
from . import builder_schema as schema


Predicate = Callable[[Tag], bool]
NodeBuilder = Callable[[Tag, int], Optional[BlockNode]]


def _attr(el: Tag, name: str) -> Optional[str]:
    value = el.get(name)
    if isinstance(value, list):
        value = " ".join(value)
    return value or None


def _inner(el: Tag) -> str:
    return el.decode_contents()


def _has_text(el: Tag) -> bool:
    return bool(el.get_text().strip())


def _media_src(el: Tag) -> Optional[str]:
    src = _attr(el, "src")
    if src:
        return src
    source = el.find("source")
    if isinstance(source, Tag):
        return _attr(source, "src")
    return None


# --- Predicates ---

def is_heading(el: Tag) -> bool:
    return el.name in schema.HEADING_SCALE


def is_paragraph(el: Tag) -> bool:
    return el.name == "p"


def is_image(el: Tag) -> bool:
    if el.name == "img":
        return True
    return len(el.find_all("img")) == 1 and not _has_text(el)


def is_video(el: Tag) -> bool:
    return el.name == "video"


def is_embed(el: Tag) -> bool:
    return el.name == "iframe"


def is_audio(el: Tag) -> bool:
    return el.name == "audio"


def _first_img_with_src(el: Tag) -> Optional[Tag]:
    for img in el.find_all("img"):
        if _attr(img, "src"):
            return img
    return None


def is_image_text_div(el: Tag) -> bool:
    return el.name == "div" and _first_img_with_src(el) is not None and _has_text(el)


def is_div(el: Tag) -> bool:
    return el.name == "div"


def always(el: Tag) -> bool:
    return True


# --- Node builders ---

def build_heading(el: Tag, index: int) -> BlockNode:
    return schema.heading_text(el.name, _inner(el), index)


def build_paragraph(el: Tag, index: int) -> BlockNode:
    return schema.paragraph_text(_inner(el), index)


def build_image(el: Tag, index: int) -> Optional[BlockNode]:
    img = el if el.name == "img" else el.find("img")
    src = _attr(img, "src")
    if not src:
        return None
    return schema.image(src, _attr(img, "alt") or "", index)


def build_video(el: Tag, index: int) -> Optional[BlockNode]:
    src = _media_src(el)
    if not src:
        return None
    return schema.video(
        src,
        autoplay=el.has_attr("autoplay"),
        controls=el.has_attr("controls"),
        muted=el.has_attr("muted"),
        loop=el.has_attr("loop"),
        width=_attr(el, "width"),
        height=_attr(el, "height"),
        index=index,
    )


def build_embed(el: Tag, index: int) -> Optional[BlockNode]:
    src = _media_src(el)
    if not src:
        return None
    return schema.embed(src, _attr(el, "width"), _attr(el, "height"), index)


def build_audio(el: Tag, index: int) -> Optional[BlockNode]:
    src = _media_src(el)
    if not src:
        return None
    code = f'<audio controls src="{html_lib.escape(src, quote=True)}" style="width:100%">{_inner(el)}</audio>'
    return schema.custom_code(code, index, prefix="audio")


def build_image_text_columns(el: Tag, index: int) -> BlockNode:
    img = _first_img_with_src(el)
    picture = schema.image(_attr(img, "src"), _attr(img, "alt") or "")
    text = schema.plain_text(_inner(el), prefix="column-text")
    return schema.columns([[picture], [text]], index)


def build_div(el: Tag, index: int) -> BlockNode:
    return schema.container_text(_inner(el), index)


def build_fallback(el: Tag, index: int) -> BlockNode:
    return schema.plain_text(_inner(el) or el.get_text(), index)


# Ordered dispatch table: the first matching predicate wins.
RULES: List[Tuple[str, Predicate, NodeBuilder]] = [
    ("heading", is_heading, build_heading),
    ("paragraph", is_paragraph, build_paragraph),
    ("image", is_image, build_image),
    ("video", is_video, build_video),
    ("embed", is_embed, build_embed),
    ("audio", is_audio, build_audio),
    ("columns", is_image_text_div, build_image_text_columns),
    ("div", is_div, build_div),
    ("fallback", always, build_fallback),
]


def match_rule(el: Tag) -> str:
    """Name of the rule that handles ``el``; useful for inspecting precedence."""
    for name, predicate, _ in RULES:
        if predicate(el):
            return name
    return "fallback"


def top_level_elements(html: str) -> List[Tag]:
    """
    Parse ``html`` and return the direct element children of ``<body>``
    (or of the fragment root), in document order.
    """
    if html is None:
        html = ""
    if not isinstance(html, str):
        raise TypeError(f"Expected HTML string, got {type(html).__name__}")
    # WordPress [caption] shortcodes survive rendering in some themes
    cleaned_html = re.sub(r"\[/?caption[^\]]*\]", "", html, flags=re.IGNORECASE)
    soup = BeautifulSoup(cleaned_html, "html.parser")
    container = soup.body if soup.body else soup
    return [child for child in container.children if isinstance(child, Tag)]


def convert_html_to_blocks(html: str) -> List[BlockNode]:
    """
    Convert rendered WordPress HTML into an ordered list of Builder.io
    elements, one per top-level element.

    Covered:
    - Headings (fixed size/weight scale), paragraphs.
    - Images, including wrappers holding a single image and no text.
    - Local video, iframe embeds and audio (as a CustomCode passthrough).
    - Divs mixing an image and text become a two-column layout; other divs
      and unknown tags are kept as Text wrappers.

    Images, videos, embeds and audio without a resolvable ``src`` produce no
    node.
    """
    blocks: List[BlockNode] = []
    for index, el in enumerate(top_level_elements(html)):
        for _, predicate, builder in RULES:
            if predicate(el):
                node = builder(el, index)
                if node is not None:
                    blocks.append(node)
                break
    return blocks
