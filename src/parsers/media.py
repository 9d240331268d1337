"""
Media inventory for WordPress content.

:func:`extract_media` lists the images, videos and audio referenced by a
rendered HTML body.  The inventory is written next to the transformed page
when debug dumps are enabled, which makes it easy to check that every media
reference survived the conversion.
"""

from __future__ import annotations

from typing import Any, Dict, List

from bs4 import BeautifulSoup, Tag


def _source_attr(el: Tag, name: str) -> str:
    source = el.find("source")
    if isinstance(source, Tag):
        return source.get(name) or ""
    return ""


def extract_media(html: str) -> Dict[str, List[Dict[str, Any]]]:
    soup = BeautifulSoup(html or "", "html.parser")
    media: Dict[str, List[Dict[str, Any]]] = {"images": [], "videos": [], "audio": []}

    for img in soup.find_all("img"):
        src = img.get("src")
        if src:
            media["images"].append({
                "src": src,
                "alt": img.get("alt") or "",
                "title": img.get("title") or "",
            })

    for el in soup.find_all(["video", "iframe"]):
        is_iframe = el.name == "iframe"
        if is_iframe:
            src = el.get("src") or ""
            # Only video hosts count as videos; other iframes are plain embeds
            if "youtube" not in src and "vimeo" not in src:
                continue
        else:
            src = el.get("src") or _source_attr(el, "src")
        media["videos"].append({
            "src": src,
            "type": "embed" if is_iframe else "video",
            "width": el.get("width") or "",
            "height": el.get("height") or "",
        })

    for el in soup.find_all("audio"):
        media["audio"].append({
            "src": el.get("src") or _source_attr(el, "src"),
            "type": _source_attr(el, "type"),
        })

    return media
