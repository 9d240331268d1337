import os
import sys

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import pytest
pytest.importorskip("bs4")

from bs4 import BeautifulSoup

from src.parsers.builder_local import convert_html_to_blocks, match_rule, top_level_elements
from src.parsers.builder_schema import HEADING_SCALE


def first_tag(html):
    soup = BeautifulSoup(html, "html.parser")
    return next(iter(soup.find_all(recursive=False)))


def test_one_block_per_top_level_element():
    html = """
    <h2>Title</h2>
    <p>Hello <strong>world</strong></p>
    <img src="https://ex.com/a.png" alt="A">
    <div>Plain box</div>
    <blockquote>Quote</blockquote>
    """
    blocks = convert_html_to_blocks(html)
    assert [b.kind for b in blocks] == ["Text", "Text", "Image", "Text", "Text"]
    assert blocks[1].options["text"] == "Hello <strong>world</strong>"
    assert blocks[2].options == {"image": "https://ex.com/a.png", "altText": "A"}
    assert all(b.id for b in blocks)
    assert len({b.id for b in blocks}) == len(blocks)


def test_heading_scale_is_strictly_decreasing():
    html = "".join(f"<h{n}>Level {n}</h{n}>" for n in range(1, 7))
    blocks = convert_html_to_blocks(html)
    sizes = [int(b.responsive_styles["large"]["fontSize"].rstrip("px")) for b in blocks]
    weights = [int(b.responsive_styles["large"]["fontWeight"]) for b in blocks]
    assert sizes == [36, 30, 24, 20, 18, 16]
    assert all(a > b for a, b in zip(sizes, sizes[1:]))
    assert all(a >= b for a, b in zip(weights, weights[1:]))
    assert len(HEADING_SCALE) == 6


def test_wrapper_with_single_image_and_no_text_is_an_image():
    blocks = convert_html_to_blocks('<figure><img src="/x.jpg" alt="x"></figure>')
    assert len(blocks) == 1
    assert blocks[0].kind == "Image"
    assert blocks[0].options["image"] == "/x.jpg"


def test_div_with_image_and_caption_becomes_two_columns():
    html = '<div><img src="https://ex.com/c.png" alt="c"><span>Caption here</span></div>'
    blocks = convert_html_to_blocks(html)
    assert len(blocks) == 1
    cols = blocks[0]
    assert cols.kind == "Columns"
    assert cols.options["stackColumnsAt"] == "tablet"
    left, right = cols.options["columns"]
    assert left["blocks"][0]["component"]["name"] == "Image"
    assert left["blocks"][0]["component"]["options"]["image"] == "https://ex.com/c.png"
    assert right["blocks"][0]["component"]["name"] == "Text"
    assert "Caption here" in right["blocks"][0]["component"]["options"]["text"]


def test_video_flags_follow_attribute_presence():
    blocks = convert_html_to_blocks('<video src="/v.mp4" controls muted></video>')
    opts = blocks[0].options
    assert blocks[0].kind == "Video"
    assert opts["video"] == "/v.mp4"
    assert opts["controls"] is True
    assert opts["muted"] is True
    assert opts["autoPlay"] is False
    assert opts["loop"] is False
    assert opts["width"] == "100%"
    assert opts["height"] == "400px"


def test_video_source_child_is_used():
    blocks = convert_html_to_blocks('<video autoplay><source src="/clip.webm" type="video/webm"></video>')
    assert blocks[0].options["video"] == "/clip.webm"
    assert blocks[0].options["autoPlay"] is True


def test_iframe_becomes_embed_with_dimensions():
    blocks = convert_html_to_blocks('<iframe src="https://www.youtube.com/embed/abc" width="560"></iframe>')
    assert blocks[0].kind == "Embed"
    assert blocks[0].options == {
        "url": "https://www.youtube.com/embed/abc",
        "width": "560",
        "height": "400px",
    }


def test_audio_is_passed_through_as_custom_code():
    blocks = convert_html_to_blocks('<audio><source src="/song.mp3" type="audio/mpeg"></audio>')
    assert blocks[0].kind == "CustomCode"
    code = blocks[0].options["code"]
    assert code.startswith('<audio controls src="/song.mp3"')
    assert "audio/mpeg" in code


def test_media_without_src_is_dropped():
    html = "<p>keep</p><img alt='no src'><video></video><iframe></iframe><audio></audio>"
    blocks = convert_html_to_blocks(html)
    assert len(blocks) == 1
    assert blocks[0].options["text"] == "keep"


def test_unknown_elements_keep_their_markup():
    blocks = convert_html_to_blocks("<ul><li>one</li><li>two</li></ul><table><tr><td>x</td></tr></table>")
    assert [b.kind for b in blocks] == ["Text", "Text"]
    assert "<li>one</li>" in blocks[0].options["text"]


def test_rule_precedence():
    assert match_rule(first_tag("<h3>x</h3>")) == "heading"
    assert match_rule(first_tag("<p><img src='a'></p>")) == "paragraph"
    assert match_rule(first_tag("<div><img src='a'></div>")) == "image"
    assert match_rule(first_tag("<div><img src='a'> text</div>")) == "columns"
    assert match_rule(first_tag("<div>text</div>")) == "div"
    assert match_rule(first_tag("<section>text</section>")) == "fallback"


def test_full_documents_use_body_children():
    html = "<html><head><title>t</title></head><body><p>a</p><p>b</p></body></html>"
    assert [el.name for el in top_level_elements(html)] == ["p", "p"]


def test_caption_shortcodes_are_stripped():
    blocks = convert_html_to_blocks('[caption id="x" align="alignnone"]<p>Inside</p>[/caption]')
    assert len(blocks) == 1
    assert blocks[0].options["text"] == "Inside"


def test_empty_and_none_input_yield_no_blocks():
    assert convert_html_to_blocks("") == []
    assert convert_html_to_blocks(None) == []


def test_non_string_input_raises():
    with pytest.raises(TypeError):
        convert_html_to_blocks(12345)


def test_columns_use_first_image_with_src():
    html = '<div><img alt="broken"><img src="/b.png" alt="b"><span>Caption here</span></div>'
    blocks = convert_html_to_blocks(html)
    assert blocks[0].kind == "Columns"
    picture = blocks[0].options["columns"][0]["blocks"][0]["component"]["options"]
    assert picture == {"image": "/b.png", "altText": "b"}


def test_div_with_only_srcless_image_stays_text():
    html = '<div><img alt="broken"><span>Caption here</span></div>'
    assert match_rule(first_tag(html)) == "div"
    blocks = convert_html_to_blocks(html)
    assert [b.kind for b in blocks] == ["Text"]
    assert "Caption here" in blocks[0].options["text"]
