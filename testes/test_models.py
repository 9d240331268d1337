import os
import sys

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from models.builder_page import ContentItem, epoch_ms, slugify
from models.migration_state import STEP_DEFINITIONS, MigrationState


def wp_record(**overrides):
    record = {
        "id": 7,
        "title": {"rendered": "About us"},
        "content": {"rendered": "<p>About</p>"},
        "excerpt": {"rendered": ""},
        "slug": "about-us",
        "status": "publish",
        "author": 2,
        "link": "https://wp.example.com/about-us",
        "date_gmt": "2023-01-02T03:04:05",
        "modified_gmt": "2023-02-03T04:05:06",
        "_embedded": {
            "author": [{"id": 2, "name": "Bruno"}],
            "wp:featuredmedia": [{"source_url": "https://wp.example.com/cover.jpg"}],
        },
    }
    record.update(overrides)
    return record


def test_from_wordpress_normalizes_rendered_fields():
    item = ContentItem.from_wordpress(wp_record(), "page")
    assert item.title == "About us"
    assert item.body_html == "<p>About</p>"
    assert item.author_name == "Bruno"
    assert item.featured_image_url == "https://wp.example.com/cover.jpg"
    assert item.modified_at == datetime(2023, 2, 3, 4, 5, 6)
    assert item.describe() == {"id": 7, "type": "page", "title": "About us"}


def test_from_wordpress_without_embeds_or_dates():
    item = ContentItem.from_wordpress(wp_record(_embedded=None, date_gmt="", modified_gmt=None, modified=""), "post")
    assert item.author_name is None
    assert item.featured_image_url is None
    assert item.modified_at is None
    assert item.content_type == "post"


def test_content_item_is_immutable():
    item = ContentItem.from_wordpress(wp_record())
    with pytest.raises(ValidationError):
        item.title = "changed"


def test_epoch_ms_reads_naive_datetimes_as_utc():
    naive = datetime(2024, 1, 1)
    aware = datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert epoch_ms(naive) == epoch_ms(aware) == 1704067200000
    assert epoch_ms(None) is None


def test_slugify():
    assert slugify("  Hello, World!  ") == "hello-world"
    assert slugify("a--b") == "a-b"


def test_initial_state_has_seven_pending_steps():
    state = MigrationState.initial()
    assert state.status == "idle"
    assert [s.id for s in state.steps] == [step_id for step_id, _ in STEP_DEFINITIONS]
    assert all(s.status == "pending" for s in state.steps)
    assert state.step("upload").name == "Uploading to Builder.io"
    assert state.step_index("report") == 6
    dumped = state.model_dump(by_alias=True)
    assert dumped["currentStep"] == 0
    assert dumped["stats"]["failedContent"] == 0
    assert dumped["contentBuffer"] == {"users": [], "pages": [], "posts": []}
