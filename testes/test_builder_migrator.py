import os
import sys

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import json

import pytest
pytest.importorskip("bs4")

from conftest import FakeResponse
from models.builder_page import ContentItem
from src.migrators import builder_migrator
from src.migrators.builder_migrator import RateLimiter, content_exists, upload_page
from src.parsers.content_transformer import transform_content
from src.utils.errors import UploadError

CFG = {
    "api_key": "bpk-private",
    "public_api_key": "pub-key",
    "model": "page",
    "api_endpoint": "https://builder.io/api/v1",
    "content_endpoint": "https://cdn.builder.io/api/v3/content",
    "max_attempts": 2,
}


class FakeBuilder:
    """In-memory Builder.io: the content API answers from what was written."""

    def __init__(self, query_status=200, write_status=200, write_error=None):
        self.entries = []
        self.queries = []
        self.writes = []
        self.query_status = query_status
        self.write_status = write_status
        self.write_error = write_error

    def get(self, url, headers=None, params=None, timeout=None):
        self.queries.append({"url": url, "headers": headers, "params": dict(params)})
        if self.query_status != 200:
            return FakeResponse(self.query_status, {"message": "query failed"})
        wanted = params["query.meta.originalWordPressId"]
        found = [e for e in self.entries if e["meta"]["originalWordPressId"] == wanted]
        return FakeResponse(200, {"results": [{"id": "x"} for _ in found[:1]]})

    def post(self, url, headers=None, data=None, timeout=None):
        body = json.loads(data)
        self.writes.append({"url": url, "headers": headers, "body": body})
        if self.write_status != 200:
            return FakeResponse(self.write_status, self.write_error)
        self.entries.append(body)
        return FakeResponse(200, {"id": f"builder-{len(self.entries)}", "name": body["name"]})


@pytest.fixture
def builder(monkeypatch):
    def install(**kwargs):
        fake = FakeBuilder(**kwargs)
        monkeypatch.setattr(builder_migrator.requests, "get", fake.get)
        monkeypatch.setattr(builder_migrator.requests, "post", fake.post)
        return fake

    return install


def make_doc(item_id=11):
    item = ContentItem(id=item_id, content_type="page", title="Contact", body_html="<p>Call us</p>", slug="contact")
    return transform_content(item)


def test_upload_writes_payload_with_bearer_key(builder):
    fake = builder()
    result = upload_page(CFG, make_doc())

    assert result["skipped"] is False
    assert result["url"] == "/contact"
    assert result["page"]["id"] == "builder-1"
    write = fake.writes[0]
    assert write["url"] == "https://builder.io/api/v1/write/page"
    assert write["headers"]["Authorization"] == "Bearer bpk-private"
    assert write["body"]["meta"]["originalWordPressId"] == 11
    assert write["body"]["data"]["title"] == "Contact"


def test_dedup_query_targets_model_and_origin_id(builder):
    fake = builder()
    upload_page(CFG, make_doc())
    query = fake.queries[0]
    assert query["url"] == "https://cdn.builder.io/api/v3/content/page"
    assert query["params"]["query.meta.originalWordPressId"] == 11
    assert query["params"]["apiKey"] == "pub-key"
    assert query["params"]["includeUnpublished"] == "true"


def test_second_upload_of_same_item_is_skipped(builder):
    fake = builder()
    first = upload_page(CFG, make_doc())
    second = upload_page(CFG, make_doc())

    assert first["skipped"] is False
    assert second["skipped"] is True
    assert len(fake.writes) == 1
    assert len(fake.entries) == 1


def test_content_exists(builder):
    fake = builder()
    assert content_exists(CFG, 11) is False
    upload_page(CFG, make_doc())
    assert content_exists(CFG, 11) is True
    assert content_exists(CFG, 12) is False
    assert len(fake.queries) == 4


def test_failing_dedup_query_answers_false_and_uploads(builder):
    fake = builder(query_status=403)
    assert content_exists(CFG, 11) is False
    result = upload_page(CFG, make_doc())
    assert result["skipped"] is False
    assert len(fake.writes) == 1


def test_rejected_write_raises_upload_error_with_api_message(builder):
    builder(write_status=400, write_error={"message": "Invalid model"})
    with pytest.raises(UploadError) as excinfo:
        upload_page(CFG, make_doc())
    assert excinfo.value.message == "Invalid model"
    assert excinfo.value.status_code == 400


def test_rate_limited_write_is_retried_then_reported(builder, no_sleep):
    fake = builder(write_status=429, write_error={"message": "rate limited"})
    with pytest.raises(UploadError, match="rate limited"):
        upload_page(CFG, make_doc())
    assert len(fake.writes) == CFG["max_attempts"]


def test_rate_limiter_spaces_calls():
    clock = {"now": 100.0}
    sleeps = []

    def time_fn():
        return clock["now"]

    def sleep_fn(seconds):
        sleeps.append(seconds)
        clock["now"] += seconds

    limiter = RateLimiter(120)
    limiter.wait(time_fn, sleep_fn)
    limiter.wait(time_fn, sleep_fn)
    assert sleeps == [pytest.approx(0.5)]
