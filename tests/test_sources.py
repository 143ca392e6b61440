"""
Tests for the discussion sources.

Covers listing validation, the Reddit client's request shape, variant
fallback order and the fixture-backed mock source.
"""

import json
import pytest
import requests
from unittest.mock import Mock, patch

from ideagen.errors import MalformedUpstreamResponse, SourceUnavailable
from ideagen.sources import (
    LISTING_VARIANTS,
    MockRedditSource,
    RedditSource,
    parse_listing,
    write_mock_file,
)

from tests.doubles import StaticSource
from tests.test_config import CONFIG, TEST_DATA, make_items, make_listing


def _response(body=None, status=200, json_error=None):
    response = Mock()
    response.status_code = status
    if json_error:
        response.json.side_effect = json_error
    else:
        response.json.return_value = body
    if status >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status} Error")
    return response


# =============================================================================
# Listing validation
# =============================================================================

class TestParseListing:

    def test_normalizes_children(self):
        items = parse_listing(make_listing(), "startups", "url")

        assert [i.external_id for i in items] == ["p1", "p2", "p3"]
        assert all(i.topic == "startups" for i in items)
        assert items[2].body is None
        assert items[0].payload["id"] == "p1"
        assert len({i.fetched_at for i in items}) == 1

    def test_empty_listing_is_valid(self):
        assert parse_listing({"data": {"children": []}}, "startups", "url") == []

    @pytest.mark.parametrize("body", [
        None,
        [],
        {"kind": "Listing"},
        {"data": {"children": "nope"}},
    ])
    def test_bad_envelope_is_malformed(self, body):
        with pytest.raises(MalformedUpstreamResponse):
            parse_listing(body, "startups", "url")

    def test_one_bad_child_rejects_whole_listing(self):
        """
        GIVEN: A listing where one child has no title
        WHEN: It is parsed
        THEN: The whole listing is rejected, not just that child
        """
        body = make_listing()
        del body["data"]["children"][1]["data"]["title"]

        with pytest.raises(MalformedUpstreamResponse) as exc:
            parse_listing(body, "startups", "https://www.reddit.com/r/startups/rising.json")
        assert "child 1" in exc.value.reason
        assert exc.value.endpoint.endswith("rising.json")


# =============================================================================
# Reddit client
# =============================================================================

class TestRedditSource:

    def test_variants_are_ranked(self):
        assert list(LISTING_VARIANTS) == CONFIG["listing_variants"]

    def test_request_carries_user_agent(self):
        source = RedditSource(user_agent="IdeaBot/1.0", limit=10)
        with patch("ideagen.sources.reddit.requests.get", return_value=_response(make_listing())) as mock_get:
            items = source.fetch_variant("startups", "hot")

        url = mock_get.call_args.args[0]
        assert url == "https://www.reddit.com/r/startups/hot.json"
        assert mock_get.call_args.kwargs["headers"]["User-Agent"] == "IdeaBot/1.0"
        assert mock_get.call_args.kwargs["params"] == {"limit": 10}
        assert len(items) == 3

    def test_non_json_body_is_malformed(self):
        source = RedditSource()
        with patch("ideagen.sources.reddit.requests.get", return_value=_response(json_error=ValueError("bad"))):
            with pytest.raises(MalformedUpstreamResponse):
                source.fetch_variant("startups", "rising")

    def test_http_error_propagates(self):
        source = RedditSource()
        with patch("ideagen.sources.reddit.requests.get", return_value=_response(status=429)):
            with pytest.raises(requests.HTTPError):
                source.fetch_variant("startups", "rising")

    def test_fetch_live_falls_back_through_variants(self):
        """
        GIVEN: rising fails with 503, hot is malformed, new returns posts
        WHEN: fetch_live runs
        THEN: Items come from 'new' after exactly three requests
        """
        responses = [
            _response(status=503),
            _response({"data": {}}),
            _response(make_listing()),
        ]
        source = RedditSource()
        with patch("ideagen.sources.reddit.requests.get", side_effect=responses) as mock_get:
            live = source.fetch_live("startups")

        assert mock_get.call_count == 3
        assert live.variant == "new"
        assert live.succeeded
        assert live.malformed == 1
        assert not live.all_malformed

    def test_fetch_live_stops_at_first_non_empty_variant(self):
        source = RedditSource()
        with patch("ideagen.sources.reddit.requests.get", return_value=_response(make_listing())) as mock_get:
            live = source.fetch_live("startups")

        assert mock_get.call_count == 1
        assert live.variant == "rising"

    def test_empty_variant_moves_on(self):
        responses = [_response({"data": {"children": []}}), _response(make_listing())]
        with patch("ideagen.sources.reddit.requests.get", side_effect=responses):
            live = RedditSource().fetch_live("startups")
        assert live.variant == "hot"

    def test_all_malformed_is_reported(self):
        with patch("ideagen.sources.reddit.requests.get", return_value=_response({"nope": 1})):
            live = RedditSource().fetch_live("startups")

        assert not live.succeeded
        assert live.all_malformed
        assert len(live.attempts) == 3


class TestStaticSourceDouble:

    def test_fetch_items_filters_by_topic(self, fixed_now):
        source = StaticSource(make_items("startups", fixed_now) + make_items("saas", fixed_now))
        assert {i.topic for i in source.fetch_items("saas")} == {"saas"}


# =============================================================================
# Mock source
# =============================================================================

class TestMockRedditSource:

    def test_missing_file_is_unavailable(self, tmp_path):
        source = MockRedditSource(tmp_path / "missing.json")
        with pytest.raises(SourceUnavailable) as exc:
            source.fetch_live("startups")
        assert "--sync-mocks" in str(exc.value)

    def test_serves_rows_for_topic_with_fresh_timestamp(self, tmp_path, fixed_now):
        path = write_mock_file(make_items("startups", fixed_now) + make_items("saas", fixed_now), tmp_path / "mock.json")
        source = MockRedditSource(path)

        live = source.fetch_live("saas")

        assert live.variant == "mock"
        assert [i.external_id for i in live.items] == [p["external_id"] for p in TEST_DATA["sample_posts"]]
        assert all(i.topic == "saas" for i in live.items)
        assert all(i.fetched_at > fixed_now for i in live.items)

    def test_non_list_fixture_is_malformed(self, tmp_path):
        path = tmp_path / "mock.json"
        path.write_text(json.dumps({"posts": []}), encoding="utf-8")

        live = MockRedditSource(path).fetch_live("startups")
        assert live.all_malformed

    def test_write_mock_file_creates_parent_dirs(self, tmp_path, sample_items):
        path = write_mock_file(sample_items, tmp_path / "data" / "mock.json")
        rows = json.loads(path.read_text(encoding="utf-8"))
        assert len(rows) == 3
        assert rows[0]["external_id"] == "p1"

    def test_shipped_fixture_is_loadable(self):
        source = MockRedditSource()
        assert source.fetch_items("entrepreneur")
        assert source.fetch_items("startups")
