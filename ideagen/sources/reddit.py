"""
Reddit source implementation.

Reads public subreddit listings from the unauthenticated JSON endpoints:

    https://www.reddit.com/r/{topic}/{variant}.json

Listing envelope: {"data": {"children": [{"data": {"id": ..., "title": ...}}]}}
Reddit rejects requests without a descriptive User-Agent.
"""

from typing import Any, List

import requests

from ideagen.config import REDDIT_LISTING_LIMIT, REDDIT_USER_AGENT, REQUEST_TIMEOUT
from ideagen.errors import MalformedUpstreamResponse
from ideagen.models import SourceItem
from ideagen.sources.base import Source
from ideagen.utils import utc_now


REDDIT_BASE_URL = "https://www.reddit.com"
REDDIT_LISTING_URL = f"{REDDIT_BASE_URL}/r/{{topic}}/{{variant}}.json"

# Tried in this order; "rising" is the freshest signal, "new" the broadest.
LISTING_VARIANTS = ("rising", "hot", "new")


def parse_listing(body: Any, topic: str, endpoint: str) -> List[SourceItem]:
    """
    Validate a listing envelope and normalize its posts.

    The whole listing is rejected if any child is missing an id or title;
    posts are never dropped one by one.

    Raises:
        MalformedUpstreamResponse: If the envelope or any child is malformed.
    """
    if not isinstance(body, dict) or not isinstance(body.get("data"), dict):
        raise MalformedUpstreamResponse(endpoint, "missing 'data' object")

    children = body["data"].get("children")
    if not isinstance(children, list):
        raise MalformedUpstreamResponse(endpoint, "'data.children' is not a list")

    fetched_at = utc_now()
    items: List[SourceItem] = []

    for index, child in enumerate(children):
        post = child.get("data") if isinstance(child, dict) else None
        if not isinstance(post, dict):
            raise MalformedUpstreamResponse(endpoint, f"child {index} has no 'data' object")

        post_id = post.get("id")
        title = post.get("title")
        if not isinstance(post_id, str) or not post_id.strip():
            raise MalformedUpstreamResponse(endpoint, f"child {index} has no id")
        if not isinstance(title, str) or not title.strip():
            raise MalformedUpstreamResponse(endpoint, f"child {index} has no title")

        items.append(SourceItem(
            external_id=post_id,
            title=title.strip(),
            topic=topic,
            body=post.get("selftext") or None,
            payload=post,
            fetched_at=fetched_at,
        ))

    return items


class RedditSource(Source):
    """
    Fetches subreddit listings from Reddit's public JSON API.

    Makes exactly one GET per variant. HTTP errors propagate as
    requests.RequestException so the caller can move on to the next variant.
    """

    variants = LISTING_VARIANTS

    def __init__(self, user_agent: str = None, limit: int = None):
        self.user_agent = user_agent or REDDIT_USER_AGENT
        self.limit = limit or REDDIT_LISTING_LIMIT

    @property
    def name(self) -> str:
        return "reddit"

    def fetch_variant(self, topic: str, variant: str) -> List[SourceItem]:
        url = REDDIT_LISTING_URL.format(topic=topic, variant=variant)

        response = requests.get(
            url,
            headers={"User-Agent": self.user_agent},
            params={"limit": self.limit},
            timeout=REQUEST_TIMEOUT,
        )
        response.raise_for_status()

        try:
            body = response.json()
        except ValueError as e:
            raise MalformedUpstreamResponse(url, f"body is not JSON ({e})") from e

        items = parse_listing(body, topic, url)
        print(f"[{self.name}] Fetched {len(items)} posts from r/{topic}/{variant}")
        return items
