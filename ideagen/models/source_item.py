"""
Source item model.

A SourceItem is one discussion post fetched from the community source. The
stored copy doubles as the gateway's cache and as an audit log of what the
pipeline has seen.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from ideagen.utils import format_timestamp, parse_timestamp, utc_now


@dataclass
class SourceItem:
    """
    A single discussion post.

    Attributes:
        external_id: Upstream identifier (the Reddit post id). Unique per topic.
        title: Post title.
        topic: Normalized topic (subreddit) name.
        body: Self text of the post, None for link posts.
        payload: Raw upstream JSON for the post, kept for auditing.
        fetched_at: When the pipeline last fetched this post.
    """

    external_id: str
    title: str
    topic: str
    body: Optional[str] = None
    payload: Dict[str, Any] = field(default_factory=dict)
    fetched_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """
        Validate required fields.

        Raises:
            ValueError: If validation fails.
        """
        errors = []

        if not self.external_id or not str(self.external_id).strip():
            errors.append("external_id is required and cannot be empty")

        if not self.title or not self.title.strip():
            errors.append("title is required and cannot be empty")

        if not self.topic or not self.topic.strip():
            errors.append("topic is required and cannot be empty")

        if errors:
            raise ValueError(f"SourceItem validation failed: {'; '.join(errors)}")

    def to_dict(self) -> dict:
        """Plain dict with ISO timestamps, suitable for JSON."""
        return {
            "external_id": self.external_id,
            "title": self.title,
            "topic": self.topic,
            "body": self.body,
            "payload": self.payload,
            "fetched_at": format_timestamp(self.fetched_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SourceItem":
        """Rebuild from to_dict() output or a mock fixture row."""
        return cls(
            external_id=str(data["external_id"]),
            title=data["title"],
            topic=data["topic"],
            body=data.get("body"),
            payload=data.get("payload") or {},
            fetched_at=parse_timestamp(data.get("fetched_at")) or utc_now(),
        )

    def __str__(self) -> str:
        return f"[r/{self.topic}] {self.title} ({self.external_id})"
