"""
Topic model: a tracked discussion source and its sync metadata.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ideagen.utils import format_timestamp, parse_timestamp, utc_now


@dataclass
class Topic:
    """
    A tracked topic (subreddit).

    `last_synced_at` is the only completion signal observers can see. It stays
    None until the first run for this topic finishes.
    """

    name: str
    last_synced_at: Optional[datetime] = None
    category: Optional[str] = None
    updated_at: datetime = field(default_factory=utc_now)

    @property
    def never_synced(self) -> bool:
        return self.last_synced_at is None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "last_synced_at": format_timestamp(self.last_synced_at),
            "category": self.category,
            "updated_at": format_timestamp(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Topic":
        return cls(
            name=data["name"],
            last_synced_at=parse_timestamp(data.get("last_synced_at")),
            category=data.get("category"),
            updated_at=parse_timestamp(data.get("updated_at")) or utc_now(),
        )
