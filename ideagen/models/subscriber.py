"""
Subscriber model.
"""

from dataclasses import dataclass, field
from typing import List, Optional

# Sentinel subscription tag meaning "send me every new concept"
ALL_TOPICS = "all"


@dataclass
class Subscriber:
    """
    An email subscriber and the topic tags they follow.

    Topic-level filtering is not applied yet: anyone subscribed to ALL_TOPICS
    receives every concept of a run.
    """

    email: str
    subscription_topics: List[str] = field(default_factory=list)
    id: Optional[str] = None

    @property
    def wants_everything(self) -> bool:
        return ALL_TOPICS in (self.subscription_topics or [])

    def is_subscribed_to(self, topic: str) -> bool:
        return topic in (self.subscription_topics or [])

    def toggled(self, topic: str) -> "Subscriber":
        """Copy with `topic` added if absent, removed if present."""
        topics = list(self.subscription_topics or [])
        if topic in topics:
            topics = [t for t in topics if t != topic]
        else:
            topics.append(topic)
        return Subscriber(email=self.email, subscription_topics=topics, id=self.id)

    def to_dict(self) -> dict:
        return {"id": self.id, "email": self.email, "subscription_topics": list(self.subscription_topics)}

    @classmethod
    def from_dict(cls, data: dict) -> "Subscriber":
        return cls(
            id=data.get("id"),
            email=data["email"],
            subscription_topics=list(data.get("subscription_topics") or []),
        )
