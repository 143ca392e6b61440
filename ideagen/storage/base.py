"""
Base storage abstraction for Idea Generator.

Defines the abstract interface that all storage backends must implement.
The pipeline works against four collections:

| Collection    | Written by                     | Semantics                     |
|---------------|--------------------------------|-------------------------------|
| topics        | workflow (ensure + stamp)      | one row per normalized name   |
| raw_posts     | source cache gateway           | upsert by (topic, external_id)|
| ideas         | persistence stage              | append only                   |
| subscribers   | subscription toggle            | read-only to the pipeline     |
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from ideagen.models import Concept, SourceItem, Subscriber, Topic


# Logical collection names; backends map them to physical tables
TOPICS = "topics"
SOURCE_ITEMS = "raw_posts"
IDEAS = "ideas"
SUBSCRIBERS = "subscribers"


@dataclass
class UpsertResult:
    """
    Result of an upsert operation.

    Attributes:
        inserted: Number of new records created.
        updated: Number of existing records updated.
        failed: Number of records that failed to save.
        errors: List of error messages for failed records.
    """
    inserted: int = 0
    updated: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def total_processed(self) -> int:
        """Total number of successfully processed records."""
        return self.inserted + self.updated

    def __str__(self) -> str:
        return f"UpsertResult(inserted={self.inserted}, updated={self.updated}, failed={self.failed})"


class Storage(ABC):
    """
    Abstract base class for all storage backends.

    Backends raise PersistenceFailure when the underlying store rejects a
    read or write. Callers decide whether that is fatal.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Name of this storage backend, used for logging."""
        pass

    # =========================================================================
    # Generic get-or-create
    # =========================================================================

    @abstractmethod
    def get_or_create(
        self,
        collection: str,
        key_field: str,
        key_value: str,
        defaults: Optional[Dict[str, Any]] = None,
    ) -> Tuple[Dict[str, Any], bool]:
        """
        Return the row whose `key_field` equals `key_value`, creating it if absent.

        An existing row is returned untouched; `defaults` only apply on creation.

        Returns:
            Tuple of (row fields including "id", created flag).
        """
        pass

    def ensure_topic(self, name: str, category: Optional[str] = None) -> Tuple[Topic, bool]:
        """Get or create the topic row without touching last_synced_at."""
        defaults = {"category": category} if category else {}
        row, created = self.get_or_create(TOPICS, "name", name, defaults)
        return Topic.from_dict(row), created

    def ensure_subscriber(self, email: str) -> Tuple[Subscriber, bool]:
        """Get or create a subscriber by email with no subscriptions."""
        row, created = self.get_or_create(
            SUBSCRIBERS, "email", email.strip().lower(), {"subscription_topics": []}
        )
        return Subscriber.from_dict(row), created

    # =========================================================================
    # Source items
    # =========================================================================

    @abstractmethod
    def upsert_source_items(self, items: List[SourceItem]) -> UpsertResult:
        """
        Insert or update source items keyed by (topic, external_id).

        Repeated upserts of the same post never create a second row; the
        stored copy takes the latest fields and fetched_at.
        """
        pass

    @abstractmethod
    def get_source_items(
        self,
        topic: str,
        since: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> List[SourceItem]:
        """
        Stored items for `topic`, most recently fetched first.

        Args:
            topic: Normalized topic name.
            since: Only items with fetched_at >= since. None means any age.
            limit: Maximum number of items. None means no limit.
        """
        pass

    @abstractmethod
    def get_latest_source_items(self, limit: int = 50) -> List[SourceItem]:
        """Most recently fetched items across all topics."""
        pass

    # =========================================================================
    # Concepts (ideas)
    # =========================================================================

    @abstractmethod
    def insert_concepts(self, concepts: List[Concept]) -> int:
        """
        Append concepts. All or nothing: on failure nothing is left committed.

        Returns:
            Number of rows inserted.
        """
        pass

    @abstractmethod
    def count_concepts_for_run(self, run_id: str) -> int:
        """Number of concepts already stored under a workflow run id."""
        pass

    @abstractmethod
    def get_recent_concepts(
        self,
        since: Optional[datetime] = None,
        limit: Optional[int] = 50,
    ) -> List[Concept]:
        """Concepts created at or after `since`, newest first."""
        pass

    # =========================================================================
    # Topics
    # =========================================================================

    @abstractmethod
    def get_topic(self, name: str) -> Optional[Topic]:
        """The topic row for a normalized name, or None."""
        pass

    @abstractmethod
    def upsert_topic_sync(self, name: str, synced_at: datetime) -> None:
        """Set last_synced_at by name, creating the row if needed."""
        pass

    @abstractmethod
    def update_topic_sync(self, name: str, synced_at: datetime) -> None:
        """Set last_synced_at on an existing row with a plain update."""
        pass

    @abstractmethod
    def count_topics(self) -> int:
        pass

    # =========================================================================
    # Subscribers
    # =========================================================================

    @abstractmethod
    def list_subscribers(self) -> List[Subscriber]:
        pass

    @abstractmethod
    def save_subscriber(self, subscriber: Subscriber) -> Subscriber:
        """Persist a subscriber's topic set."""
        pass

    def __str__(self) -> str:
        return f"Storage({self.name})"
