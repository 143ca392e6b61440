"""
Base source abstraction for Idea Generator.

Defines the abstract interface that all discussion sources must implement.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import requests

from ideagen.errors import MalformedUpstreamResponse
from ideagen.models import SourceItem


@dataclass
class LiveFetch:
    """
    Outcome of walking a source's endpoint variants for one topic.

    Attributes:
        items: Items from the first variant that returned a non-empty listing.
        variant: That variant, or None if every variant failed or was empty.
        attempts: One line per variant tried, for logging.
        malformed: How many variants returned a structurally invalid listing.
    """
    items: List[SourceItem] = field(default_factory=list)
    variant: Optional[str] = None
    attempts: List[str] = field(default_factory=list)
    malformed: int = 0

    @property
    def succeeded(self) -> bool:
        return bool(self.items)

    @property
    def all_malformed(self) -> bool:
        """True when every variant tried was rejected as malformed."""
        return bool(self.attempts) and self.malformed == len(self.attempts)


class Source(ABC):
    """
    Abstract base class for all discussion sources.

    A source knows how to read one listing variant for a topic. Variants are
    tried in the fixed order of `variants` until one yields items.

    Attributes:
        name: Unique identifier for this source (e.g., "reddit").
        variants: Ordered endpoint variants to try.
    """

    variants: Sequence[str] = ("default",)

    @property
    @abstractmethod
    def name(self) -> str:
        """
        Return the unique name identifier for this source.

        Used for logging. Should be lowercase, no spaces.
        """
        pass

    @abstractmethod
    def fetch_variant(self, topic: str, variant: str) -> List[SourceItem]:
        """
        Fetch one listing variant for a topic.

        Implementations should:
        - Respect REQUEST_TIMEOUT from config
        - Return [] for a valid but empty listing
        - Raise MalformedUpstreamResponse when the listing fails validation
        - Let requests.RequestException propagate for transport or HTTP errors

        Args:
            topic: Normalized topic name.
            variant: One of `variants`.

        Returns:
            List of SourceItem instances.
        """
        pass

    def fetch_live(self, topic: str) -> LiveFetch:
        """
        Try each variant in order until one returns a non-empty listing.

        Never raises for per-variant failures; they are recorded on the result.
        """
        result = LiveFetch()

        for variant in self.variants:
            try:
                items = self.fetch_variant(topic, variant)
            except MalformedUpstreamResponse as e:
                result.malformed += 1
                result.attempts.append(f"{variant}: malformed ({e.reason})")
                print(f"[{self.name}] {e}")
                continue
            except requests.RequestException as e:
                result.attempts.append(f"{variant}: request failed ({e})")
                print(f"[{self.name}] Error fetching r/{topic}/{variant}: {e}")
                continue

            if not items:
                result.attempts.append(f"{variant}: empty")
                continue

            result.attempts.append(f"{variant}: {len(items)} items")
            result.items = items
            result.variant = variant
            break

        return result

    def fetch_items(self, topic: str) -> List[SourceItem]:
        """Live items for a topic, or [] if every variant failed."""
        return self.fetch_live(topic).items

    def __str__(self) -> str:
        return f"Source({self.name})"

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
