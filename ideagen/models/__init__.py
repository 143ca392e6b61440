"""
Data models module.

Defines data structures for topics, source items, pain points, concepts and subscribers.
"""

from ideagen.models.source_item import SourceItem
from ideagen.models.topic import Topic
from ideagen.models.concept import (
    PainPoint,
    ConceptDraft,
    Concept,
    SCORE_MIN,
    SCORE_MAX,
    score_band,
    score_in_range,
)
from ideagen.models.subscriber import Subscriber, ALL_TOPICS

__all__ = [
    "SourceItem",
    "Topic",
    "PainPoint",
    "ConceptDraft",
    "Concept",
    "SCORE_MIN",
    "SCORE_MAX",
    "score_band",
    "score_in_range",
    "Subscriber",
    "ALL_TOPICS",
]
