"""
Storage module.

Handles persistence of topics, fetched posts, ideas and subscribers via
Airtable or the in-memory mock backend.
"""

from ideagen.storage.base import (
    Storage,
    UpsertResult,
    TOPICS,
    SOURCE_ITEMS,
    IDEAS,
    SUBSCRIBERS,
)
from ideagen.storage.airtable import AirtableStorage, MockAirtableStorage
from ideagen.storage.persistence import persist_concepts

__all__ = [
    "Storage",
    "UpsertResult",
    "TOPICS",
    "SOURCE_ITEMS",
    "IDEAS",
    "SUBSCRIBERS",
    "AirtableStorage",
    "MockAirtableStorage",
    "persist_concepts",
]
