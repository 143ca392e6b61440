"""
Airtable storage backend for Idea Generator.

Implements the Storage interface using Airtable as the persistence layer.
Uses the Airtable REST API for all operations.

Airtable API Documentation: https://airtable.com/developers/web/api/introduction

=============================================================================
AIRTABLE SCHEMA
=============================================================================

Topics (AIRTABLE_TOPICS_TABLE):

| Column Name    | Field Type       | Description                          |
|----------------|------------------|--------------------------------------|
| name           | Single line text | Normalized subreddit name            |
| last_synced_at | Date             | Completion stamp read by observers   |
| category       | Single line text | Optional grouping                    |
| updated_at     | Date             | Last write                           |

RawPosts (AIRTABLE_POSTS_TABLE):

| external_id    | Single line text | Reddit post id                       |
| topic          | Single line text | Subreddit the post was fetched for   |
| title          | Single line text |                                      |
| body           | Long text        | Self text, empty for link posts      |
| payload        | Long text        | Raw post JSON                        |
| fetched_at     | Date             | Last fetch time (cache freshness)    |

Ideas (AIRTABLE_IDEAS_TABLE):

| title, pitch, pain_point, target_audience | text                      |
| score          | Number           | 0-100                                |
| source_ids     | Long text        | Comma separated Reddit ids           |
| topic, run_id  | Single line text | run_id is the per-run idempotency key|
| created_at     | Date             |                                      |

Subscribers (AIRTABLE_SUBSCRIBERS_TABLE):

| email               | Email            |                                 |
| subscription_topics | Multiple select  | "all" means every concept       |

Upserts use Airtable's performUpsert with fieldsToMergeOn, so the natural
keys (topic name, (topic, external_id), email) never produce duplicates.
=============================================================================
"""

import json
import threading
import time
from datetime import datetime
from typing import List, Optional, Dict, Any, Tuple

import requests

from ideagen.config import (
    AIRTABLE_API_KEY,
    AIRTABLE_BASE_ID,
    AIRTABLE_TOPICS_TABLE,
    AIRTABLE_POSTS_TABLE,
    AIRTABLE_IDEAS_TABLE,
    AIRTABLE_SUBSCRIBERS_TABLE,
    REQUEST_TIMEOUT,
)
from ideagen.errors import PersistenceFailure
from ideagen.models import Concept, SourceItem, Subscriber, Topic
from ideagen.storage.base import (
    IDEAS,
    SOURCE_ITEMS,
    SUBSCRIBERS,
    TOPICS,
    Storage,
    UpsertResult,
)
from ideagen.utils import format_timestamp, parse_timestamp, utc_now


def _chunks(seq: list, size: int) -> List[list]:
    return [seq[i:i + size] for i in range(0, len(seq), size)]


def _quote(value: str) -> str:
    """Quote a string literal for use inside an Airtable formula."""
    escaped = str(value).replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


class AirtableStorage(Storage):
    """
    Airtable-backed storage implementation.

    Configuration is pulled from environment variables via ideagen.config:
    - AIRTABLE_API_KEY: API key for authentication
    - AIRTABLE_BASE_ID: Base ID (starts with "app")
    - AIRTABLE_*_TABLE: physical table names for each collection
    """

    # Airtable API base URL
    API_BASE = "https://api.airtable.com/v0"

    # Rate limiting: Airtable allows 5 requests per second
    REQUEST_DELAY = 0.25

    # Airtable accepts at most 10 records per create/update/delete request
    BATCH_SIZE = 10

    def __init__(
        self,
        api_key: str = None,
        base_id: str = None,
        tables: Dict[str, str] = None,
    ):
        """
        Initialize AirtableStorage.

        Args:
            api_key: Airtable API key. Defaults to config.AIRTABLE_API_KEY.
            base_id: Airtable base ID. Defaults to config.AIRTABLE_BASE_ID.
            tables: Mapping of collection name to table name. Defaults to config.
        """
        self.api_key = api_key if api_key is not None else AIRTABLE_API_KEY
        self.base_id = base_id if base_id is not None else AIRTABLE_BASE_ID
        self.tables = {
            TOPICS: AIRTABLE_TOPICS_TABLE,
            SOURCE_ITEMS: AIRTABLE_POSTS_TABLE,
            IDEAS: AIRTABLE_IDEAS_TABLE,
            SUBSCRIBERS: AIRTABLE_SUBSCRIBERS_TABLE,
        }
        if tables:
            self.tables.update(tables)

        self._last_request_time = 0.0
        self._rate_lock = threading.Lock()

    @property
    def name(self) -> str:
        return "airtable"

    def _table_url(self, collection: str) -> str:
        return f"{self.API_BASE}/{self.base_id}/{self.tables[collection]}"

    @property
    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _rate_limit(self) -> None:
        """Enforce rate limiting between requests (shared by all threads)."""
        with self._rate_lock:
            now = time.time()
            elapsed = now - self._last_request_time
            if elapsed < self.REQUEST_DELAY:
                time.sleep(self.REQUEST_DELAY - elapsed)
            self._last_request_time = time.time()

    def _validate_config(self) -> None:
        if not self.api_key:
            raise PersistenceFailure("AIRTABLE_API_KEY is not configured")
        if not self.base_id:
            raise PersistenceFailure("AIRTABLE_BASE_ID is not configured")

    def _send(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        """
        Send one request and return the decoded JSON body.

        Raises:
            PersistenceFailure: On transport errors or non-2xx responses.
        """
        self._validate_config()
        self._rate_limit()

        call = {
            "get": requests.get,
            "post": requests.post,
            "patch": requests.patch,
            "delete": requests.delete,
        }[method]

        try:
            response = call(url, headers=self._headers, timeout=REQUEST_TIMEOUT, **kwargs)
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            raise PersistenceFailure(f"Airtable {method.upper()} {url} failed: {e}") from e
        except ValueError as e:
            raise PersistenceFailure(f"Airtable returned invalid JSON: {e}") from e

    # =========================================================================
    # Serialization: models <-> Airtable
    # =========================================================================

    @staticmethod
    def source_item_to_fields(item: SourceItem) -> Dict[str, Any]:
        return {
            "external_id": item.external_id,
            "topic": item.topic,
            "title": item.title,
            "body": item.body or "",
            "payload": json.dumps(item.payload),
            "fetched_at": format_timestamp(item.fetched_at),
        }

    @staticmethod
    def record_to_source_item(record: Dict[str, Any]) -> Optional[SourceItem]:
        fields = record.get("fields", {})
        try:
            payload = json.loads(fields.get("payload") or "{}")
        except ValueError:
            payload = {}
        try:
            return SourceItem(
                external_id=str(fields.get("external_id", "")),
                title=fields.get("title", ""),
                topic=fields.get("topic", ""),
                body=fields.get("body") or None,
                payload=payload,
                fetched_at=parse_timestamp(fields.get("fetched_at")) or utc_now(),
            )
        except ValueError:
            return None

    @staticmethod
    def concept_to_fields(concept: Concept) -> Dict[str, Any]:
        fields = concept.to_dict()
        fields.pop("id")
        fields["source_ids"] = ",".join(concept.source_ids)
        return {k: v for k, v in fields.items() if v is not None}

    @staticmethod
    def record_to_concept(record: Dict[str, Any]) -> Optional[Concept]:
        fields = dict(record.get("fields", {}))
        raw_ids = fields.get("source_ids") or ""
        fields["source_ids"] = [s for s in raw_ids.split(",") if s]
        fields["id"] = record.get("id")
        try:
            return Concept.from_dict(fields)
        except (KeyError, ValueError, TypeError):
            return None

    @staticmethod
    def _row(record: Dict[str, Any]) -> Dict[str, Any]:
        row = dict(record.get("fields", {}))
        row["id"] = record.get("id")
        return row

    # =========================================================================
    # API Operations
    # =========================================================================

    def _list_records(
        self,
        collection: str,
        filter_formula: str = None,
        sort_field: str = None,
        sort_direction: str = "desc",
        max_records: int = None,
    ) -> List[Dict]:
        """
        List records with optional filtering and sorting, following pagination.

        Returns:
            List of Airtable record dicts.
        """
        params: Dict[str, Any] = {}
        if filter_formula:
            params["filterByFormula"] = filter_formula
        if sort_field:
            params["sort[0][field]"] = sort_field
            params["sort[0][direction]"] = sort_direction
        if max_records:
            params["maxRecords"] = max_records

        records: List[Dict] = []
        while True:
            data = self._send("get", self._table_url(collection), params=dict(params))
            records.extend(data.get("records", []))
            offset = data.get("offset")
            if not offset or (max_records and len(records) >= max_records):
                break
            params["offset"] = offset

        return records[:max_records] if max_records else records

    def _find_one(self, collection: str, field_name: str, value: str) -> Optional[Dict]:
        records = self._list_records(
            collection,
            filter_formula=f"{{{field_name}}}={_quote(value)}",
            max_records=1,
        )
        return records[0] if records else None

    def _upsert_records(
        self,
        collection: str,
        merge_on: List[str],
        rows: List[Dict[str, Any]],
    ) -> Tuple[List[Dict], List[str], List[str]]:
        """
        performUpsert in batches of 10.

        Returns:
            (records, created ids, updated ids) across all batches.
        """
        records, created, updated = [], [], []
        for chunk in _chunks(rows, self.BATCH_SIZE):
            data = self._send(
                "patch",
                self._table_url(collection),
                json={
                    "performUpsert": {"fieldsToMergeOn": merge_on},
                    "records": [{"fields": fields} for fields in chunk],
                    "typecast": True,
                },
            )
            records.extend(data.get("records", []))
            created.extend(data.get("createdRecords", []))
            updated.extend(data.get("updatedRecords", []))
        return records, created, updated

    def _delete_records(self, collection: str, record_ids: List[str]) -> None:
        for chunk in _chunks(record_ids, self.BATCH_SIZE):
            self._send("delete", self._table_url(collection), params=[("records[]", rid) for rid in chunk])

    # =========================================================================
    # Storage Interface Implementation
    # =========================================================================

    def get_or_create(
        self,
        collection: str,
        key_field: str,
        key_value: str,
        defaults: Optional[Dict[str, Any]] = None,
    ) -> Tuple[Dict[str, Any], bool]:
        """
        Upsert on the key field alone, so an existing row's other fields are
        left as they are. Defaults are written only when the row was created.
        """
        records, created_ids, _ = self._upsert_records(
            collection, [key_field], [{key_field: key_value}]
        )
        if not records:
            raise PersistenceFailure(f"Airtable upsert on {collection} returned no record")

        record = records[0]
        created = record.get("id") in created_ids

        if created:
            fields = dict(defaults or {})
            if collection == TOPICS:
                fields.setdefault("updated_at", format_timestamp(utc_now()))
            if fields:
                record = self._send(
                    "patch",
                    f"{self._table_url(collection)}/{record['id']}",
                    json={"fields": fields, "typecast": True},
                )

        return self._row(record), created

    def upsert_source_items(self, items: List[SourceItem]) -> UpsertResult:
        """
        Upsert posts keyed by (topic, external_id), one request per 10 items.

        A rejected batch is counted as failed; the remaining batches still run.
        """
        result = UpsertResult()

        for chunk in _chunks(items, self.BATCH_SIZE):
            try:
                _, created, updated = self._upsert_records(
                    SOURCE_ITEMS,
                    ["topic", "external_id"],
                    [self.source_item_to_fields(item) for item in chunk],
                )
                result.inserted += len(created)
                result.updated += len(updated)
            except PersistenceFailure as e:
                result.failed += len(chunk)
                ids = ", ".join(item.external_id for item in chunk)
                result.errors.append(f"Upsert failed for [{ids}]: {e}")

        return result

    def get_source_items(
        self,
        topic: str,
        since: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> List[SourceItem]:
        formula = f"{{topic}}={_quote(topic)}"
        if since is not None:
            formula = f"AND({formula}, NOT(IS_BEFORE({{fetched_at}}, {_quote(format_timestamp(since))})))"

        records = self._list_records(
            SOURCE_ITEMS,
            filter_formula=formula,
            sort_field="fetched_at",
            sort_direction="desc",
            max_records=limit,
        )
        items = [self.record_to_source_item(r) for r in records]
        return [item for item in items if item]

    def get_latest_source_items(self, limit: int = 50) -> List[SourceItem]:
        records = self._list_records(
            SOURCE_ITEMS,
            sort_field="fetched_at",
            sort_direction="desc",
            max_records=limit,
        )
        items = [self.record_to_source_item(r) for r in records]
        return [item for item in items if item]

    def insert_concepts(self, concepts: List[Concept]) -> int:
        """
        Create concept rows in batches of 10.

        If any batch is rejected, the rows created by earlier batches are
        deleted before PersistenceFailure is raised. Should that delete also
        fail, the error names the orphaned record ids.
        """
        created_ids: List[str] = []

        try:
            for chunk in _chunks(concepts, self.BATCH_SIZE):
                data = self._send(
                    "post",
                    self._table_url(IDEAS),
                    json={
                        "records": [{"fields": self.concept_to_fields(c)} for c in chunk],
                        "typecast": True,
                    },
                )
                created_ids.extend(r["id"] for r in data.get("records", []))
        except PersistenceFailure as e:
            if created_ids:
                try:
                    self._delete_records(IDEAS, created_ids)
                except PersistenceFailure as rollback_error:
                    raise PersistenceFailure(
                        f"{e}; rollback failed, orphaned ideas: {', '.join(created_ids)} "
                        f"({rollback_error})"
                    ) from e
            raise

        for concept, record_id in zip(concepts, created_ids):
            concept.id = record_id

        return len(created_ids)

    def count_concepts_for_run(self, run_id: str) -> int:
        return len(self._list_records(IDEAS, filter_formula=f"{{run_id}}={_quote(run_id)}"))

    def get_recent_concepts(
        self,
        since: Optional[datetime] = None,
        limit: Optional[int] = 50,
    ) -> List[Concept]:
        formula = None
        if since is not None:
            formula = f"NOT(IS_BEFORE({{created_at}}, {_quote(format_timestamp(since))}))"

        records = self._list_records(
            IDEAS,
            filter_formula=formula,
            sort_field="created_at",
            sort_direction="desc",
            max_records=limit,
        )
        concepts = [self.record_to_concept(r) for r in records]
        return [c for c in concepts if c]

    def get_topic(self, name: str) -> Optional[Topic]:
        record = self._find_one(TOPICS, "name", name)
        return Topic.from_dict(self._row(record)) if record else None

    def upsert_topic_sync(self, name: str, synced_at: datetime) -> None:
        stamp = format_timestamp(synced_at)
        self._upsert_records(
            TOPICS,
            ["name"],
            [{"name": name, "last_synced_at": stamp, "updated_at": stamp}],
        )

    def update_topic_sync(self, name: str, synced_at: datetime) -> None:
        record = self._find_one(TOPICS, "name", name)
        if record is None:
            raise PersistenceFailure(f"Topic '{name}' does not exist")

        stamp = format_timestamp(synced_at)
        self._send(
            "patch",
            f"{self._table_url(TOPICS)}/{record['id']}",
            json={"fields": {"last_synced_at": stamp, "updated_at": stamp}},
        )

    def count_topics(self) -> int:
        return len(self._list_records(TOPICS))

    def list_subscribers(self) -> List[Subscriber]:
        subscribers = []
        for record in self._list_records(SUBSCRIBERS):
            row = self._row(record)
            if row.get("email"):
                subscribers.append(Subscriber.from_dict(row))
        return subscribers

    def save_subscriber(self, subscriber: Subscriber) -> Subscriber:
        fields = {
            "email": subscriber.email,
            "subscription_topics": list(subscriber.subscription_topics),
        }
        if subscriber.id:
            record = self._send(
                "patch",
                f"{self._table_url(SUBSCRIBERS)}/{subscriber.id}",
                json={"fields": fields, "typecast": True},
            )
        else:
            records, _, _ = self._upsert_records(SUBSCRIBERS, ["email"], [fields])
            record = records[0]
        return Subscriber.from_dict(self._row(record))


class MockAirtableStorage(Storage):
    """
    In-memory mock storage for testing and development.

    Use this when Airtable is not configured or for testing.
    Data is stored in memory and lost when the process ends.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._rows: Dict[str, List[Dict[str, Any]]] = {TOPICS: [], SUBSCRIBERS: []}
        self._posts: Dict[Tuple[str, str], SourceItem] = {}
        self._ideas: List[Concept] = []
        self._next_id = 0

    @property
    def name(self) -> str:
        return "mock"

    def _new_id(self) -> str:
        self._next_id += 1
        return f"rec{self._next_id:06d}"

    def _find(self, collection: str, key_field: str, value: str) -> Optional[Dict[str, Any]]:
        for row in self._rows[collection]:
            if row.get(key_field) == value:
                return row
        return None

    def get_or_create(
        self,
        collection: str,
        key_field: str,
        key_value: str,
        defaults: Optional[Dict[str, Any]] = None,
    ) -> Tuple[Dict[str, Any], bool]:
        with self._lock:
            row = self._find(collection, key_field, key_value)
            if row is not None:
                return dict(row), False

            row = dict(defaults or {})
            row[key_field] = key_value
            row["id"] = self._new_id()
            if collection == TOPICS:
                row.setdefault("last_synced_at", None)
                row.setdefault("updated_at", format_timestamp(utc_now()))
            self._rows[collection].append(row)
            return dict(row), True

    def upsert_source_items(self, items: List[SourceItem]) -> UpsertResult:
        """Store items in memory with idempotent behavior."""
        result = UpsertResult()

        with self._lock:
            for item in items:
                key = (item.topic, item.external_id)
                if key in self._posts:
                    result.updated += 1
                else:
                    result.inserted += 1
                self._posts[key] = item

        return result

    def get_source_items(
        self,
        topic: str,
        since: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> List[SourceItem]:
        with self._lock:
            items = [
                item for item in self._posts.values()
                if item.topic == topic and (since is None or item.fetched_at >= since)
            ]
        items.sort(key=lambda x: x.fetched_at, reverse=True)
        return items[:limit] if limit else items

    def get_latest_source_items(self, limit: int = 50) -> List[SourceItem]:
        with self._lock:
            items = sorted(self._posts.values(), key=lambda x: x.fetched_at, reverse=True)
        return items[:limit]

    def insert_concepts(self, concepts: List[Concept]) -> int:
        with self._lock:
            for concept in concepts:
                concept.id = self._new_id()
                self._ideas.append(concept)
        return len(concepts)

    def count_concepts_for_run(self, run_id: str) -> int:
        with self._lock:
            return sum(1 for c in self._ideas if c.run_id == run_id)

    def get_recent_concepts(
        self,
        since: Optional[datetime] = None,
        limit: Optional[int] = 50,
    ) -> List[Concept]:
        with self._lock:
            concepts = [c for c in self._ideas if since is None or c.created_at >= since]
        concepts.sort(key=lambda c: c.created_at, reverse=True)
        return concepts[:limit] if limit else concepts

    def get_topic(self, name: str) -> Optional[Topic]:
        with self._lock:
            row = self._find(TOPICS, "name", name)
            return Topic.from_dict(row) if row else None

    def upsert_topic_sync(self, name: str, synced_at: datetime) -> None:
        with self._lock:
            self.get_or_create(TOPICS, "name", name)
            self._set_sync(name, synced_at)

    def update_topic_sync(self, name: str, synced_at: datetime) -> None:
        with self._lock:
            if self._find(TOPICS, "name", name) is None:
                raise PersistenceFailure(f"Topic '{name}' does not exist")
            self._set_sync(name, synced_at)

    def _set_sync(self, name: str, synced_at: datetime) -> None:
        row = self._find(TOPICS, "name", name)
        row["last_synced_at"] = format_timestamp(synced_at)
        row["updated_at"] = format_timestamp(utc_now())

    def count_topics(self) -> int:
        return len(self._rows[TOPICS])

    def list_subscribers(self) -> List[Subscriber]:
        with self._lock:
            return [Subscriber.from_dict(row) for row in self._rows[SUBSCRIBERS]]

    def save_subscriber(self, subscriber: Subscriber) -> Subscriber:
        with self._lock:
            self.get_or_create(SUBSCRIBERS, "email", subscriber.email)
            stored = self._find(SUBSCRIBERS, "email", subscriber.email)
            stored["subscription_topics"] = list(subscriber.subscription_topics)
            return Subscriber.from_dict(stored)

    def clear(self) -> None:
        """Clear all records (for testing)."""
        with self._lock:
            self._rows = {TOPICS: [], SUBSCRIBERS: []}
            self._posts.clear()
            self._ideas.clear()

    def count(self) -> int:
        """Return number of stored source items (for testing)."""
        return len(self._posts)
