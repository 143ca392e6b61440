"""
Mock Reddit source backed by a local JSON fixture.

The fixture is a list of stored source item rows (see SourceItem.to_dict),
refreshed from the live store with `python main.py --sync-mocks`.
"""

import json
from pathlib import Path
from typing import List

from ideagen.config import MOCK_DATA_PATH
from ideagen.errors import MalformedUpstreamResponse, SourceUnavailable
from ideagen.models import SourceItem
from ideagen.sources.base import Source
from ideagen.utils import utc_now


class MockRedditSource(Source):
    """Serves fixture posts for a topic as if they were a live listing."""

    variants = ("mock",)

    def __init__(self, path=None):
        self.path = Path(path or MOCK_DATA_PATH)

    @property
    def name(self) -> str:
        return "mock-reddit"

    def load_rows(self) -> list:
        """
        Read the raw fixture rows.

        Raises:
            SourceUnavailable: If the fixture file does not exist.
            MalformedUpstreamResponse: If it is not a JSON list.
        """
        if not self.path.exists():
            raise SourceUnavailable(
                f"Mock file not found at {self.path}. Run `python main.py --sync-mocks` first."
            )

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except ValueError as e:
            raise MalformedUpstreamResponse(str(self.path), f"invalid JSON ({e})") from e

        if not isinstance(data, list):
            raise MalformedUpstreamResponse(str(self.path), "fixture is not a list")
        return data

    def fetch_variant(self, topic: str, variant: str) -> List[SourceItem]:
        now = utc_now()
        items = []
        for row in self.load_rows():
            if not isinstance(row, dict) or row.get("topic") != topic:
                continue
            try:
                item = SourceItem.from_dict(row)
            except (KeyError, ValueError) as e:
                raise MalformedUpstreamResponse(str(self.path), f"bad row ({e})") from e
            item.fetched_at = now
            items.append(item)

        print(f"[{self.name}] Loaded {len(items)} posts for r/{topic}")
        return items


def write_mock_file(items: List[SourceItem], path=None) -> Path:
    """Export items as the fixture file, creating the data directory if needed."""
    target = Path(path or MOCK_DATA_PATH)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(
        json.dumps([item.to_dict() for item in items], indent=2),
        encoding="utf-8",
    )
    return target
