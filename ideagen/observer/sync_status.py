"""
Sync status observer.

There is no push channel from a running workflow to its caller. A client
learns that a run finished by polling the topic's last_synced_at:

    start_sync()  captures baseline = last_synced_at (may be None)
    poll_once()   complete when the value appears (baseline None) or differs
                  from the baseline; "stuck" once SYNC_TIMEOUT has elapsed
    watch()       keeps polling, fast (SYNC_POLL_INTERVAL) while a sync is in
                  flight and slow (IDLE_POLL_INTERVAL) otherwise

If the baseline read fails, the baseline is captured by the next successful
read; a failed read never counts as "never synced". Completion is signalled
exactly once.
"""

import time
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Optional
from urllib.parse import quote

import requests

from ideagen.config import IDLE_POLL_INTERVAL, REQUEST_TIMEOUT, SYNC_POLL_INTERVAL, SYNC_TIMEOUT
from ideagen.errors import IdeaGenError
from ideagen.utils import parse_timestamp


# Baseline not captured yet (the read in start_sync failed)
_NO_BASELINE = object()


class SyncState(str, Enum):
    IDLE = "idle"
    SYNCING = "syncing"
    COMPLETED = "completed"
    STUCK = "stuck"


class SyncStatusObserver:
    """
    Watches one topic's last_synced_at for a change.

    Args:
        fetch_last_synced: Returns the topic's current last_synced_at or None.
        on_complete: Called once with the new value when the sync completes.
        on_stuck: Called once when the timeout elapses first.
        sync_interval: Seconds between polls while syncing.
        idle_interval: Seconds between polls otherwise.
        timeout: Seconds after start_sync() before giving up.
        clock: Monotonic seconds; injectable for tests.
        sleep: Sleep function; injectable for tests.
    """

    def __init__(
        self,
        fetch_last_synced: Callable[[], Optional[datetime]],
        on_complete: Callable[[Optional[datetime]], None] = None,
        on_stuck: Callable[[], None] = None,
        sync_interval: float = None,
        idle_interval: float = None,
        timeout: float = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        verbose: bool = False,
    ):
        self.fetch_last_synced = fetch_last_synced
        self.on_complete = on_complete
        self.on_stuck = on_stuck
        self.sync_interval = sync_interval or SYNC_POLL_INTERVAL
        self.idle_interval = idle_interval or IDLE_POLL_INTERVAL
        self.timeout = timeout or SYNC_TIMEOUT
        self.clock = clock
        self.sleep = sleep
        self.verbose = verbose

        self.state = SyncState.IDLE
        self._baseline: Any = None
        self.last_seen: Optional[datetime] = None
        self.started_at: Optional[float] = None
        self.completions = 0

    @property
    def has_baseline(self) -> bool:
        return self._baseline is not _NO_BASELINE

    @property
    def baseline(self) -> Optional[datetime]:
        return self._baseline if self.has_baseline else None

    @property
    def poll_interval(self) -> float:
        return self.sync_interval if self.state == SyncState.SYNCING else self.idle_interval

    def _read(self) -> bool:
        """
        Fetch the current value into last_seen.

        Returns:
            False if the read failed; last_seen then keeps the previous value.
        """
        try:
            self.last_seen = self.fetch_last_synced()
        except (requests.RequestException, IdeaGenError) as e:
            print(f"[observer] Status check failed: {e}")
            return False
        return True

    def start_sync(self) -> Optional[datetime]:
        """Capture the baseline and switch to fast polling."""
        self._baseline = self.last_seen if self._read() else _NO_BASELINE
        self.started_at = self.clock()
        self.state = SyncState.SYNCING
        if self.verbose:
            shown = self.baseline if self.has_baseline else "unknown"
            print(f"[observer] Sync started, baseline={shown}")
        return self.baseline

    def _completed(self, value: Optional[datetime]) -> bool:
        if value is None:
            return False
        if self._baseline is None:
            return True
        return value != self._baseline

    def poll_once(self) -> SyncState:
        """One poll. Only a SYNCING observer can change state."""
        previous = self.last_seen
        ok = self._read()

        if self.state != SyncState.SYNCING:
            if ok and self.last_seen != previous:
                print(f"[observer] last_synced_at is now {self.last_seen}")
            return self.state

        if ok and not self.has_baseline:
            self._baseline = self.last_seen
            print(f"[observer] Baseline captured late: {self._baseline}")
        elif ok and self._completed(self.last_seen):
            self.state = SyncState.COMPLETED
            self.completions += 1
            print(f"[observer] Sync complete (last_synced_at={self.last_seen.isoformat()})")
            if self.on_complete:
                self.on_complete(self.last_seen)
            return self.state

        if self.clock() - self.started_at >= self.timeout:
            self.state = SyncState.STUCK
            print(f"[observer] No completion after {self.timeout:.0f}s, sync looks stuck")
            if self.on_stuck:
                self.on_stuck()
        elif self.verbose:
            print("[observer] Still syncing...")

        return self.state

    def wait_for_completion(self) -> SyncState:
        """
        Poll at the sync interval until the sync completes or times out.

        Calls start_sync() first if it has not been called.
        """
        if self.state != SyncState.SYNCING:
            self.start_sync()

        while self.state == SyncState.SYNCING:
            self.sleep(self.poll_interval)
            self.poll_once()

        return self.state

    def watch(self, max_polls: int = None) -> SyncState:
        """
        Keep polling at the current rate: fast while syncing, slow otherwise.

        Runs until interrupted, or for `max_polls` polls when given.
        """
        polls = 0
        while max_polls is None or polls < max_polls:
            self.sleep(self.poll_interval)
            self.poll_once()
            polls += 1
        return self.state


class TopicStatusClient:
    """
    HTTP client for a running web app: triggers syncs and reads topic status.

    Usage:
        client = TopicStatusClient("http://localhost:5000")
        observer = SyncStatusObserver(lambda: client.get_last_synced("startups"))
        observer.start_sync()
        client.trigger("startups")
        observer.wait_for_completion()
    """

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip("/")

    def get_topic(self, topic: str) -> Optional[Dict[str, Any]]:
        response = requests.get(
            f"{self.base_url}/api/topics/{quote(topic)}",
            timeout=REQUEST_TIMEOUT,
        )
        if response.status_code == 404:
            return None
        response.raise_for_status()
        return response.json()

    def get_last_synced(self, topic: str) -> Optional[datetime]:
        data = self.get_topic(topic)
        return parse_timestamp(data.get("last_synced_at")) if data else None

    def trigger(self, topic: str) -> Dict[str, Any]:
        response = requests.post(
            f"{self.base_url}/api/sync",
            json={"topic": topic},
            timeout=REQUEST_TIMEOUT,
        )
        response.raise_for_status()
        return response.json()
