"""
Observer module.

Polling client that detects workflow completion from last_synced_at.
"""

from ideagen.observer.sync_status import SyncState, SyncStatusObserver, TopicStatusClient

__all__ = [
    "SyncState",
    "SyncStatusObserver",
    "TopicStatusClient",
]
