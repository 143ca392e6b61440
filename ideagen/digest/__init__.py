"""
Digest module.

Renders idea digests and delivers them to subscribers.
"""

from ideagen.digest.generator import DigestTemplate, confirmation_subject, digest_subject
from ideagen.digest.notifier import (
    DispatchOutcome,
    IntervalDigestResult,
    NotificationReport,
    Notifier,
    send_interval_digest,
    toggle_subscription,
)

__all__ = [
    "DigestTemplate",
    "confirmation_subject",
    "digest_subject",
    "DispatchOutcome",
    "IntervalDigestResult",
    "NotificationReport",
    "Notifier",
    "send_interval_digest",
    "toggle_subscription",
]
