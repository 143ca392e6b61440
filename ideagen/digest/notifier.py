"""
Notification stage and the email jobs built on it.

    notify()               one run's concepts -> every "all" subscriber
    send_interval_digest() concepts from the last N hours -> every "all" subscriber
    toggle_subscription()  add/remove a topic for an email + confirmation mail

Dispatches run concurrently, one per subscriber, and are never retried. A
failed dispatch is recorded and never blocks the others.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Dict, List, Optional

from ideagen.config import EMAIL_DIGEST_INTERVAL_HOURS, RESEND_FROM_EMAIL
from ideagen.digest.generator import DigestTemplate, confirmation_subject, digest_subject
from ideagen.errors import NotificationDispatchFailure
from ideagen.models import Concept, Subscriber
from ideagen.services.mailer import Mailer
from ideagen.storage import Storage
from ideagen.utils import normalize_topic_name, utc_now


# Upper bound on concurrent dispatches per notification batch
MAX_DISPATCH_WORKERS = 8


# =============================================================================
# Results
# =============================================================================

@dataclass
class DispatchOutcome:
    """Outcome of one email dispatch."""
    subscriber_id: Optional[str]
    email: str
    sent: bool
    message_id: Optional[str] = None
    error: Optional[str] = None
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {"subscriber_id": self.subscriber_id, "email": self.email, "sent": self.sent}
        if self.message_id:
            data["email_id"] = self.message_id
        if self.error:
            data["error"] = self.error
        if self.reason:
            data["reason"] = self.reason
        return data


@dataclass
class NotificationReport:
    """All dispatch outcomes of one notification batch."""
    outcomes: List[DispatchOutcome] = field(default_factory=list)

    @property
    def emails_sent(self) -> int:
        return sum(1 for o in self.outcomes if o.sent)

    @property
    def emails_failed(self) -> int:
        return sum(1 for o in self.outcomes if not o.sent)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "emails_sent": self.emails_sent,
            "emails_failed": self.emails_failed,
            "results": [o.to_dict() for o in self.outcomes],
        }


@dataclass
class IntervalDigestResult:
    message: str
    ideas_found: int = 0
    users_processed: int = 0
    emails_sent: int = 0
    emails_failed: int = 0
    interval_hours: int = 0
    results: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "ideas_found": self.ideas_found,
            "users_processed": self.users_processed,
            "emails_sent": self.emails_sent,
            "emails_failed": self.emails_failed,
            "interval_hours": self.interval_hours,
            "results": self.results,
        }


# =============================================================================
# Notifier
# =============================================================================

class Notifier:
    """
    Sends concept digests to subscribers.

    Usage:
        notifier = Notifier(MockMailer())
        report = notifier.notify(concepts, store.list_subscribers())
        print(f"{report.emails_sent} sent, {report.emails_failed} failed")
    """

    def __init__(
        self,
        mailer: Mailer,
        template: DigestTemplate = None,
        from_addr: str = None,
        max_workers: int = MAX_DISPATCH_WORKERS,
        verbose: bool = False,
    ):
        self.mailer = mailer
        self.template = template or DigestTemplate()
        self.from_addr = from_addr or RESEND_FROM_EMAIL
        self.max_workers = max_workers
        self.verbose = verbose

    @staticmethod
    def eligible(subscribers: List[Subscriber]) -> List[Subscriber]:
        """Subscribers whose topics contain "all"; per-topic delivery is not supported yet."""
        return [s for s in subscribers if s.wants_everything]

    def notify(
        self,
        concepts: List[Concept],
        candidates: List[Subscriber],
        topic: Optional[str] = None,
    ) -> NotificationReport:
        """
        Email every eligible candidate the full list of concepts.

        No concepts means no dispatch attempts at all.
        """
        report = NotificationReport()
        if not concepts:
            return report

        recipients = self.eligible(candidates)
        if not recipients:
            if self.verbose:
                print("[notify] No subscribers with 'all' in their topics")
            return report

        subject = digest_subject(len(concepts))
        html = self.template.render_digest(concepts, topic)

        workers = max(1, min(self.max_workers, len(recipients)))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [
                pool.submit(self._dispatch, subscriber, subject, html)
                for subscriber in recipients
            ]
            report.outcomes = [future.result() for future in futures]

        print(f"[notify] {report.emails_sent} sent, {report.emails_failed} failed via {self.mailer.name}")
        return report

    def _dispatch(self, subscriber: Subscriber, subject: str, html: str) -> DispatchOutcome:
        try:
            message_id = self.mailer.send(self.from_addr, subscriber.email, subject, html)
            return DispatchOutcome(subscriber.id, subscriber.email, sent=True, message_id=message_id)
        except NotificationDispatchFailure as e:
            print(f"[notify] Error sending email to {subscriber.email}: {e.reason}")
            return DispatchOutcome(subscriber.id, subscriber.email, sent=False, error=e.reason)
        except Exception as e:
            print(f"[notify] Exception sending email to {subscriber.email}: {e}")
            return DispatchOutcome(subscriber.id, subscriber.email, sent=False, error=str(e))


# =============================================================================
# Email jobs
# =============================================================================

def send_interval_digest(
    store: Storage,
    notifier: Notifier,
    hours: int = None,
) -> IntervalDigestResult:
    """
    Send every concept created in the last `hours` to all "all" subscribers.

    Raises:
        PersistenceFailure: If ideas or subscribers cannot be read.
    """
    hours = hours or EMAIL_DIGEST_INTERVAL_HOURS
    since = utc_now() - timedelta(hours=hours)

    concepts = store.get_recent_concepts(since=since, limit=None)
    if not concepts:
        return IntervalDigestResult(
            message=f"No new ideas in the last {hours} hour(s)",
            interval_hours=hours,
        )

    recipients = notifier.eligible(store.list_subscribers())
    if not recipients:
        return IntervalDigestResult(
            message="No subscribed users found",
            ideas_found=len(concepts),
            interval_hours=hours,
        )

    report = notifier.notify(concepts, recipients)
    return IntervalDigestResult(
        message="Email digest processed",
        ideas_found=len(concepts),
        users_processed=len(recipients),
        emails_sent=report.emails_sent,
        emails_failed=report.emails_failed,
        interval_hours=hours,
        results=[o.to_dict() for o in report.outcomes],
    )


def toggle_subscription(
    store: Storage,
    notifier: Notifier,
    email: str,
    topic: str,
) -> Dict[str, Any]:
    """
    Subscribe `email` to `topic`, or unsubscribe if already subscribed.

    The subscriber row is created on first use. A confirmation email is sent;
    if that fails the toggle still stands.

    Raises:
        ValueError: If email or topic is empty.
        PersistenceFailure: If the subscriber cannot be read or saved.
    """
    if not email or "@" not in email:
        raise ValueError("a valid email address is required")
    topic = normalize_topic_name(topic)

    subscriber, _ = store.ensure_subscriber(email)
    was_subscribed = subscriber.is_subscribed_to(topic)
    subscriber = store.save_subscriber(subscriber.toggled(topic))
    subscribed = not was_subscribed

    try:
        notifier.mailer.send(
            notifier.from_addr,
            subscriber.email,
            confirmation_subject(subscribed),
            notifier.template.render_confirmation(subscribed, topic),
        )
    except NotificationDispatchFailure as e:
        print(f"[notify] Error sending subscription confirmation to {subscriber.email}: {e.reason}")

    return {
        "success": True,
        "subscribed": subscribed,
        "topics": list(subscriber.subscription_topics),
        "message": f'Subscribed to "{topic}"' if subscribed else f'Unsubscribed from "{topic}"',
    }
