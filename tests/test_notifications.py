"""
Notification Tests

Verifies subscriber gating, dispatch isolation, the interval digest job,
the subscription toggle and the email templates.
"""

import pytest
from datetime import timedelta
from unittest.mock import Mock

from ideagen.digest import (
    DigestTemplate,
    Notifier,
    confirmation_subject,
    digest_subject,
    send_interval_digest,
    toggle_subscription,
)
from ideagen.errors import NotificationDispatchFailure
from ideagen.models import Concept, Subscriber
from ideagen.services import MockMailer
from ideagen.utils import utc_now

from tests.test_config import EXPECTED, MESSAGES, TEST_DATA


def _concepts(count: int = 2) -> list:
    return [
        Concept(
            title=f"Idea {i}",
            pitch="A pitch",
            pain_point=f"Pain {i}",
            score=60 + i,
            target_audience="Founders",
        )
        for i in range(count)
    ]


def _subscribers() -> list:
    return [Subscriber.from_dict(dict(row, id=f"rec{i}")) for i, row in enumerate(TEST_DATA["subscribers"])]


class FlakyMailer(MockMailer):
    """Fails for the listed recipients."""

    def __init__(self, failing):
        super().__init__()
        self.failing = set(failing)

    def send(self, from_addr, to, subject, html):
        if to in self.failing:
            raise NotificationDispatchFailure(to, "mailbox unavailable")
        return super().send(from_addr, to, subject, html)


class TestNotifier:

    def test_only_all_subscribers_receive(self, mailer):
        report = Notifier(mailer).notify(_concepts(), _subscribers(), topic="startups")

        assert report.emails_sent == 1
        assert report.emails_failed == 0
        assert [to for _, to, _, _ in mailer.sent] == ["all@example.com"]

    def test_no_concepts_means_no_dispatch(self):
        mailer = Mock()
        report = Notifier(mailer).notify([], _subscribers())

        assert report.outcomes == []
        mailer.send.assert_not_called()

    def test_subject_counts_concepts(self, mailer):
        Notifier(mailer).notify(_concepts(3), _subscribers())
        [(_, _, subject, _)] = mailer.sent
        assert subject == EXPECTED["digest"]["subject_template"].format(n=3)

    def test_one_failure_does_not_block_others(self):
        """
        GIVEN: Three "all" subscribers, one with a failing mailbox
        WHEN: A digest is dispatched
        THEN: The other two are sent and the failure is recorded
        """
        subscribers = [
            Subscriber(email=f"user{i}@example.com", subscription_topics=["all"], id=f"rec{i}")
            for i in range(3)
        ]
        mailer = FlakyMailer(["user1@example.com"])

        report = Notifier(mailer).notify(_concepts(), subscribers)

        assert report.emails_sent == 2
        assert report.emails_failed == 1
        failed = [o for o in report.outcomes if not o.sent]
        assert failed[0].email == "user1@example.com"
        assert "mailbox unavailable" in failed[0].error

    def test_unexpected_error_is_recorded_not_raised(self):
        mailer = Mock()
        mailer.name = "broken"
        mailer.send.side_effect = RuntimeError("boom")

        report = Notifier(mailer).notify(_concepts(), _subscribers())

        assert report.emails_failed == 1
        assert report.outcomes[0].error == "boom"

    def test_report_dict_shape(self, mailer):
        data = Notifier(mailer).notify(_concepts(), _subscribers()).to_dict()
        assert data["emails_sent"] == 1
        assert data["results"][0]["email_id"] == MockMailer.MESSAGE_ID
        assert data["results"][0]["subscriber_id"] == "rec0"


class TestIntervalDigest:

    def test_no_recent_ideas(self, store, mailer):
        result = send_interval_digest(store, Notifier(mailer), hours=6)
        assert result.message.startswith(MESSAGES["digest"]["no_ideas"])
        assert result.interval_hours == 6
        assert mailer.sent == []

    def test_no_subscribers(self, store, mailer):
        store.insert_concepts(_concepts())
        result = send_interval_digest(store, Notifier(mailer), hours=24)
        assert result.message == MESSAGES["digest"]["no_users"]
        assert result.ideas_found == 2

    def test_sends_recent_ideas_only(self, store, mailer):
        old = _concepts(1)
        old[0].created_at = utc_now() - timedelta(hours=48)
        store.insert_concepts(old + _concepts(2))
        for subscriber in _subscribers():
            store.save_subscriber(subscriber)

        result = send_interval_digest(store, Notifier(mailer), hours=24)

        assert result.message == MESSAGES["digest"]["processed"]
        assert result.ideas_found == 2
        assert result.users_processed == 1
        assert result.emails_sent == 1
        assert result.to_dict()["results"][0]["sent"] is True


class TestToggleSubscription:

    def test_first_toggle_creates_and_subscribes(self, store, mailer):
        result = toggle_subscription(store, Notifier(mailer), "New@Example.com", "r/SaaS")

        assert result["success"] is True
        assert result["subscribed"] is True
        assert result["topics"] == ["saas"]
        [subscriber] = store.list_subscribers()
        assert subscriber.email == "new@example.com"
        assert mailer.sent[0][2] == confirmation_subject(True)

    def test_second_toggle_unsubscribes(self, store, mailer):
        notifier = Notifier(mailer)
        toggle_subscription(store, notifier, "a@example.com", "saas")
        result = toggle_subscription(store, notifier, "a@example.com", "saas")

        assert result["subscribed"] is False
        assert result["topics"] == []
        assert result["message"] == 'Unsubscribed from "saas"'

    def test_confirmation_failure_keeps_toggle(self, store):
        mailer = FlakyMailer(["a@example.com"])
        result = toggle_subscription(store, Notifier(mailer), "a@example.com", "all")

        assert result["subscribed"] is True
        assert store.list_subscribers()[0].wants_everything

    @pytest.mark.parametrize("email,topic", [("", "saas"), ("not-an-email", "saas"), ("a@example.com", "  ")])
    def test_bad_input_raises_value_error(self, store, mailer, email, topic):
        with pytest.raises(ValueError):
            toggle_subscription(store, Notifier(mailer), email, topic)


class TestTemplates:

    def test_digest_escapes_llm_text(self):
        concept = Concept(title="<script>x</script>", pitch="a & b", pain_point="p", score=80)
        html = DigestTemplate().render_digest([concept], topic="startups")

        assert "<script>" not in html
        assert "&lt;script&gt;" in html
        assert "a &amp; b" in html
        assert "80/100" in html
        assert 'Ideas for &quot;startups&quot;' in html

    def test_digest_without_topic_is_generic(self):
        html = DigestTemplate().render_digest(_concepts(1))
        assert "Latest Ideas" in html
        assert "Pain Point:" in html
        assert "For:" in html

    def test_subjects(self):
        assert digest_subject(2) == "Your Daily Idea Digest - 2 New Ideas"
        assert "unsubscribed" in confirmation_subject(False)

    def test_confirmation_mentions_topic(self):
        html = DigestTemplate().render_confirmation(False, "saas")
        assert "Unsubscribed" in html
        assert "saas" in html
