"""
Tests for the HTTP API.

Tests the Flask routes against in-memory backends: workflow triggers,
topic status, ideas, subscriptions, the digest job and the health check.
"""

import pytest
from datetime import timedelta
from unittest.mock import patch

from web.app import app, dispatcher

from ideagen.errors import PersistenceFailure
from ideagen.models import Concept
from ideagen.utils import utc_now

from tests.test_config import CONFIG, make_items


# =============================================================================
# Test Fixtures
# =============================================================================

@pytest.fixture
def client(installed_backends):
    """Flask test client wired to the test backends."""
    app.config["TESTING"] = True
    with app.test_client() as client:
        yield client


@pytest.fixture
def stored_concepts(store):
    concepts = [
        Concept(title="Strong idea", pitch="p", pain_point="a", score=85),
        Concept(title="Weak idea", pitch="p", pain_point="b", score=20),
    ]
    old = Concept(title="Old idea", pitch="p", pain_point="c", score=60)
    old.created_at = utc_now() - timedelta(hours=48)
    store.insert_concepts(concepts + [old])
    return concepts


# =============================================================================
# Workflow
# =============================================================================

class TestSync:

    def test_sync_returns_ack_before_run_finishes(self, client, store):
        """
        GIVEN: Fresh cached posts for "startups"
        WHEN: POST /api/sync
        THEN: 202 with a run id; the run then stamps the topic
        """
        store.upsert_source_items(make_items(fetched_at=utc_now()))

        response = client.post("/api/sync", json={"topic": "r/Startups"})

        assert response.status_code == 202
        ack = response.get_json()
        assert ack["status"] == "triggered"
        assert ack["topic"] == "startups"

        summary = dispatcher.wait(ack["run_id"], timeout=10)
        assert summary["state"] == "done"
        assert store.get_topic("startups").last_synced_at is not None

    def test_finished_run_summary(self, client, store):
        ack = client.post("/api/sync", json={"topic": "saas"}).get_json()
        dispatcher.wait(ack["run_id"], timeout=10)

        response = client.get(f"/api/runs/{ack['run_id']}")

        assert response.status_code == 200
        assert response.get_json()["topic"] == "saas"

    def test_unknown_run_is_404(self, client):
        assert client.get("/api/runs/run-missing").status_code == 404


class TestEvents:

    def test_scrape_event_is_accepted(self, client):
        response = client.post("/api/events", json={"name": "app/scrape", "data": {"topic": "saas"}})

        assert response.status_code == 202
        ack = response.get_json()
        assert ack["topic"] == "saas"
        dispatcher.wait(ack["run_id"], timeout=10)

    @pytest.mark.parametrize("body", [{"name": "app/other"}, {}])
    def test_unknown_event_is_400(self, client, body):
        response = client.post("/api/events", json=body)
        assert response.status_code == 400
        assert "Unknown event" in response.get_json()["error"]


class TestTopicStatus:

    def test_unknown_topic_is_404(self, client):
        assert client.get("/api/topics/nothing-here").status_code == 404

    def test_topic_row(self, client, store):
        store.upsert_topic_sync("startups", CONFIG["fixed_now"])

        response = client.get("/api/topics/Startups")

        assert response.status_code == 200
        data = response.get_json()
        assert data["name"] == "startups"
        assert data["last_synced_at"].startswith("2024-12-01T12:00:00")

    def test_store_failure_is_500(self, client, store):
        with patch.object(store, "get_topic", side_effect=PersistenceFailure("down")):
            response = client.get("/api/topics/startups")
        assert response.status_code == 500


# =============================================================================
# Ideas
# =============================================================================

class TestIdeas:

    def test_recent_ideas_with_bands(self, client, stored_concepts):
        response = client.get("/api/ideas")

        assert response.status_code == 200
        data = response.get_json()
        assert data["count"] == 2
        bands = {idea["title"]: idea["band"] for idea in data["ideas"]}
        assert bands == {"Strong idea": "strong", "Weak idea": "weak"}

    def test_hours_widens_window(self, client, stored_concepts):
        data = client.get("/api/ideas?hours=72").get_json()
        assert data["count"] == 3

    def test_limit(self, client, stored_concepts):
        assert client.get("/api/ideas?limit=1").get_json()["count"] == 1

    def test_non_integer_query_is_400(self, client):
        assert client.get("/api/ideas?hours=soon").status_code == 400


# =============================================================================
# Subscriptions and Email
# =============================================================================

class TestSubscriptions:

    def test_toggle_on_then_off(self, client, mailer):
        first = client.post("/api/subscriptions", json={"email": "a@example.com", "topic": "saas"})
        second = client.post("/api/subscriptions", json={"email": "a@example.com", "topic": "saas"})

        assert first.get_json()["subscribed"] is True
        assert second.get_json()["subscribed"] is False
        assert len(mailer.sent) == 2

    def test_missing_email_is_400(self, client):
        response = client.post("/api/subscriptions", json={"topic": "saas"})
        assert response.status_code == 400

    def test_store_failure_is_500(self, client, store):
        with patch.object(store, "ensure_subscriber", side_effect=PersistenceFailure("down")):
            response = client.post("/api/subscriptions", json={"email": "a@example.com", "topic": "saas"})

        assert response.status_code == 500
        assert response.get_json()["error"] == "Failed to update subscription"


class TestEmailDigest:

    def test_requires_cron_secret(self, client):
        with patch("web.app.CRON_SECRET", "s3cret"):
            assert client.get("/api/cron/email-digest").status_code == 401
            response = client.get("/api/cron/email-digest", headers={"Authorization": "Bearer s3cret"})
        assert response.status_code == 200

    def test_digest_without_ideas(self, client):
        with patch("web.app.CRON_SECRET", ""):
            data = client.get("/api/cron/email-digest").get_json()
        assert data["ideas_found"] == 0
        assert data["emails_sent"] == 0


# =============================================================================
# Health
# =============================================================================

class TestHealth:

    def test_ok(self, client, store):
        store.ensure_topic("startups")

        data = client.get("/api/health/db").get_json()

        assert data["status"] == "ok"
        assert data["count"] == 1
        assert data["latency"].endswith("ms")
        assert data["timestamp"]

    def test_store_failure_is_500(self, client, store):
        with patch.object(store, "count_topics", side_effect=PersistenceFailure("down")):
            response = client.get("/api/health/db")

        assert response.status_code == 500
        assert response.get_json()["status"] == "error"
