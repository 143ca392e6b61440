"""
Idea Generator - HTTP API

A small Flask app exposing the workflow trigger, the topic status that
polling clients watch, recent ideas, subscriptions and the email digest job.

Run with: python -m web.app
"""

import sys
import time
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from flask import Flask, request, jsonify
from datetime import timedelta

from ideagen.backends import get_backends
from ideagen.config import CRON_SECRET, ensure_valid_config
from ideagen.digest import send_interval_digest, toggle_subscription
from ideagen.errors import ConfigurationError, IdeaGenError
from ideagen.pipeline import IdeaGenPipeline, PipelineConfig
from ideagen.utils import format_timestamp, normalize_topic_name, utc_now
from ideagen.workflow import WorkflowDispatcher

app = Flask(__name__)


# =============================================================================
# Workflow Dispatch
# =============================================================================

def _run_workflow(topic: str, run_id: str):
    """Run one workflow in the dispatcher's background thread."""
    config = PipelineConfig(topic=topic, run_id=run_id)
    return IdeaGenPipeline(config, backends=get_backends()).run()


# Global dispatcher (simple in-memory run tracking)
dispatcher = WorkflowDispatcher(_run_workflow)


def _json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


# =============================================================================
# Workflow
# =============================================================================

@app.route("/api/sync", methods=["POST"])
def api_sync():
    """Trigger a scrape-and-generate run; returns before the run starts work."""
    data = _json_body()
    ack = dispatcher.trigger(data.get("topic"))
    return jsonify(ack), 202


@app.route("/api/events", methods=["POST"])
def api_events():
    """Named event intake, e.g. {"name": "app/scrape", "data": {"topic": "startups"}}."""
    try:
        ack = dispatcher.handle_event(_json_body())
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(ack), 202


@app.route("/api/runs/<run_id>")
def api_run(run_id):
    """Run summary once the run finished; 202 while it is still going."""
    summary = dispatcher.get_run(run_id)
    if summary is not None:
        return jsonify(summary)
    if dispatcher.is_known(run_id):
        return jsonify({"run_id": run_id, "status": "running"}), 202
    return jsonify({"error": f"Unknown run: {run_id}"}), 404


@app.route("/api/topics/<name>")
def api_topic(name):
    """Topic sync metadata; last_synced_at is the completion signal."""
    try:
        topic = normalize_topic_name(name)
        row = get_backends().store.get_topic(topic)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except IdeaGenError as e:
        return jsonify({"error": str(e)}), 500

    if row is None:
        return jsonify({"error": f"Topic not found: {topic}"}), 404
    return jsonify(row.to_dict())


# =============================================================================
# Ideas
# =============================================================================

@app.route("/api/ideas")
def api_ideas():
    """Recent ideas, newest first. Query: hours (default 24), limit (default 50)."""
    try:
        hours = int(request.args.get("hours", 24))
        limit = min(int(request.args.get("limit", 50)), 100)
    except ValueError:
        return jsonify({"error": "hours and limit must be integers"}), 400

    try:
        concepts = get_backends().store.get_recent_concepts(
            since=utc_now() - timedelta(hours=hours),
            limit=limit,
        )
    except IdeaGenError as e:
        return jsonify({"error": str(e)}), 500

    return jsonify({
        "count": len(concepts),
        "ideas": [dict(c.to_dict(), band=c.band) for c in concepts],
    })


# =============================================================================
# Subscriptions and Email
# =============================================================================

@app.route("/api/subscriptions", methods=["POST"])
def api_subscriptions():
    """Toggle a topic for an email address. Body: {email, topic}."""
    data = _json_body()
    backends = get_backends()

    try:
        result = toggle_subscription(
            backends.store,
            backends.notifier(),
            data.get("email", ""),
            data.get("topic", ""),
        )
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except IdeaGenError as e:
        return jsonify({"error": "Failed to update subscription", "details": str(e)}), 500

    return jsonify(result)


@app.route("/api/cron/email-digest")
def api_email_digest():
    """Interval email digest; requires `Authorization: Bearer <CRON_SECRET>` when set."""
    if CRON_SECRET and request.headers.get("Authorization") != f"Bearer {CRON_SECRET}":
        return jsonify({"error": "Unauthorized"}), 401

    backends = get_backends()
    try:
        result = send_interval_digest(backends.store, backends.notifier())
    except IdeaGenError as e:
        print(f"[notify] Error in email digest job: {e}")
        return jsonify({"error": "Internal server error", "details": str(e)}), 500

    return jsonify(result.to_dict())


# =============================================================================
# Health
# =============================================================================

@app.route("/api/health/db")
def api_health_db():
    """Store round trip: status, latency and topic count."""
    start = time.time()
    try:
        count = get_backends().store.count_topics()
    except IdeaGenError as e:
        latency = int((time.time() - start) * 1000)
        return jsonify({
            "status": "error",
            "message": str(e),
            "timestamp": format_timestamp(utc_now()),
            "latency": f"{latency}ms",
        }), 500

    latency = int((time.time() - start) * 1000)
    return jsonify({
        "status": "ok",
        "timestamp": format_timestamp(utc_now()),
        "latency": f"{latency}ms",
        "count": count,
    })


if __name__ == "__main__":
    try:
        ensure_valid_config()
    except ConfigurationError as e:
        print("Configuration errors:")
        for error in e.errors:
            print(f"  ✗ {error}")
        sys.exit(1)

    print("=" * 50)
    print("Idea Generator API")
    print("=" * 50)
    print("Listening on http://localhost:5001")
    print("Press Ctrl+C to stop")
    print("=" * 50)
    app.run(debug=False, port=5001)
