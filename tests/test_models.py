"""
Tests for the data models.

Covers validation, score bands, serialization helpers and the
subscriber toggle.
"""

import pytest
from datetime import datetime, timezone

from ideagen.models import (
    Concept,
    ConceptDraft,
    PainPoint,
    SourceItem,
    Subscriber,
    Topic,
    score_band,
)

from tests.test_config import EXPECTED


class TestSourceItem:

    def test_requires_id_title_and_topic(self):
        with pytest.raises(ValueError) as exc:
            SourceItem(external_id="", title=" ", topic="")
        message = str(exc.value)
        assert "external_id" in message
        assert "title" in message
        assert "topic" in message

    def test_from_dict_restores_timestamp(self):
        item = SourceItem.from_dict({
            "external_id": 123,
            "title": "A post",
            "topic": "startups",
            "fetched_at": "2024-11-28T09:12:44Z",
        })
        assert item.external_id == "123"
        assert item.fetched_at == datetime(2024, 11, 28, 9, 12, 44, tzinfo=timezone.utc)
        assert item.body is None
        assert item.payload == {}

    def test_to_dict_round_trips_through_from_dict(self, sample_items):
        item = sample_items[0]
        assert SourceItem.from_dict(item.to_dict()) == item


class TestScores:

    def test_bands_match_thresholds(self):
        for score, band in EXPECTED["scores"]["bands"].items():
            assert score_band(score) == band, score

    @pytest.mark.parametrize("score", [-1, 101])
    def test_pain_point_rejects_out_of_range(self, score):
        with pytest.raises(ValueError):
            PainPoint(text="Something hurts", score=score)

    def test_pain_point_rejects_non_integer_score(self):
        with pytest.raises(ValueError):
            PainPoint(text="Something hurts", score=55.5)
        with pytest.raises(ValueError):
            PainPoint(text="Something hurts", score=True)

    def test_concept_rejects_out_of_range(self):
        with pytest.raises(ValueError):
            Concept(title="X", pitch="p", pain_point="pp", score=150)

    def test_draft_rejects_out_of_range(self):
        with pytest.raises(ValueError):
            ConceptDraft(title="X", pitch="p", target_audience="a", score=-5)


class TestConcept:

    def test_from_draft_carries_provenance(self):
        pain_point = PainPoint(text="Reporting is manual", score=75, source_ids=["p1", "p2"])
        draft = ConceptDraft(title="UpdatePilot", pitch="Pitch", target_audience="Founders", score=68)

        concept = Concept.from_draft(draft, pain_point, topic="startups", run_id="run-1")

        assert concept.pain_point == "Reporting is manual"
        assert concept.source_ids == ["p1", "p2"]
        assert concept.topic == "startups"
        assert concept.run_id == "run-1"
        assert concept.id is None
        assert concept.band == "niche"

    def test_from_dict_keeps_identity_fields(self):
        concept = Concept(
            title="UpdatePilot", pitch="Pitch", pain_point="Pain", score=68,
            source_ids=["p1"], topic="startups", run_id="run-1", id="rec1",
        )
        restored = Concept.from_dict(concept.to_dict())
        assert restored.id == "rec1"
        assert restored.run_id == "run-1"
        assert restored.created_at == concept.created_at


class TestTopic:

    def test_new_topic_is_never_synced(self):
        assert Topic(name="startups").never_synced

    def test_from_dict_parses_last_synced(self):
        topic = Topic.from_dict({"name": "startups", "last_synced_at": "2024-12-01T12:00:00+00:00"})
        assert not topic.never_synced
        assert topic.last_synced_at.tzinfo is not None


class TestSubscriber:

    def test_wants_everything_only_with_all_tag(self):
        assert Subscriber(email="a@example.com", subscription_topics=["all"]).wants_everything
        assert not Subscriber(email="b@example.com", subscription_topics=["saas"]).wants_everything
        assert not Subscriber(email="c@example.com").wants_everything

    def test_toggled_adds_then_removes(self):
        subscriber = Subscriber(email="a@example.com", subscription_topics=["saas"], id="rec1")

        added = subscriber.toggled("startups")
        assert added.subscription_topics == ["saas", "startups"]
        assert added.id == "rec1"

        removed = added.toggled("startups")
        assert removed.subscription_topics == ["saas"]

    def test_toggled_does_not_mutate_original(self):
        subscriber = Subscriber(email="a@example.com", subscription_topics=["saas"])
        subscriber.toggled("startups")
        assert subscriber.subscription_topics == ["saas"]
