"""
Pain point and concept models.

Flow through a run:

    SourceItem[] -> PainPoint[] -> ConceptDraft (one per pain point) -> Concept (persisted)

PainPoints and ConceptDrafts live only for one workflow run. Concepts are
stored as "ideas" and never modified afterwards.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from ideagen.utils import format_timestamp, parse_timestamp, utc_now


# =============================================================================
# Score Scale
# =============================================================================

SCORE_MIN: int = 0
SCORE_MAX: int = 100

# Lower bounds of the qualitative bands, checked top-down.
# Bands are advisory metadata; nothing is filtered on them.
SCORE_BANDS = (
    (71, "strong"),    # > 70: strong signal
    (50, "niche"),     # 50-70: real but narrow
    (30, "moderate"),
    (SCORE_MIN, "weak"),  # < 30
)


def score_in_range(score) -> bool:
    return SCORE_MIN <= score <= SCORE_MAX


def score_band(score: int) -> str:
    """
    Qualitative band for a 0-100 score.

    >>> score_band(75)
    'strong'
    >>> score_band(40)
    'moderate'
    """
    for lower, band in SCORE_BANDS:
        if score >= lower:
            return band
    return "weak"


def _check_score(score, owner: str) -> None:
    if isinstance(score, bool) or not isinstance(score, int):
        raise ValueError(f"{owner} score must be an integer, got {score!r}")
    if not score_in_range(score):
        raise ValueError(f"{owner} score must be between {SCORE_MIN} and {SCORE_MAX}, got {score}")


# =============================================================================
# Models
# =============================================================================

@dataclass
class PainPoint:
    """
    A synthesized problem statement with its supporting posts.

    Attributes:
        text: The problem statement.
        score: Confidence on the 0-100 scale.
        source_ids: External ids of the SourceItems that evidenced it.
    """

    text: str
    score: int
    source_ids: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.text or not self.text.strip():
            raise ValueError("PainPoint text is required and cannot be empty")
        _check_score(self.score, "PainPoint")

    @property
    def band(self) -> str:
        return score_band(self.score)

    def to_dict(self) -> dict:
        return {"text": self.text, "score": self.score, "source_ids": list(self.source_ids)}

    @classmethod
    def from_dict(cls, data: dict) -> "PainPoint":
        return cls(text=data["text"], score=data["score"], source_ids=list(data.get("source_ids") or []))


@dataclass
class ConceptDraft:
    """Generation output for one pain point, before it is tied to a run."""

    title: str
    pitch: str
    target_audience: str
    score: int

    def __post_init__(self) -> None:
        _check_score(self.score, "Concept")

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "pitch": self.pitch,
            "target_audience": self.target_audience,
            "score": self.score,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ConceptDraft":
        return cls(
            title=data["title"],
            pitch=data["pitch"],
            target_audience=data["target_audience"],
            score=data["score"],
        )


@dataclass
class Concept:
    """
    A persisted product concept (stored as an "idea").

    Attributes:
        title: Product name.
        pitch: Two or three sentence pitch.
        pain_point: Text of the pain point it answers.
        score: 0-100 concept score.
        target_audience: Who it is for.
        source_ids: Provenance, external ids of the supporting posts.
        topic: Topic of the run that produced it.
        run_id: Workflow run that created the row; used as the idempotency key.
        id: Store record id, None until persisted.
        created_at: Creation time.
    """

    title: str
    pitch: str
    pain_point: str
    score: int
    target_audience: str = ""
    source_ids: List[str] = field(default_factory=list)
    topic: Optional[str] = None
    run_id: Optional[str] = None
    id: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        if not self.title or not self.title.strip():
            raise ValueError("Concept title is required and cannot be empty")
        _check_score(self.score, "Concept")

    @classmethod
    def from_draft(
        cls,
        draft: ConceptDraft,
        pain_point: PainPoint,
        topic: Optional[str] = None,
        run_id: Optional[str] = None,
    ) -> "Concept":
        return cls(
            title=draft.title,
            pitch=draft.pitch,
            pain_point=pain_point.text,
            score=draft.score,
            target_audience=draft.target_audience,
            source_ids=list(pain_point.source_ids),
            topic=topic,
            run_id=run_id,
        )

    @property
    def band(self) -> str:
        return score_band(self.score)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "pitch": self.pitch,
            "pain_point": self.pain_point,
            "score": self.score,
            "target_audience": self.target_audience,
            "source_ids": list(self.source_ids),
            "topic": self.topic,
            "run_id": self.run_id,
            "created_at": format_timestamp(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Concept":
        return cls(
            id=data.get("id"),
            title=data["title"],
            pitch=data.get("pitch", ""),
            pain_point=data.get("pain_point", ""),
            score=int(data["score"]),
            target_audience=data.get("target_audience") or "",
            source_ids=list(data.get("source_ids") or []),
            topic=data.get("topic"),
            run_id=data.get("run_id"),
            created_at=parse_timestamp(data.get("created_at")) or utc_now(),
        )

    def __str__(self) -> str:
        return f"{self.title} (score: {self.score}/100)"
