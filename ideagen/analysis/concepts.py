"""
Generation stage: one product concept per pain point.
"""

import json
from typing import List, Optional

from ideagen.analysis.pain_points import coerce_score
from ideagen.errors import GenerationSchemaError
from ideagen.models import Concept, ConceptDraft, PainPoint
from ideagen.services.llm import LLMService
from ideagen.services.prompts import IDEATE_SYSTEM_PROMPT, build_ideation_message


REQUIRED_TEXT_FIELDS = ("title", "pitch", "target_audience")


def parse_concept(raw: str) -> ConceptDraft:
    """
    Validate a generation response.

    Raises:
        GenerationSchemaError: If a required field is missing or mistyped.
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise GenerationSchemaError(f"Response is not valid JSON: {e}", raw=raw) from e

    if not isinstance(data, dict):
        raise GenerationSchemaError("Response must be a JSON object", raw=raw)

    missing = [
        name for name in REQUIRED_TEXT_FIELDS
        if not isinstance(data.get(name), str) or not data[name].strip()
    ]
    if "score" not in data:
        missing.append("score")
    if missing:
        raise GenerationSchemaError(
            f"Missing required fields: {', '.join(missing)}", raw=raw
        )

    try:
        score = coerce_score(data["score"], "concept", GenerationSchemaError)
    except GenerationSchemaError as e:
        e.raw = raw
        raise

    return ConceptDraft(
        title=data["title"].strip(),
        pitch=data["pitch"].strip(),
        target_audience=data["target_audience"].strip(),
        score=score,
    )


def generate(llm: LLMService, pain_point_text: str) -> ConceptDraft:
    """
    Synthesize one concept for a pain point.

    Raises:
        GenerationSchemaError: On structurally invalid output.
        LLMServiceError: On transport failure.
    """
    raw = llm.complete_json(IDEATE_SYSTEM_PROMPT, build_ideation_message(pain_point_text), temperature=0.8)
    return parse_concept(raw)


def generate_all(
    llm: LLMService,
    pain_points: List[PainPoint],
    topic: Optional[str] = None,
    run_id: Optional[str] = None,
    verbose: bool = False,
) -> List[Concept]:
    """
    Generate exactly one concept per pain point, in order.

    Any failure aborts the whole batch so nothing partial reaches persistence.
    """
    concepts = []
    for pain_point in pain_points:
        draft = generate(llm, pain_point.text)
        concepts.append(Concept.from_draft(draft, pain_point, topic=topic, run_id=run_id))
        if verbose:
            print(f"[generate] {draft.title} ({draft.score}/100)")
    return concepts
