"""
Analysis stage: source items -> scored pain points.

The LLM answers in JSON mode with {"pain_points": [{text, score, source_ids}]}.
Output is validated strictly. A single malformed entry fails the whole
analysis; entries are never dropped to make the rest fit.
"""

import json
from typing import Any, List, Set

from ideagen.errors import AnalysisSchemaError
from ideagen.models import PainPoint, SourceItem, score_in_range
from ideagen.services.llm import LLMService
from ideagen.services.prompts import ANALYZE_SYSTEM_PROMPT, build_analysis_message


def coerce_score(value: Any, where: str, error_cls=AnalysisSchemaError) -> int:
    """
    Accept an int or float score on the 0-100 scale and return it as an int.

    Raises:
        error_cls: If the value is not numeric or out of range.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise error_cls(f"{where}: score must be a number, got {value!r}")
    if not score_in_range(value):
        raise error_cls(f"{where}: score {value} is outside 0-100")
    return int(round(value))


def parse_pain_points(raw: str, known_ids: Set[str]) -> List[PainPoint]:
    """
    Validate an analysis response.

    source_ids that do not name one of the analyzed posts are discarded, so
    provenance is always a subset of the input. A missing or non-list
    source_ids becomes [].

    Raises:
        AnalysisSchemaError: If the response does not match the schema.
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise AnalysisSchemaError(f"Response is not valid JSON: {e}", raw=raw) from e

    if not isinstance(data, dict) or not isinstance(data.get("pain_points"), list):
        raise AnalysisSchemaError("Response must be an object with a 'pain_points' array", raw=raw)

    pain_points = []
    for index, entry in enumerate(data["pain_points"]):
        where = f"pain_points[{index}]"
        if not isinstance(entry, dict):
            raise AnalysisSchemaError(f"{where} is not an object", raw=raw)

        text = entry.get("text")
        if not isinstance(text, str) or not text.strip():
            raise AnalysisSchemaError(f"{where}: 'text' must be a non-empty string", raw=raw)

        if "score" not in entry:
            raise AnalysisSchemaError(f"{where}: 'score' is missing", raw=raw)
        try:
            score = coerce_score(entry["score"], where)
        except AnalysisSchemaError as e:
            e.raw = raw
            raise

        source_ids = entry.get("source_ids")
        if not isinstance(source_ids, list):
            source_ids = []
        cited = []
        for source_id in source_ids:
            source_id = str(source_id)
            if source_id in known_ids and source_id not in cited:
                cited.append(source_id)

        pain_points.append(PainPoint(text=text.strip(), score=score, source_ids=cited))

    return pain_points


def analyze(llm: LLMService, items: List[SourceItem], verbose: bool = False) -> List[PainPoint]:
    """
    Extract scored pain points from a batch of posts.

    Args:
        llm: LLM backend.
        items: Posts of one run; their external ids become provenance.
        verbose: Print progress.

    Returns:
        Pain points (possibly empty). Empty input makes no LLM call.

    Raises:
        AnalysisSchemaError: On structurally invalid output.
        LLMServiceError: On transport failure.
    """
    if not items:
        return []

    raw = llm.complete_json(ANALYZE_SYSTEM_PROMPT, build_analysis_message(items), temperature=0.7)
    pain_points = parse_pain_points(raw, {item.external_id for item in items})

    if verbose:
        print(f"[analysis] {len(pain_points)} pain points from {len(items)} posts")
        for pp in pain_points:
            print(f"[analysis]   {pp.score:3d} ({pp.band}) {pp.text[:70]}")

    return pain_points
