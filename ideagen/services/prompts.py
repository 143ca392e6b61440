"""
Prompts for the LLM stages.

Both system prompts demand a bare JSON object; the requests are sent in JSON
mode, so anything else is treated as a schema error downstream.
"""

from typing import List

from ideagen.models import SourceItem


# Posts are tagged with this marker so pain points can cite their sources
SOURCE_ID_MARKER = "SOURCE_ID"

# Bodies are truncated to keep a 25-post listing inside the context window
MAX_BODY_CHARS = 1500


ANALYZE_SYSTEM_PROMPT = """You are a researcher analyzing Reddit posts to extract pain points and frustrations.

Your task is to:
1. Read through the provided Reddit posts
2. Identify common pain points, frustrations, and problems mentioned
3. Score each pain point from 0 to 100 based on:
   - Frequency of mention across posts
   - Emotional intensity of the frustration
   - Potential business opportunity (unmet need)

Scoring guide: above 70 is a strong signal, 50-70 a real but niche problem,
30-50 moderate, below 30 weak.

Return your analysis as a JSON object with the following structure:
{
  "pain_points": [
    {
      "text": "A clear, concise description of the pain point",
      "score": 75,
      "source_ids": ["abc123", "def456"]
    }
  ]
}

source_ids must only contain ids given in the [SOURCE_ID: ...] markers.

IMPORTANT: You MUST return valid JSON only. Do not include any markdown formatting, code blocks, or explanatory text. Return pure JSON."""


IDEATE_SYSTEM_PROMPT = """You are a startup founder and product strategist. Your task is to generate a compelling SaaS product idea based on a pain point.

Given a pain point, create a product idea that:
1. Directly addresses the pain point
2. Has a clear value proposition
3. Targets a specific audience
4. Has potential for monetization

Return your idea as a JSON object with the following structure:
{
  "title": "Product name or title",
  "pitch": "A 2-3 sentence pitch explaining the product and how it solves the pain point",
  "target_audience": "Specific description of who would use this product",
  "score": 70
}

The score should be 0-100 based on:
- Market potential
- Feasibility
- Uniqueness
- Problem-solution fit

IMPORTANT: You MUST return valid JSON only. Do not include any markdown formatting, code blocks, or explanatory text. Return pure JSON."""


def build_analysis_message(items: List[SourceItem]) -> str:
    """User message for pain point analysis, one tagged block per post."""
    blocks = []
    for item in items:
        body = (item.body or "No content")[:MAX_BODY_CHARS]
        blocks.append(
            f"[{SOURCE_ID_MARKER}: {item.external_id}]\n"
            f"Title: {item.title}\n"
            f"Content: {body}\n"
            f"Subreddit: {item.topic}"
        )

    posts_text = "\n\n---\n\n".join(blocks)
    return (
        "Analyze the following Reddit posts and extract pain points. Each post is "
        f"prefixed with its {SOURCE_ID_MARKER} - include these IDs in the source_ids "
        f"array for each pain point you identify:\n\n{posts_text}"
    )


def build_ideation_message(pain_point: str) -> str:
    return f"Generate a SaaS product idea for this pain point: {pain_point}"
