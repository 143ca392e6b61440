"""
Analysis module.

LLM-backed stages: pain point extraction and concept generation.
"""

from ideagen.analysis.pain_points import analyze, coerce_score, parse_pain_points
from ideagen.analysis.concepts import generate, generate_all, parse_concept

__all__ = [
    "analyze",
    "coerce_score",
    "parse_pain_points",
    "generate",
    "generate_all",
    "parse_concept",
]
