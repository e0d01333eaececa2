"""
Scorer Module - Tier 4 AI Scoring

Components:
- BatchScorer: one metered LLM call per batch, fallback on any failure
- AIScoreOutput: validated per-property score
- create_fallback_score: rule-derived stand-in tagged with a FallbackReason
"""

from .models import AIScoreOutput, ScoreFactors, BatchItem, create_fallback_score
from .batch_scorer import BatchScorer, build_batch_prompt, parse_scores

__all__ = [
    "BatchScorer",
    "BatchItem",
    "AIScoreOutput",
    "ScoreFactors",
    "create_fallback_score",
    "build_batch_prompt",
    "parse_scores",
]
