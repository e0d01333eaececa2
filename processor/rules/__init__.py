"""
Rule Scorer Module - Tier 2 of the Scoring Pipeline

Free, deterministic scoring of a property against an investor mandate.
Used as the Tier 2 filter and as the fallback whenever AI scoring is
unavailable.

Components:
- RuleScorer: Main scoring logic
- RuleScore: Data class for results
- quick_score: Rule-only ranking for fast previews
"""

from .models import RuleScore
from .config import BASE_RULE_SCORE, MAX_RULE_SCORE
from .scorer import RuleScorer, quick_score, parse_range


__all__ = [
    "RuleScorer",
    "RuleScore",
    "quick_score",
    "parse_range",
    "BASE_RULE_SCORE",
    "MAX_RULE_SCORE",
]
