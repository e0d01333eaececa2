"""
Processor package for the Opportunity Scoring Service.

4-Tier Pipeline:
- Tier 1: DB - filtered catalog query
- Tier 2: Rules - deterministic mandate fit score
- Tier 3: Context - compressed, cached investor/property/market summaries
- Tier 4: AI - batched LLM scoring under a daily token budget

Main entry point: OpportunityScorer class
"""

from .models import (
    Mandate,
    Investor,
    Property,
    PropertyFilters,
    MarketSnapshot,
    ScoredOpportunity,
    OpportunitySearchResult,
    combine_scores,
)
from .rules import RuleScorer, RuleScore, quick_score
from .context import ContextCache, MarketContextCache
from .budget import BudgetLedger, RateLimiter
from .scorer import BatchScorer, BatchItem, AIScoreOutput, create_fallback_score
from .store import OpportunityStore
from .pipeline import OpportunityScorer

__all__ = [
    # Pipeline
    "OpportunityScorer",
    "OpportunityStore",
    # Models
    "Mandate",
    "Investor",
    "Property",
    "PropertyFilters",
    "MarketSnapshot",
    "ScoredOpportunity",
    "OpportunitySearchResult",
    "combine_scores",
    # Tier 2
    "RuleScorer",
    "RuleScore",
    "quick_score",
    # Tier 3
    "ContextCache",
    "MarketContextCache",
    # Tier 4
    "BatchScorer",
    "BatchItem",
    "AIScoreOutput",
    "create_fallback_score",
    # Cost control
    "BudgetLedger",
    "RateLimiter",
]
