"""
Budget Module - Cost control for metered LLM calls

Components:
- BudgetLedger: daily token ceilings per usage category
- RateLimiter: fixed-window call caps
- estimate_cost / estimate_tokens: re-exported from llm.costs
"""

from llm.costs import estimate_cost, estimate_tokens, COST_PER_1K_TOKENS, DEFAULT_COST_MODEL
from .ledger import BudgetLedger, DailyBudgets, Reservation, SpendDecision, UsageTracker
from .rate_limiter import RateLimiter, RateDecision, RateWindow

__all__ = [
    "BudgetLedger",
    "DailyBudgets",
    "Reservation",
    "SpendDecision",
    "UsageTracker",
    "RateLimiter",
    "RateDecision",
    "RateWindow",
    "estimate_cost",
    "estimate_tokens",
    "COST_PER_1K_TOKENS",
    "DEFAULT_COST_MODEL",
]
