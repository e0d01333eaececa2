"""
Process-wide scoring services.

One ContextCache, BudgetLedger and RateLimiter per process, shared by the
API routes and the scheduler jobs. Deployments running several processes
each get their own copies and will under-count the shared token budget.
"""
import time
from typing import Callable, Optional

from config import settings as app_settings, Settings
from llm import LLMClient
from processor import (
    BatchScorer,
    BudgetLedger,
    ContextCache,
    MarketContextCache,
    OpportunityScorer,
    OpportunityStore,
    RateLimiter,
    RuleScorer,
)
from processor.budget import DailyBudgets
from repositories import SqlOpportunityStore
from utils.events import EventEmitter, default_emitter


class ScoringServices:
    """Owns the shared state and builds the orchestrator on first use."""

    def __init__(
        self,
        store: Optional[OpportunityStore] = None,
        client: Optional[LLMClient] = None,
        clock: Callable[[], float] = time.time,
        settings: Optional[Settings] = None,
        emitter: Optional[EventEmitter] = None,
    ):
        self.settings = settings or app_settings
        self.emitter = emitter or default_emitter
        self.store = store or SqlOpportunityStore()

        self.cache = ContextCache(clock=clock, settings=self.settings)
        self.ledger = BudgetLedger(DailyBudgets.from_settings(self.settings), clock=clock, emitter=self.emitter)
        self.limiter = RateLimiter(clock=clock, settings=self.settings)
        self.market_cache = MarketContextCache(self.cache, self.store)

        self._client = client
        self._scorer: Optional[OpportunityScorer] = None

    @property
    def scorer(self) -> OpportunityScorer:
        """Full pipeline. Without a usable provider key AI-tier items fall back to rule scores."""
        if self._scorer is None:
            batch_scorer = BatchScorer(
                client=self._client,
                ledger=self.ledger,
                limiter=self.limiter,
                settings=self.settings,
                emitter=self.emitter,
            )
            self._scorer = self._build_scorer(batch_scorer)
        return self._scorer

    @property
    def rule_only_scorer(self) -> OpportunityScorer:
        """Orchestrator for quick scoring; never touches the LLM client."""
        return self._scorer or self._build_scorer(batch_scorer=None)

    def _build_scorer(self, batch_scorer: Optional[BatchScorer]) -> OpportunityScorer:
        return OpportunityScorer(
            store=self.store,
            rule_scorer=RuleScorer(),
            context_cache=self.cache,
            market_cache=self.market_cache,
            batch_scorer=batch_scorer,
            settings=self.settings,
            emitter=self.emitter,
        )

    def sweep_cache(self) -> int:
        return self.cache.sweep()

    def roll_over_budget(self) -> None:
        self.ledger.roll_over()


_services: Optional[ScoringServices] = None


def get_services() -> ScoringServices:
    """Get or create the process-wide services."""
    global _services
    if _services is None:
        _services = ScoringServices()
    return _services
