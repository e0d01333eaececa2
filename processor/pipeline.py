"""
Opportunity Scoring Pipeline - Tiered orchestrator.

Pipeline Flow:
1. Tier 1 (DB): filtered catalog query, free
2. Tier 2 (Rule): deterministic rule score, keep the best above a threshold
3. Tier 3 (Context): cached investor/property/market summaries, cheap
4. Tier 4 (AI): one batched LLM call for the top-K survivors, metered

Stages run strictly in order. Within a stage, independent lookups run
concurrently. Nothing below ConfigurationInvalid escapes to the caller:
failures degrade to fewer candidates or rule-derived scores.
"""
import time
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from loguru import logger

from config import settings as app_settings, Settings
from constants import ScoreTier
from processor.context import (
    ContextCache,
    MarketContextCache,
    compress_investor_context,
    compress_property_context,
)
from processor.context.models import CompressedInvestorContext, CompressedPropertyContext
from processor.errors import CollaboratorQueryFailed
from processor.models import (
    Investor,
    OpportunitySearchResult,
    Property,
    PropertyFilters,
    ScoredOpportunity,
    combine_scores,
)
from processor.rules import RuleScore, RuleScorer
from processor.rules import quick_score as rule_quick_score
from processor.scorer import BatchItem, BatchScorer
from processor.store import OpportunityStore
from utils.events import EventEmitter, default_emitter


QUICK_SCORE_QUERY_LIMIT = 100
QUICK_SCORE_DEFAULT_LIMIT = 20


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class OpportunityScorer:
    """
    Main scoring orchestrator.

    Owns no shared state itself; the cache, ledger and rate limiter it
    reaches through its collaborators are shared across requests.
    """

    def __init__(
        self,
        store: OpportunityStore,
        rule_scorer: Optional[RuleScorer] = None,
        context_cache: Optional[ContextCache] = None,
        market_cache: Optional[MarketContextCache] = None,
        batch_scorer: Optional[BatchScorer] = None,
        settings: Optional[Settings] = None,
        emitter: Optional[EventEmitter] = None,
    ):
        self.store = store
        self.settings = settings or app_settings
        self.rule_scorer = rule_scorer or RuleScorer()
        self.context_cache = context_cache or ContextCache()
        self.market_cache = market_cache or MarketContextCache(self.context_cache, store)
        self.emitter = emitter or default_emitter
        self._batch_scorer = batch_scorer

    @property
    def batch_scorer(self) -> BatchScorer:
        # Built on first AI-tier use
        if self._batch_scorer is None:
            self._batch_scorer = BatchScorer(settings=self.settings, emitter=self.emitter)
        return self._batch_scorer

    async def score_opportunities(
        self,
        investor: Investor,
        org_id: str,
        filters: Optional[PropertyFilters] = None,
        max_to_score: Optional[int] = None,
    ) -> OpportunitySearchResult:
        """
        Rank catalog listings for an investor.

        Args:
            investor: Investor with a parsed mandate (or none)
            org_id: Organization whose catalog and market data are used
            filters: Explicit filters; unset fields fall back to the mandate
            max_to_score: AI tier size override (defaults to TIER4_AI_SCORE_MAX)

        Returns:
            OpportunitySearchResult with AI-tier and rule-tier items merged
        """
        start = time.monotonic()

        # ============================================
        # Tier 1: Database filtering
        # ============================================
        db_filters = PropertyFilters.from_mandate(
            investor.mandate, filters, limit=self.settings.TIER1_DB_FILTER_MAX
        )
        candidates = await self._query_catalog(org_id, db_filters)
        logger.info(f"Tier 1: {len(candidates)} candidates from DB")

        if not candidates:
            return OpportunitySearchResult(
                investor_id=investor.id,
                opportunities=[],
                total_candidates=0,
                tiers={ScoreTier.DB.value: 0, ScoreTier.RULE.value: 0, ScoreTier.AI.value: 0},
                scored_at=_now_iso(),
            )

        # ============================================
        # Tier 2: Rule scoring
        # ============================================
        rule_scored = self._rule_tier(candidates, investor)
        logger.info(f"Tier 2: {len(rule_scored)} passed rule scoring")

        # ============================================
        # Tier 3: Context
        # ============================================
        investor_context = self._investor_context(investor)

        ai_limit = max_to_score if max_to_score is not None else self.settings.TIER4_AI_SCORE_MAX
        # The batch scorer drops anything past its cap, so those stay rule-tier
        ai_limit = min(max(ai_limit, 0), self.settings.BATCH_SIZE_MAX)
        top_for_ai = rule_scored[:ai_limit]
        remaining = rule_scored[ai_limit:]

        areas = [prop.area for prop, _ in rule_scored]
        market_contexts = await self.market_cache.get_batch(org_id, areas) if rule_scored else {}

        # ============================================
        # Tier 4: AI scoring
        # ============================================
        logger.info(f"Tier 4: Sending {len(top_for_ai)} to AI scoring")
        items = [
            BatchItem(
                property_id=prop.id,
                context=self._property_context(prop),
                market=market_contexts.get(prop.area),
                rule_score=rule.score,
            )
            for prop, rule in top_for_ai
        ]
        ai_scores = await self.batch_scorer.score_batch(investor_context, items) if items else []

        ai_items: List[ScoredOpportunity] = []
        for index, (prop, rule) in enumerate(top_for_ai):
            ai_score = ai_scores[index] if index < len(ai_scores) else None
            genuine = ai_score is not None and not ai_score.is_fallback
            ai_items.append(ScoredOpportunity(
                property=prop,
                rule_score=rule.score,
                rule_reasons=rule.reasons,
                ai_score=ai_score,
                combined_score=combine_scores(rule.score, ai_score.ai_score if ai_score else None),
                tier=ScoreTier.AI if genuine else ScoreTier.RULE,
            ))

        rule_items = [
            ScoredOpportunity(
                property=prop,
                rule_score=rule.score,
                rule_reasons=rule.reasons,
                ai_score=None,
                combined_score=rule.score,
                tier=ScoreTier.RULE,
            )
            for prop, rule in remaining
        ]

        # Stable sort: at equal scores AI-tier items stay ahead of rule-only ones
        opportunities = sorted(ai_items + rule_items, key=lambda o: -o.combined_score)

        duration_ms = int((time.monotonic() - start) * 1000)
        logger.info(f"Scored opportunities for investor {investor.id} in {duration_ms}ms")

        return OpportunitySearchResult(
            investor_id=investor.id,
            opportunities=opportunities,
            total_candidates=len(candidates),
            tiers={
                ScoreTier.DB.value: len(candidates),
                ScoreTier.RULE.value: len(rule_scored),
                ScoreTier.AI.value: len(top_for_ai),
            },
            scored_at=_now_iso(),
        )

    async def quick_score(
        self,
        investor: Investor,
        org_id: str,
        filters: Optional[PropertyFilters] = None,
        property_ids: Optional[List[str]] = None,
        limit: Optional[int] = None,
    ) -> Tuple[List[ScoredOpportunity], int]:
        """
        Rule-only ranking with no external call.

        `property_ids` takes precedence over `filters`; filters are used as
        given, not merged with the mandate.

        Returns:
            (top `limit` opportunities with score > 0, number of candidates)
        """
        if property_ids:
            query = PropertyFilters(property_ids=property_ids, status="all", limit=QUICK_SCORE_QUERY_LIMIT)
        else:
            query = filters or PropertyFilters()
            query = PropertyFilters(
                areas=query.areas,
                property_types=query.property_types,
                min_price=query.min_price,
                max_price=query.max_price,
                min_yield=query.min_yield,
                status=query.status or "available",
                limit=QUICK_SCORE_QUERY_LIMIT,
            )

        candidates = await self._query_catalog(org_id, query)
        ranked = rule_quick_score(investor, candidates, self.rule_scorer)
        limit = limit if limit is not None else QUICK_SCORE_DEFAULT_LIMIT

        opportunities = [
            ScoredOpportunity(
                property=prop,
                rule_score=rule.score,
                rule_reasons=rule.reasons,
                combined_score=rule.score,
                tier=ScoreTier.RULE,
            )
            for prop, rule in ranked[:limit]
        ]
        return opportunities, len(candidates)

    # ============================================
    # HELPERS
    # ============================================

    async def _query_catalog(self, org_id: str, filters: PropertyFilters) -> List[Property]:
        try:
            return await self._list_properties(org_id, filters)
        except CollaboratorQueryFailed as e:
            logger.error(f"{e}: {e.__cause__}")
            self.emitter.increment("catalog.query_failed")
            return []

    async def _list_properties(self, org_id: str, filters: PropertyFilters) -> List[Property]:
        try:
            return list(await self.store.list_properties(org_id, filters))
        except Exception as e:
            raise CollaboratorQueryFailed("Catalog query failed") from e

    def _rule_tier(self, candidates: List[Property], investor: Investor) -> List[Tuple[Property, RuleScore]]:
        scored = [(prop, self.rule_scorer.score_for_investor(prop, investor)) for prop in candidates]
        kept = [pair for pair in scored if pair[1].score >= self.settings.TIER2_RULE_SCORE_MIN]
        kept.sort(key=lambda pair: -pair[1].score)
        return kept[: self.settings.TIER2_RULE_SCORE_KEEP]

    def _investor_context(self, investor: Investor) -> CompressedInvestorContext:
        context = self.context_cache.get_cached_investor_context(investor.id)
        if context is None:
            context = compress_investor_context(investor)
            self.context_cache.set_cached_investor_context(context)
        return context

    def _property_context(self, prop: Property) -> CompressedPropertyContext:
        context = self.context_cache.get_cached_property_context(prop.id)
        if context is None:
            context = compress_property_context(prop)
            self.context_cache.set_cached_property_context(context)
        return context
