import pytest

from config import load_settings
from constants import FallbackReason, ScoreTier
from processor import OpportunityScorer, PropertyFilters, combine_scores
from processor.budget import BudgetLedger, DailyBudgets, RateLimiter
from processor.context import ContextCache, MarketContextCache
from processor.models import Investor, Mandate, MarketSnapshot, Property
from processor.scorer import BatchScorer
from tests.fakes import FakeLLMClient, FakeStore, score_entry


def _pipeline(store, client, clock, settings, emitter, ledger=None):
    cache = ContextCache(clock=clock, settings=settings)
    batch_scorer = BatchScorer(
        client=client,
        ledger=ledger or BudgetLedger(DailyBudgets(), clock=clock, emitter=emitter),
        limiter=RateLimiter(clock=clock, settings=settings),
        settings=settings,
        emitter=emitter,
    )
    return OpportunityScorer(
        store=store,
        context_cache=cache,
        market_cache=MarketContextCache(cache, store),
        batch_scorer=batch_scorer,
        settings=settings,
        emitter=emitter,
    )


def test_combine_scores_rounds_half_up():
    assert combine_scores(48, 80) == 67       # 19.2 + 48
    assert combine_scores(50, 75) == 65       # 20 + 45
    assert combine_scores(45, 70) == 60       # 18 + 42
    assert combine_scores(41, 70) == 58       # 16.4 + 42 = 58.4
    assert combine_scores(43, 71) == 60       # 17.2 + 42.6 = 59.8
    assert combine_scores(55, None) == 55


@pytest.mark.asyncio
async def test_end_to_end_scenario(downtown_investor, scenario_properties, clock, test_settings, emitter):
    store = FakeStore(properties=scenario_properties)
    client = FakeLLMClient([{"scores": [score_entry("A", 80)]}])
    scorer = _pipeline(store, client, clock, test_settings, emitter)

    result = await scorer.score_opportunities(downtown_investor, "org-1")

    assert result.tiers == {"db": 3, "rule": 1, "ai": 1}
    assert result.total_candidates == 3
    assert [o.property.id for o in result.opportunities] == ["A"]

    top = result.opportunities[0]
    assert top.rule_score == 48
    assert top.tier == ScoreTier.AI
    assert top.combined_score == combine_scores(48, 80)
    assert len(client.requests) == 1


@pytest.mark.asyncio
async def test_mandate_drives_catalog_filters(downtown_investor, clock, test_settings, emitter):
    store = FakeStore()
    scorer = _pipeline(store, FakeLLMClient(), clock, test_settings, emitter)

    await scorer.score_opportunities(downtown_investor, "org-1", PropertyFilters(status=None, min_yield=5))

    filters = store.last_filters
    assert filters.areas == ["Downtown"]
    assert filters.min_price == 1_000_000
    assert filters.max_price == 5_000_000
    assert filters.min_yield == 5
    assert filters.status == "available"
    assert filters.limit == test_settings.TIER1_DB_FILTER_MAX


@pytest.mark.asyncio
async def test_empty_catalog_makes_no_ai_call(downtown_investor, clock, test_settings, emitter):
    client = FakeLLMClient()
    scorer = _pipeline(FakeStore(), client, clock, test_settings, emitter)

    result = await scorer.score_opportunities(downtown_investor, "org-1")

    assert result.opportunities == []
    assert result.tiers == {"db": 0, "rule": 0, "ai": 0}
    assert client.requests == []


@pytest.mark.asyncio
async def test_catalog_failure_degrades_to_empty(downtown_investor, clock, test_settings, emitter):
    store = FakeStore()
    store.fail_properties = True
    scorer = _pipeline(store, FakeLLMClient(), clock, test_settings, emitter)

    result = await scorer.score_opportunities(downtown_investor, "org-1")

    assert result.opportunities == []
    assert result.total_candidates == 0
    assert emitter.count("catalog.query_failed") == 1


def _downtown(prop_id: str, price: float, **kwargs) -> Property:
    return Property(id=prop_id, area="Downtown", type="apartment", price=price, **kwargs)


@pytest.mark.asyncio
async def test_ai_tier_ranked_ahead_on_ties(clock, test_settings, emitter):
    investor = Investor(
        id="inv-2",
        name="Tie",
        mandate=Mandate(
            preferred_areas=["Downtown"],
            property_types=["apartment"],
            min_investment=1_000_000,
            max_investment=5_000_000,
        ),
    )
    # All three score 80 on rules; only the first is sent to the model
    props = [_downtown("x", 2_000_000), _downtown("y", 3_000_000), _downtown("z", 4_000_000)]
    store = FakeStore(properties=props)
    client = FakeLLMClient([{"scores": [score_entry("x", 80)]}])
    scorer = _pipeline(store, client, clock, test_settings, emitter)

    result = await scorer.score_opportunities(investor, "org-1", max_to_score=1)

    assert [o.property.id for o in result.opportunities] == ["x", "y", "z"]
    assert [o.combined_score for o in result.opportunities] == [80, 80, 80]
    assert [o.tier for o in result.opportunities] == [ScoreTier.AI, ScoreTier.RULE, ScoreTier.RULE]
    assert result.tiers["ai"] == 1


@pytest.mark.asyncio
async def test_ai_score_reorders_results(clock, test_settings, emitter):
    investor = Investor(
        id="inv-3",
        name="Reorder",
        mandate=Mandate(preferred_areas=["Downtown"], property_types=["apartment"]),
    )
    props = [_downtown("a", 1_000_000), _downtown("b", 1_000_000)]
    client = FakeLLMClient([{"scores": [score_entry("a", 20), score_entry("b", 95)]}])
    scorer = _pipeline(FakeStore(properties=props), client, clock, test_settings, emitter)

    result = await scorer.score_opportunities(investor, "org-1")

    assert [o.property.id for o in result.opportunities] == ["b", "a"]


@pytest.mark.asyncio
async def test_budget_exhausted_keeps_rule_scores(downtown_investor, scenario_properties, clock, test_settings, emitter):
    ledger = BudgetLedger(DailyBudgets(scoring=5), clock=clock, emitter=emitter)
    client = FakeLLMClient()
    scorer = _pipeline(FakeStore(properties=scenario_properties), client, clock, test_settings, emitter, ledger)

    result = await scorer.score_opportunities(downtown_investor, "org-1")

    top = result.opportunities[0]
    assert client.requests == []
    assert top.tier == ScoreTier.RULE
    assert top.ai_score.fallback_reason == FallbackReason.BUDGET_EXCEEDED
    # fallback ai_score equals the rule score, so the blend is unchanged
    assert top.combined_score == 48
    assert result.tiers["ai"] == 1


@pytest.mark.asyncio
async def test_market_context_reaches_prompt(downtown_investor, scenario_properties, clock, test_settings, emitter):
    store = FakeStore(
        properties=scenario_properties,
        snapshots={"Downtown": MarketSnapshot(area="Downtown", sentiment="bullish", top_news="Metro extension approved")},
    )
    client = FakeLLMClient([{"scores": [score_entry("A", 80)]}])
    scorer = _pipeline(store, client, clock, test_settings, emitter)

    await scorer.score_opportunities(downtown_investor, "org-1")

    assert "Market: bullish, stable, Metro extension approved" in client.requests[0].user_prompt
    assert store.calls["get_market_snapshot"] == 1


@pytest.mark.asyncio
async def test_repeat_requests_reuse_cached_contexts(downtown_investor, scenario_properties, clock, test_settings, emitter):
    store = FakeStore(
        properties=scenario_properties,
        snapshots={"Downtown": MarketSnapshot(area="Downtown")},
    )
    client = FakeLLMClient([{"scores": [score_entry("A", 80)]}, {"scores": [score_entry("A", 82)]}])
    scorer = _pipeline(store, client, clock, test_settings, emitter)

    await scorer.score_opportunities(downtown_investor, "org-1")
    await scorer.score_opportunities(downtown_investor, "org-1")

    assert store.calls["get_market_snapshot"] == 1
    assert scorer.context_cache.stats().hits >= 3


@pytest.mark.asyncio
async def test_quick_score_never_calls_model(downtown_investor, scenario_properties, clock, test_settings, emitter):
    client = FakeLLMClient()
    scorer = _pipeline(FakeStore(properties=scenario_properties), client, clock, test_settings, emitter)

    opportunities, candidates = await scorer.quick_score(downtown_investor, "org-1")

    assert candidates == 3
    assert [o.property.id for o in opportunities] == ["A", "B", "C"]
    assert [o.rule_score for o in opportunities] == [48, 24, 24]
    assert all(o.ai_score is None for o in opportunities)
    assert client.requests == []


@pytest.mark.asyncio
async def test_quick_score_by_ids_ignores_status(downtown_investor, scenario_properties, clock, test_settings, emitter):
    store = FakeStore(properties=scenario_properties)
    scorer = _pipeline(store, FakeLLMClient(), clock, test_settings, emitter)

    opportunities, _ = await scorer.quick_score(downtown_investor, "org-1", property_ids=["A"], limit=1)

    assert store.last_filters.property_ids == ["A"]
    assert store.last_filters.status == "all"
    assert len(opportunities) == 1


@pytest.fixture
def keyless_settings():
    return load_settings(OPENAI_API_KEY="", LLM_PROVIDER="openai", LLM_LOG_CALLS=False)


@pytest.mark.asyncio
async def test_missing_api_key_degrades_to_rule_scores(downtown_investor, scenario_properties, keyless_settings, emitter):
    scorer = OpportunityScorer(store=FakeStore(properties=scenario_properties), settings=keyless_settings, emitter=emitter)

    result = await scorer.score_opportunities(downtown_investor, "org-1")

    [top] = result.opportunities
    assert top.tier == ScoreTier.RULE
    assert top.ai_score.fallback_reason == FallbackReason.UPSTREAM_UNAVAILABLE
    assert top.combined_score == 48


@pytest.mark.asyncio
async def test_no_rule_survivors_skips_ai_tier(downtown_investor, scenario_properties, keyless_settings, emitter):
    # B and C both score 24, under the rule threshold
    store = FakeStore(properties=scenario_properties[1:])
    scorer = OpportunityScorer(store=store, settings=keyless_settings, emitter=emitter)

    result = await scorer.score_opportunities(downtown_investor, "org-1")

    assert result.opportunities == []
    assert result.tiers == {"db": 2, "rule": 0, "ai": 0}
    assert scorer._batch_scorer is None


def _twelve_downtown():
    investor = Investor(
        id="inv-4",
        name="Wide",
        mandate=Mandate(preferred_areas=["Downtown"], property_types=["apartment"]),
    )
    return investor, [_downtown(f"d{i}", 1_000_000) for i in range(12)]


@pytest.mark.asyncio
async def test_ai_tier_capped_at_batch_size(clock, test_settings, emitter):
    investor, props = _twelve_downtown()
    client = FakeLLMClient([{"scores": [score_entry(f"d{i}", 90) for i in range(10)]}])
    scorer = _pipeline(FakeStore(properties=props), client, clock, test_settings, emitter)

    result = await scorer.score_opportunities(investor, "org-1", max_to_score=15)

    assert result.tiers["ai"] == test_settings.BATCH_SIZE_MAX
    assert sum(o.tier == ScoreTier.AI for o in result.opportunities) == 10
    assert len(result.opportunities) == 12
    assert emitter.count("batch.truncated") == 0


@pytest.mark.asyncio
async def test_negative_max_to_score_sends_nothing(clock, test_settings, emitter):
    investor, props = _twelve_downtown()
    client = FakeLLMClient()
    scorer = _pipeline(FakeStore(properties=props), client, clock, test_settings, emitter)

    result = await scorer.score_opportunities(investor, "org-1", max_to_score=-3)

    assert result.tiers["ai"] == 0
    assert client.requests == []
    assert all(o.tier == ScoreTier.RULE for o in result.opportunities)
    assert len(result.opportunities) == 12
