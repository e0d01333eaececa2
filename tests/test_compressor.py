from datetime import date

from constants import PriceDirection, Sentiment
from processor.context import (
    abbreviate_area,
    build_combined_context,
    compress_investor_context,
    compress_market_context,
    compress_property_context,
    truncate,
)
from processor.context.compressor import to_fixed
from processor.models import Investor, Mandate, MarketSnapshot, Property


def test_abbreviate_area_uses_table_then_first_word():
    assert abbreviate_area("Dubai Marina") == "Marina"
    assert abbreviate_area("Jumeirah Village Circle") == "JVC"
    assert abbreviate_area("Al Barsha South") == "Al"
    assert abbreviate_area("dubai marina") == "dubai"


def test_truncate_ends_with_ellipsis_within_budget():
    assert truncate("short", 10) == "short"
    assert truncate("abcdefghij", 8) == "abcde..."
    assert len(truncate("x" * 500, 150)) == 150


def test_investor_summary(downtown_investor):
    context = compress_investor_context(downtown_investor)
    assert context.summary_text == "Core Plus, 6-8% yield, Downtown, AED 1-5M, medium risk"
    assert context.key_areas == ["Downtown"]
    assert context.budget_range == "1000000-5000000"
    assert context.strategy == "Core Plus"


def test_investor_summary_respects_budget():
    investor = Investor(
        id="i",
        name="Long",
        mandate=Mandate(
            preferred_areas=["Dubai Marina", "Business Bay", "Palm Jumeirah", "Dubai Hills Estate"],
            strategy="Value add with a very long description " * 5,
        ),
    )
    context = compress_investor_context(investor, max_chars=40)
    assert len(context.summary_text) == 40
    assert context.summary_text.endswith("...")
    # only the first three areas are kept
    assert context.key_areas == ["Dubai Marina", "Business Bay", "Palm Jumeirah"]


def test_investor_without_mandate():
    context = compress_investor_context(Investor(id="i", name="Solo"))
    assert context.summary_text == "Solo: no mandate defined, opportunistic"
    assert context.budget_range == "flexible"


def test_property_summary():
    prop = Property(
        id="p1",
        area="Dubai Marina",
        type="apartment",
        price=4_200_000,
        size=2100,
        bedrooms=3,
        yield_estimate=8.5,
    )
    context = compress_property_context(prop, price_vs_market=0.05, competing_count=15)
    assert context.summary_text == "Marina 3BR, AED 4.2M, 2100sqft, 8.5% yield, +5% vs DLD"
    assert context.price_vs_market == "+5% vs DLD"
    assert context.competition_level.value == "medium"


def test_property_summary_without_market_data():
    prop = Property(id="p2", area="Business Bay", type="commercial", price=900_000)
    context = compress_property_context(prop)
    assert context.summary_text == "BizBay Comm, AED 0.9M"
    assert context.price_vs_market == "no DLD data"
    assert context.yield_estimate == "unknown"


def test_market_summary():
    snapshot = MarketSnapshot(
        area="Dubai Marina",
        median_price_psf=2450,
        price_change_qoq=0.05,
        gross_yield=0.061,
        sentiment="Bullish",
        top_news="Record quarter for waterfront launches",
        as_of_date=date(2026, 3, 1),
    )
    context = compress_market_context(snapshot)
    assert context.summary_text == "Marina:, AED 2,450/psf, +5% QoQ, 6.1% yield, bullish"
    assert context.price_direction == PriceDirection.RISING
    assert context.sentiment == Sentiment.BULLISH
    assert context.key_signal == "price rising 5%"
    assert context.computed_at == "2026-03-01"


def test_market_small_change_is_stable():
    context = compress_market_context(MarketSnapshot(area="JVC", price_change_qoq=0.02))
    assert context.price_direction == PriceDirection.STABLE
    assert "stable QoQ" in context.summary_text
    assert context.sentiment == Sentiment.NEUTRAL


def test_market_prefers_stored_summary_text():
    snapshot = MarketSnapshot(area="JVC", summary_text="Stored summary " * 30)
    context = compress_market_context(snapshot, max_chars=50)
    assert len(context.summary_text) == 50
    assert context.summary_text.startswith("Stored summary")


def test_combined_context_lists_properties_with_market(downtown_investor):
    investor = compress_investor_context(downtown_investor)
    prop = compress_property_context(Property(id="p1", area="Downtown", type="apartment", price=2_000_000))
    market = compress_market_context(MarketSnapshot(area="Downtown", sentiment="bearish"))

    combined = build_combined_context(investor, [prop], {"Downtown": market})
    lines = combined.split("\n")
    assert lines[0] == f"INVESTOR: {investor.summary_text}"
    assert lines[3] == "1. [p1] Downtown Res, AED 2.0M | Market: bearish, stable"


def test_money_rounds_halves_up():
    investor = Investor(
        id="i",
        name="Halves",
        mandate=Mandate(preferred_areas=["Downtown"], min_investment=2_500_000, max_investment=4_500_000),
    )
    context = compress_investor_context(investor)
    assert "AED 3-5M" in context.summary_text
    assert context.budget_range == "2500000-4500000"

    prop = Property(id="p3", area="Downtown", type="apartment", price=4_250_000)
    assert compress_property_context(prop).summary_text == "Downtown Res, AED 4.3M"


def test_to_fixed_matches_half_up_text():
    assert to_fixed(0.5) == "1"
    assert to_fixed(2.5) == "3"
    assert to_fixed(4.25, 1) == "4.3"
    assert to_fixed(2.0, 1) == "2.0"
    assert to_fixed(1_000_000) == "1000000"
