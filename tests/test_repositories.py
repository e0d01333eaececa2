from datetime import date, datetime, timedelta

import pytest
import pytest_asyncio

from database import close_engine, create_tables, get_database_url, get_session, init_engine
from database.models import AIUsageLog, InvestorRecord, Listing
from processor.models import PropertyFilters
from repositories import (
    AIUsageRepository,
    InvestorRepository,
    ListingRepository,
    MarketSummaryRepository,
    SqlOpportunityStore,
)


@pytest_asyncio.fixture
async def db(tmp_path):
    await close_engine()
    await init_engine(get_database_url(tmp_path / "test.db"))
    await create_tables()

    async with get_session() as session:
        await ListingRepository(session).add_all([
            Listing(id="L1", org_id="org-1", area="Downtown", property_type="apartment", price=2_000_000,
                    yield_estimate=7.0),
            Listing(id="L2", org_id="org-1", area="Dubai Marina", property_type="villa", price=9_000_000),
            Listing(id="L3", org_id="org-1", area="downtown", property_type="Apartment", price=3_000_000,
                    status="sold"),
            Listing(id="L4", org_id="org-2", area="Downtown", property_type="apartment", price=2_500_000),
        ])
        await InvestorRepository(session).add(InvestorRecord(
            id="inv-1",
            org_id="org-1",
            name="Gulf Capital",
            mandate={"preferredAreas": ["Downtown"], "minInvestment": "1000000", "riskTolerance": "HIGH"},
            tags=["downtown"],
        ))

    yield
    await close_engine()


async def _list(filters: PropertyFilters, org_id: str = "org-1"):
    async with get_session() as session:
        return await ListingRepository(session).list_properties(org_id, filters)


@pytest.mark.asyncio
async def test_listings_scoped_to_org_and_available(db):
    props = await _list(PropertyFilters())
    assert sorted(p.id for p in props) == ["L1", "L2"]

    async with get_session() as session:
        assert await ListingRepository(session).count() == 4


@pytest.mark.asyncio
async def test_listing_area_and_type_case_insensitive(db):
    props = await _list(PropertyFilters(areas=["DOWNTOWN"], property_types=["apartment"], status="all"))
    assert sorted(p.id for p in props) == ["L1", "L3"]


@pytest.mark.asyncio
async def test_listing_price_yield_and_limit(db):
    assert [p.id for p in await _list(PropertyFilters(max_price=5_000_000))] == ["L1"]
    assert [p.id for p in await _list(PropertyFilters(min_yield=6))] == ["L1"]
    assert len(await _list(PropertyFilters(status="all", limit=1))) == 1


@pytest.mark.asyncio
async def test_listing_by_ids(db):
    props = await _list(PropertyFilters(property_ids=["L3", "L4"], status="all"))
    assert [p.id for p in props] == ["L3"]
    assert props[0].type == "Apartment"


@pytest.mark.asyncio
async def test_store_parses_mandate_once(db):
    store = SqlOpportunityStore()
    investor = await store.get_investor("inv-1")

    assert investor.org_id == "org-1"
    assert investor.tags == ["downtown"]
    assert investor.mandate.preferred_areas == ["Downtown"]
    assert investor.mandate.min_investment == 1_000_000
    assert investor.mandate.risk_tolerance.value == "high"
    assert await store.get_investor("missing") is None


@pytest.mark.asyncio
async def test_market_snapshot_returns_latest_row(db):
    async with get_session() as session:
        repo = MarketSummaryRepository(session)
        await repo.upsert_summary("org-1", "Downtown", date(2026, 3, 1), median_price_per_sqft=2100.0)
        await repo.upsert_summary(
            "org-1", "Downtown", date(2026, 3, 8),
            median_price_per_sqft=2200.0, market_sentiment="bullish", price_change_qoq=0.04,
        )
        # Same day again updates in place
        await repo.upsert_summary("org-1", "Downtown", date(2026, 3, 8), gross_yield_pct=0.06)

    snapshot = await SqlOpportunityStore().get_market_snapshot("org-1", "Downtown")
    assert snapshot.median_price_psf == 2200.0
    assert snapshot.gross_yield == 0.06
    assert snapshot.sentiment == "bullish"
    assert snapshot.as_of_date == date(2026, 3, 8)

    assert await SqlOpportunityStore().get_market_snapshot("org-2", "Downtown") is None


@pytest.mark.asyncio
async def test_upsert_rejects_unknown_field(db):
    with pytest.raises(ValueError):
        async with get_session() as session:
            await MarketSummaryRepository(session).upsert_summary(
                "org-1", "JVC", date(2026, 3, 1), not_a_column=1
            )


@pytest.mark.asyncio
async def test_usage_statistics(db):
    now = datetime.utcnow()
    async with get_session() as session:
        session.add_all([
            AIUsageLog(usage_type="scoring", model="gpt-4o-mini", input_tokens=300, output_tokens=200,
                       cost_usd=0.00017, duration_ms=800, created_at=now),
            AIUsageLog(usage_type="scoring", model="gpt-4o-mini", input_tokens=100, output_tokens=0,
                       cost_usd=0.0, duration_ms=200, success=False, created_at=now),
            AIUsageLog(usage_type="news", model="gpt-4o-mini", input_tokens=1000, output_tokens=1000,
                       cost_usd=0.1, created_at=now - timedelta(days=30)),
        ])

    async with get_session() as session:
        stats = await AIUsageRepository(session).get_statistics(days=7)

    assert stats["total_calls"] == 2
    assert stats["failed_calls"] == 1
    assert stats["total_tokens"] == 600
    assert stats["avg_duration_ms"] == 500
    assert list(stats["by_usage_type"]) == ["scoring"]
