"""
SQL-backed OpportunityStore.

Opens one short session per call so concurrent pipeline lookups
(e.g. market contexts for several areas) never share a session.
"""
from typing import List, Optional

from database.session import get_session
from processor.models import Investor, Mandate, MarketSnapshot, Property, PropertyFilters
from .investors import InvestorRepository
from .listings import ListingRepository
from .market_summary import MarketSummaryRepository


class SqlOpportunityStore:

    async def list_properties(self, org_id: str, filters: PropertyFilters) -> List[Property]:
        async with get_session() as session:
            return await ListingRepository(session).list_properties(org_id, filters)

    async def get_investor(self, investor_id: str) -> Optional[Investor]:
        async with get_session() as session:
            return await InvestorRepository(session).get_investor(investor_id)

    async def get_mandate(self, investor_id: str) -> Optional[Mandate]:
        async with get_session() as session:
            return await InvestorRepository(session).get_mandate(investor_id)

    async def get_market_snapshot(self, org_id: str, area: str) -> Optional[MarketSnapshot]:
        async with get_session() as session:
            return await MarketSummaryRepository(session).get_market_snapshot(org_id, area)
