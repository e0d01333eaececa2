"""
Read contract the scoring pipeline needs from the data layer.

`repositories.store.SqlOpportunityStore` is the production implementation;
tests pass in-memory fakes.
"""
from typing import List, Optional, Protocol

from .models import Investor, Mandate, MarketSnapshot, Property, PropertyFilters


class OpportunityStore(Protocol):

    async def list_properties(self, org_id: str, filters: PropertyFilters) -> List[Property]:
        ...

    async def get_investor(self, investor_id: str) -> Optional[Investor]:
        ...

    async def get_mandate(self, investor_id: str) -> Optional[Mandate]:
        ...

    async def get_market_snapshot(self, org_id: str, area: str) -> Optional[MarketSnapshot]:
        ...
