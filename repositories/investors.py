"""
Investor Repository
"""
from typing import Optional

from database.models import InvestorRecord
from processor.models import Investor, Mandate
from .base import BaseRepository


class InvestorRepository(BaseRepository[InvestorRecord]):
    """Repository for investors and their mandates."""

    model = InvestorRecord

    async def get_investor(self, investor_id: str) -> Optional[Investor]:
        row = await self.get(investor_id)
        if row is None:
            return None
        return Investor(
            id=row.id,
            name=row.name,
            mandate=Mandate.from_record(row.mandate),
            tags=list(row.tags or []),
            org_id=row.org_id,
        )

    async def get_mandate(self, investor_id: str) -> Optional[Mandate]:
        row = await self.get(investor_id)
        return Mandate.from_record(row.mandate) if row else None
