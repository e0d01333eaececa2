"""
Market Summary Repository

Reads the latest market row for an area and writes daily summaries.
"""
from datetime import date
from typing import Optional

from sqlalchemy import select

from database.models import AIMarketSummary
from processor.models import MarketSnapshot
from .base import BaseRepository


def to_snapshot(row: AIMarketSummary, area: str) -> MarketSnapshot:
    return MarketSnapshot(
        area=area,
        median_price_psf=row.median_price_per_sqft,
        price_change_qoq=row.price_change_qoq,
        price_trend=row.price_trend,
        sentiment=row.market_sentiment,
        top_news=row.top_news,
        active_listings=row.active_listings_count,
        gross_yield=row.gross_yield_pct,
        summary_text=row.summary_text,
        as_of_date=row.as_of_date,
    )


class MarketSummaryRepository(BaseRepository[AIMarketSummary]):
    """Repository for pre-computed market summaries."""

    model = AIMarketSummary

    async def get_latest(self, org_id: str, area: str) -> Optional[AIMarketSummary]:
        query = (
            select(AIMarketSummary)
            .where(AIMarketSummary.org_id == org_id, AIMarketSummary.geo_id == area)
            .order_by(AIMarketSummary.as_of_date.desc(), AIMarketSummary.id.desc())
            .limit(1)
        )
        result = await self.session.execute(query)
        return result.scalars().first()

    async def get_market_snapshot(self, org_id: str, area: str) -> Optional[MarketSnapshot]:
        """Latest snapshot for an area, or None."""
        row = await self.get_latest(org_id, area)
        return to_snapshot(row, area) if row else None

    async def upsert_summary(
        self,
        org_id: str,
        geo_id: str,
        as_of_date: date,
        segment: str = "all",
        **fields,
    ) -> AIMarketSummary:
        """
        Insert or update the row for (org, area, segment, date).

        Args:
            **fields: Any AIMarketSummary column, e.g. median_price_per_sqft
        """
        query = select(AIMarketSummary).where(
            AIMarketSummary.org_id == org_id,
            AIMarketSummary.geo_id == geo_id,
            AIMarketSummary.segment == segment,
            AIMarketSummary.as_of_date == as_of_date,
        )
        result = await self.session.execute(query)
        row = result.scalars().first()

        if row is None:
            row = AIMarketSummary(org_id=org_id, geo_id=geo_id, segment=segment, as_of_date=as_of_date)
            self.session.add(row)

        for key, value in fields.items():
            if not hasattr(AIMarketSummary, key):
                raise ValueError(f"Unknown market summary field: {key}")
            setattr(row, key, value)

        await self.session.flush()
        return row
