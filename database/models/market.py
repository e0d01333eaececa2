"""
Market Summary Model

Pre-computed per-area market rows. Written by the market report job,
read by the market context cache.
"""
from datetime import date, datetime
from typing import Optional

from sqlalchemy import String, Integer, Float, Date, DateTime, Text, Index, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class AIMarketSummary(Base):
    """Latest market figures for one area and segment on one date."""
    __tablename__ = "ai_market_summary"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    org_id: Mapped[str] = mapped_column(String(50), nullable=False)

    # Area identity
    geo_id: Mapped[str] = mapped_column(String(100), nullable=False)
    geo_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    segment: Mapped[str] = mapped_column(String(50), nullable=False, default="all")
    as_of_date: Mapped[date] = mapped_column(Date, nullable=False)

    # Figures
    median_price_per_sqft: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    price_vs_truth_pct: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    price_change_qoq: Mapped[Optional[float]] = mapped_column(Float, nullable=True)  # fraction
    active_listings_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    gross_yield_pct: Mapped[Optional[float]] = mapped_column(Float, nullable=True)  # fraction

    # Narrative
    price_trend: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    market_sentiment: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    key_signal: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    top_news: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    summary_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now(), nullable=True)

    __table_args__ = (
        UniqueConstraint('org_id', 'geo_id', 'segment', 'as_of_date', name='uq_market_summary_day'),
        Index('idx_market_summary_lookup', 'org_id', 'geo_id', 'as_of_date'),
    )

    def __repr__(self) -> str:
        return f"<AIMarketSummary(geo_id={self.geo_id}, as_of={self.as_of_date})>"
