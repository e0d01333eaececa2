"""
Data models for compressed AI contexts.

Each context carries a bounded `summary_text` for prompts plus a few
structured fields the pipeline and prompt builder read directly.
"""
from dataclasses import dataclass, field
from typing import List, Optional

from constants import CompetitionLevel, PriceDirection, Sentiment


@dataclass
class CompressedInvestorContext:
    investor_id: str
    summary_text: str
    key_areas: List[str] = field(default_factory=list)
    budget_range: str = "flexible"
    yield_target: str = "market"
    risk_level: str = "medium"
    strategy: str = "Opportunistic"
    computed_at: str = ""

    def to_dict(self) -> dict:
        return {
            "investor_id": self.investor_id,
            "summary_text": self.summary_text,
            "key_areas": self.key_areas,
            "budget_range": self.budget_range,
            "yield_target": self.yield_target,
            "risk_level": self.risk_level,
            "strategy": self.strategy,
            "computed_at": self.computed_at,
        }


@dataclass
class CompressedPropertyContext:
    property_id: str
    summary_text: str
    price_vs_market: str = "no DLD data"
    yield_estimate: str = "unknown"
    competition_level: CompetitionLevel = CompetitionLevel.LOW
    area: str = ""
    type: str = ""
    computed_at: str = ""

    def to_dict(self) -> dict:
        return {
            "property_id": self.property_id,
            "summary_text": self.summary_text,
            "price_vs_market": self.price_vs_market,
            "yield_estimate": self.yield_estimate,
            "competition_level": self.competition_level.value,
            "area": self.area,
            "type": self.type,
            "computed_at": self.computed_at,
        }


@dataclass
class CompressedMarketContext:
    area: str
    summary_text: str
    price_direction: PriceDirection = PriceDirection.STABLE
    sentiment: Sentiment = Sentiment.NEUTRAL
    key_signal: str = "stable"
    top_news: str = ""
    median_price_psf: Optional[float] = None
    gross_yield: Optional[float] = None
    computed_at: str = ""

    def to_dict(self) -> dict:
        return {
            "area": self.area,
            "summary_text": self.summary_text,
            "price_direction": self.price_direction.value,
            "sentiment": self.sentiment.value,
            "key_signal": self.key_signal,
            "top_news": self.top_news,
            "median_price_psf": self.median_price_psf,
            "gross_yield": self.gross_yield,
            "computed_at": self.computed_at,
        }
