"""
Data models for the Scorer module.

The provider answers in camelCase JSON; these pydantic models validate each
entry of the `scores` array and expose snake_case attributes.
"""
from dataclasses import dataclass
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from constants import FallbackReason
from processor.context.models import CompressedMarketContext, CompressedPropertyContext
from processor.models import round_half_up


FALLBACK_HEADLINE = "Score based on rule matching"
FALLBACK_REASONING = "AI scoring unavailable, using rule-based score."
FALLBACK_CONSIDERATION = "AI analysis not available"

FACTOR_MIN = 0
FACTOR_MAX = 25


class ScoreFactors(BaseModel):
    """
    Four 0-25 sub-scores.

    Out-of-range values are clamped rather than rejected; only `aiScore`
    decides whether an entry is usable.
    """
    model_config = ConfigDict(populate_by_name=True)

    mandate_fit: float = Field(default=0, alias="mandateFit")
    market_timing: float = Field(default=0, alias="marketTiming")
    portfolio_fit: float = Field(default=0, alias="portfolioFit")
    risk_alignment: float = Field(default=0, alias="riskAlignment")

    @field_validator("mandate_fit", "market_timing", "portfolio_fit", "risk_alignment")
    @classmethod
    def _clamp(cls, value: float) -> float:
        return min(max(value, FACTOR_MIN), FACTOR_MAX)


class AIScoreOutput(BaseModel):
    """One scored property as returned by the provider (or a fallback)."""
    model_config = ConfigDict(populate_by_name=True)

    property_id: str = Field(alias="propertyId")
    ai_score: float = Field(ge=0, le=100, alias="aiScore")
    factors: ScoreFactors
    headline: str
    reasoning: str
    key_strengths: List[str] = Field(alias="keyStrengths")
    considerations: List[str]
    fallback_reason: Optional[FallbackReason] = None

    @property
    def is_fallback(self) -> bool:
        return self.fallback_reason is not None

    def to_dict(self) -> dict:
        return self.model_dump(mode="json")


def create_fallback_score(
    property_id: str,
    rule_score: int,
    reason: FallbackReason,
) -> AIScoreOutput:
    """Rule-derived stand-in used whenever the provider cannot score an item."""
    factor = round_half_up(rule_score * 0.25)
    return AIScoreOutput(
        property_id=property_id,
        ai_score=rule_score,
        factors=ScoreFactors(
            mandate_fit=factor,
            market_timing=factor,
            portfolio_fit=factor,
            risk_alignment=factor,
        ),
        headline=FALLBACK_HEADLINE,
        reasoning=FALLBACK_REASONING,
        key_strengths=[],
        considerations=[FALLBACK_CONSIDERATION],
        fallback_reason=reason,
    )


@dataclass
class BatchItem:
    """A property queued for AI scoring."""
    property_id: str
    context: CompressedPropertyContext
    market: Optional[CompressedMarketContext]
    rule_score: int
