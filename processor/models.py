"""
Domain Models for the Opportunity Scoring Pipeline

Read-only records supplied by the collaborator store (investors, listings,
market snapshots) and the result types produced by the pipeline.

Mandates are parsed once at the store boundary via `Mandate.from_record`;
downstream code relies on the typed fields and never re-checks raw dicts.
"""
import math
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

from constants import RiskTolerance, ScoreTier


RULE_WEIGHT = 0.4
AI_WEIGHT = 0.6


@dataclass
class Mandate:
    """An investor's structured investment preferences."""
    preferred_areas: List[str] = field(default_factory=list)
    property_types: List[str] = field(default_factory=list)
    min_investment: Optional[float] = None
    max_investment: Optional[float] = None
    yield_target: Optional[str] = None       # free text, e.g. "8-12%"
    risk_tolerance: RiskTolerance = RiskTolerance.MEDIUM
    strategy: Optional[str] = None
    notes: Optional[str] = None

    @classmethod
    def from_record(cls, data: Optional[Dict[str, Any]]) -> Optional["Mandate"]:
        """
        Build a Mandate from a stored JSON record.

        Accepts both the camelCase keys written by the web app and
        snake_case keys. Returns None for an empty or missing record.
        """
        if not data:
            return None

        def pick(*keys, default=None):
            for key in keys:
                if data.get(key) is not None:
                    return data[key]
            return default

        risk = str(pick("riskTolerance", "risk_tolerance", default="medium")).lower()
        try:
            risk_tolerance = RiskTolerance(risk)
        except ValueError:
            risk_tolerance = RiskTolerance.MEDIUM

        yield_target = pick("yieldTarget", "yield_target")

        return cls(
            preferred_areas=list(pick("preferredAreas", "preferred_areas", default=[])),
            property_types=list(pick("propertyTypes", "property_types", default=[])),
            min_investment=_to_float(pick("minInvestment", "min_investment")),
            max_investment=_to_float(pick("maxInvestment", "max_investment")),
            yield_target=str(yield_target) if yield_target is not None else None,
            risk_tolerance=risk_tolerance,
            strategy=pick("strategy"),
            notes=pick("notes"),
        )


@dataclass
class Investor:
    """Investor identity plus mandate. Owned by the store."""
    id: str
    name: str
    mandate: Optional[Mandate] = None
    tags: List[str] = field(default_factory=list)
    org_id: Optional[str] = None


@dataclass
class Property:
    """A catalog listing."""
    id: str
    area: str
    type: str
    price: float
    size: Optional[float] = None             # sqft
    bedrooms: Optional[int] = None
    yield_estimate: Optional[float] = None   # percent, e.g. 7.5
    status: str = "available"
    title: str = ""
    readiness_status: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "area": self.area,
            "type": self.type,
            "price": self.price,
            "size": self.size,
            "bedrooms": self.bedrooms,
            "yield_estimate": self.yield_estimate,
            "status": self.status,
        }


@dataclass
class PropertyFilters:
    """Catalog query filters. `status="all"` disables the status filter."""
    areas: Optional[List[str]] = None
    property_types: Optional[List[str]] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    min_yield: Optional[float] = None
    status: Optional[str] = "available"
    limit: Optional[int] = None
    property_ids: Optional[List[str]] = None

    @classmethod
    def from_mandate(
        cls,
        mandate: Optional[Mandate],
        overrides: Optional["PropertyFilters"] = None,
        limit: Optional[int] = None,
    ) -> "PropertyFilters":
        """Mandate-derived filters; any value set on `overrides` wins."""
        overrides = overrides or cls(status=None)
        mandate = mandate or Mandate()
        return cls(
            areas=overrides.areas or mandate.preferred_areas or None,
            property_types=overrides.property_types or mandate.property_types or None,
            min_price=overrides.min_price if overrides.min_price is not None else mandate.min_investment,
            max_price=overrides.max_price if overrides.max_price is not None else mandate.max_investment,
            min_yield=overrides.min_yield,
            status=overrides.status or "available",
            limit=limit if limit is not None else overrides.limit,
            property_ids=overrides.property_ids,
        )


@dataclass
class MarketSnapshot:
    """Latest pre-computed market row for an area."""
    area: str
    median_price_psf: Optional[float] = None
    price_change_qoq: Optional[float] = None   # fraction, 0.05 = +5%
    price_trend: Optional[str] = None
    sentiment: Optional[str] = None
    top_news: Optional[str] = None
    active_listings: Optional[int] = None
    gross_yield: Optional[float] = None         # fraction
    summary_text: Optional[str] = None
    as_of_date: Optional[date] = None


@dataclass
class ScoredOpportunity:
    """A property with its rule score, optional AI score, and blended rank score."""
    property: Property
    rule_score: int
    rule_reasons: List[str]
    ai_score: Optional[Any] = None   # AIScoreOutput
    combined_score: int = 0
    tier: ScoreTier = ScoreTier.RULE

    def to_dict(self) -> dict:
        return {
            "property": self.property.to_dict(),
            "rule_score": self.rule_score,
            "rule_reasons": self.rule_reasons,
            "ai_score": self.ai_score.to_dict() if self.ai_score else None,
            "combined_score": self.combined_score,
            "tier": self.tier.value,
        }


@dataclass
class OpportunitySearchResult:
    """Ranked output of a scoring request."""
    investor_id: str
    opportunities: List[ScoredOpportunity]
    total_candidates: int
    tiers: Dict[str, int]
    scored_at: str

    def to_dict(self) -> dict:
        return {
            "investor_id": self.investor_id,
            "opportunities": [o.to_dict() for o in self.opportunities],
            "total_candidates": self.total_candidates,
            "tiers": self.tiers,
            "scored_at": self.scored_at,
        }


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (Python's round() is banker's)."""
    return int(math.floor(value + 0.5))


def combine_scores(rule_score: int, ai_score: Optional[float]) -> int:
    """
    Blend rule and AI scores into the ranking score.

    Returns the rule score unchanged when there is no AI score.
    """
    if ai_score is None:
        return rule_score
    return round_half_up(RULE_WEIGHT * rule_score + AI_WEIGHT * ai_score)


def _to_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
