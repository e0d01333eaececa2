"""
Rule Scorer - Tier 2 Property Scoring

Scores how well a listing matches an investor mandate using fixed point
values. Pure and total: any input, including a missing mandate, yields a
score and a list of reasons.
"""
import re
from typing import Iterable, List, Optional, Tuple

from processor.models import Investor, Mandate, Property
from .config import (
    BASE_RULE_SCORE,
    BUDGET_NEAR_TOLERANCE,
    MAX_RULE_SCORE,
    POINTS_AREA,
    POINTS_BUDGET_HIT,
    POINTS_BUDGET_NEAR,
    POINTS_PROPERTY_TYPE,
    POINTS_READY_FOR_MEMO,
    POINTS_TAG,
    POINTS_YIELD,
    READY_FOR_MEMO,
)
from .models import RuleScore


_NUMBER_PATTERN = re.compile(r"-?\d+(?:\.\d+)?")


def _normalize(text: Optional[str]) -> str:
    return (text or "").strip().lower()


def parse_range(value: Optional[str]) -> Tuple[Optional[float], Optional[float]]:
    """
    Extract a numeric (min, max) from free text like "8-12%" or "7.5".

    Returns (None, None) when no number is present.
    """
    if not value:
        return None, None
    numbers = [float(n) for n in _NUMBER_PATTERN.findall(value)]
    if not numbers:
        return None, None
    return min(numbers), max(numbers)


def _budget_match(price: float, low: Optional[float], high: Optional[float]) -> Tuple[bool, bool]:
    """Return (within range, near range)."""
    if not price or not low or not high:
        return False, False
    if low <= price <= high:
        return True, False
    distance = min(abs(price - low) / low, abs(price - high) / high)
    return False, distance <= BUDGET_NEAR_TOLERANCE


class RuleScorer:
    """
    Tier 2: Rule Scoring

    Deterministic, free, synchronous. Never raises.
    """

    def score(
        self,
        prop: Property,
        mandate: Optional[Mandate],
        tags: Iterable[str] = (),
    ) -> RuleScore:
        """
        Score a property against a mandate.

        Args:
            prop: Catalog listing
            mandate: Investor mandate (None when the investor has none)
            tags: Investor tags compared against the property's area and type

        Returns:
            RuleScore with a 0-100 score and human-readable reasons
        """
        if mandate is None:
            return RuleScore(
                score=BASE_RULE_SCORE,
                reasons=["No mandate defined; base score applied"],
            )

        score = 0
        reasons: List[str] = []

        if prop.type in mandate.property_types:
            score += POINTS_PROPERTY_TYPE
            reasons.append(f"Aligned with {mandate.strategy or 'mandate'} focus ({prop.type})")

        preferred = {_normalize(a) for a in mandate.preferred_areas}
        if _normalize(prop.area) in preferred:
            score += POINTS_AREA
            reasons.append(f"Target area: {prop.area}")

        hit, near = _budget_match(prop.price, mandate.min_investment, mandate.max_investment)
        if hit:
            score += POINTS_BUDGET_HIT
            reasons.append(
                f"Ticket size within AED {mandate.min_investment:,.0f}–{mandate.max_investment:,.0f}"
            )
        elif near:
            score += POINTS_BUDGET_NEAR
            reasons.append("Slight stretch on ticket size (still close to range)")

        if prop.yield_estimate:
            yield_min, _ = parse_range(mandate.yield_target)
            if yield_min and prop.yield_estimate >= yield_min:
                score += POINTS_YIELD
                reasons.append(f"Meets yield target ({prop.yield_estimate:g}% ≥ {yield_min:g}%)")

        property_tags = {_normalize(prop.area), _normalize(prop.type)}
        if any(_normalize(tag) in property_tags for tag in tags):
            score += POINTS_TAG
            reasons.append("Matches investor tags/preferences")

        if prop.readiness_status == READY_FOR_MEMO:
            score += POINTS_READY_FOR_MEMO
            reasons.append("Ready for memo (low friction send)")

        return RuleScore(score=min(MAX_RULE_SCORE, round(score)), reasons=reasons)

    def score_for_investor(self, prop: Property, investor: Investor) -> RuleScore:
        """Convenience wrapper taking the whole investor."""
        return self.score(prop, investor.mandate, investor.tags)


def quick_score(
    investor: Investor,
    properties: List[Property],
    scorer: Optional[RuleScorer] = None,
) -> List[Tuple[Property, RuleScore]]:
    """
    Rule-only ranking for fast previews. Drops zero scores.

    Returns:
        (property, score) pairs sorted by score descending
    """
    scorer = scorer or RuleScorer()
    scored = [(p, scorer.score_for_investor(p, investor)) for p in properties]
    scored = [pair for pair in scored if pair[1].score > 0]
    scored.sort(key=lambda pair: pair[1].score, reverse=True)
    return scored
