"""
Context Compressor - Turn full records into token-efficient summaries.

Every summary is a comma-joined list of short "parts" hard-truncated to a
per-kind character budget. Area names go through a fixed abbreviation
table so summaries are stable across runs (they are used as prompt
content and cached).

Examples:
    investor: "Core Plus, 8-12% yield, Marina/Downtown, AED 5-20M, medium risk"
    property: "Marina 3BR, AED 4.2M, 2100sqft, 8.5% yield, +5% vs DLD"
    market:   "Marina:, AED 2,450/psf, +5% QoQ, 6.1% yield, bullish"
"""
import math
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, Optional

from loguru import logger

from config import settings
from constants import CompetitionLevel, PriceDirection, Sentiment
from llm.costs import estimate_tokens
from processor.models import Investor, MarketSnapshot, Property, round_half_up
from .models import (
    CompressedInvestorContext,
    CompressedMarketContext,
    CompressedPropertyContext,
)


PART_SEPARATOR = ", "
ELLIPSIS = "..."
TOP_NEWS_CHARS = 50

# Exact-match lookup; anything else falls back to the first word
AREA_ABBREVIATIONS = {
    "Dubai Marina": "Marina",
    "Downtown Dubai": "Downtown",
    "Business Bay": "BizBay",
    "Palm Jumeirah": "Palm",
    "Dubai Creek Harbour": "Creek",
    "Jumeirah Village Circle": "JVC",
    "Dubai South": "South",
    "Bluewaters Island": "Bluewaters",
    "Dubai Hills Estate": "Hills",
    "Arabian Ranches": "Ranches",
}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def abbreviate_area(area: str) -> str:
    """Abbreviate a known area name, else keep its first word."""
    if area in AREA_ABBREVIATIONS:
        return AREA_ABBREVIATIONS[area]
    words = area.split(" ")
    return words[0] if words else area


def truncate(text: str, max_chars: int) -> str:
    """Cut to `max_chars`, ending in a 3-char ellipsis when over budget."""
    if len(text) <= max_chars:
        return text
    return text[: max_chars - len(ELLIPSIS)] + ELLIPSIS


def _fmt_number(value: float) -> str:
    return f"{value:g}"


def to_fixed(value: float, digits: int = 0) -> str:
    """Fixed-point text with halves rounded away from zero (2.5 -> "3", 4.25 -> "4.3")."""
    return str(Decimal(value).quantize(Decimal(1).scaleb(-digits), rounding=ROUND_HALF_UP))


# ============================================
# INVESTOR
# ============================================

def compress_investor_context(
    investor: Investor,
    max_chars: Optional[int] = None,
) -> CompressedInvestorContext:
    """Compress an investor mandate into a ~200 char summary."""
    max_chars = max_chars or settings.MAX_INVESTOR_CONTEXT_CHARS
    mandate = investor.mandate

    if mandate is None:
        return CompressedInvestorContext(
            investor_id=investor.id,
            summary_text=truncate(f"{investor.name}: no mandate defined, opportunistic", max_chars),
            key_areas=[],
            budget_range="flexible",
            yield_target="market rate",
            risk_level="medium",
            strategy="Opportunistic",
            computed_at=_now_iso(),
        )

    parts: List[str] = []

    strategy = mandate.strategy or "Opportunistic"
    parts.append(strategy)

    yield_target = mandate.yield_target or "market"
    parts.append(f"{yield_target} yield")

    areas = mandate.preferred_areas[:3]
    if areas:
        parts.append("/".join(abbreviate_area(a) for a in areas))
    else:
        parts.append("UAE-wide")

    min_m = to_fixed(mandate.min_investment / 1e6) if mandate.min_investment else "0"
    max_m = to_fixed(mandate.max_investment / 1e6) if mandate.max_investment else "∞"
    parts.append(f"AED {min_m}-{max_m}M")

    risk = mandate.risk_tolerance.value
    parts.append(f"{risk} risk")

    low = to_fixed(mandate.min_investment) if mandate.min_investment is not None else "0"
    high = to_fixed(mandate.max_investment) if mandate.max_investment is not None else "∞"

    return CompressedInvestorContext(
        investor_id=investor.id,
        summary_text=truncate(PART_SEPARATOR.join(parts), max_chars),
        key_areas=areas,
        budget_range=f"{low}-{high}",
        yield_target=yield_target,
        risk_level=risk,
        strategy=strategy,
        computed_at=_now_iso(),
    )


# ============================================
# PROPERTY
# ============================================

def _type_shorthand(prop: Property) -> str:
    if prop.bedrooms:
        return f"{prop.bedrooms}BR"
    if prop.type == "commercial":
        return "Comm"
    if prop.type == "land":
        return "Land"
    return "Res"


def _competition_level(competing_count: Optional[int]) -> CompetitionLevel:
    count = competing_count or 0
    if count > 20:
        return CompetitionLevel.HIGH
    if count > 10:
        return CompetitionLevel.MEDIUM
    return CompetitionLevel.LOW


def compress_property_context(
    prop: Property,
    price_vs_market: Optional[float] = None,
    competing_count: Optional[int] = None,
    max_chars: Optional[int] = None,
) -> CompressedPropertyContext:
    """
    Compress a listing into a ~150 char summary.

    Args:
        prop: Listing to compress
        price_vs_market: (asking - DLD) / DLD ratio, if known
        competing_count: Competing active listings in the same segment
        max_chars: Override the configured character budget
    """
    max_chars = max_chars or settings.MAX_PROPERTY_CONTEXT_CHARS
    parts: List[str] = [f"{abbreviate_area(prop.area)} {_type_shorthand(prop)}"]

    parts.append(f"AED {to_fixed(prop.price / 1e6, 1)}M")

    if prop.size:
        parts.append(f"{_fmt_number(prop.size)}sqft")

    if prop.yield_estimate:
        parts.append(f"{_fmt_number(prop.yield_estimate)}% yield")

    price_vs_market_label = "no DLD data"
    if isinstance(price_vs_market, (int, float)) and math.isfinite(price_vs_market):
        pct = round_half_up(price_vs_market * 100)
        price_vs_market_label = f"{'+' if pct >= 0 else ''}{pct}% vs DLD"
        parts.append(price_vs_market_label)

    return CompressedPropertyContext(
        property_id=prop.id,
        summary_text=truncate(PART_SEPARATOR.join(parts), max_chars),
        price_vs_market=price_vs_market_label,
        yield_estimate=f"{_fmt_number(prop.yield_estimate)}%" if prop.yield_estimate else "unknown",
        competition_level=_competition_level(competing_count),
        area=prop.area,
        type=prop.type,
        computed_at=_now_iso(),
    )


# ============================================
# MARKET
# ============================================

def normalize_sentiment(sentiment: Optional[str]) -> Sentiment:
    s = (sentiment or "").lower()
    if "bull" in s or "positive" in s or "up" in s:
        return Sentiment.BULLISH
    if "bear" in s or "negative" in s or "down" in s:
        return Sentiment.BEARISH
    return Sentiment.NEUTRAL


def price_direction_from_trend(trend: Optional[str]) -> PriceDirection:
    """Map a stored trend label ("rising", "prices down", ...) to a direction."""
    if isinstance(trend, str):
        if "rising" in trend or "up" in trend:
            return PriceDirection.RISING
        if "falling" in trend or "down" in trend:
            return PriceDirection.FALLING
    return PriceDirection.STABLE


def compress_market_context(
    snapshot: MarketSnapshot,
    max_chars: Optional[int] = None,
) -> CompressedMarketContext:
    """Compress a market snapshot into a ~200 char summary."""
    max_chars = max_chars or settings.MAX_MARKET_CONTEXT_CHARS
    parts: List[str] = [f"{abbreviate_area(snapshot.area)}:"]

    if snapshot.median_price_psf:
        parts.append(f"AED {round_half_up(snapshot.median_price_psf):,}/psf")

    price_direction = price_direction_from_trend(snapshot.price_trend)
    change = snapshot.price_change_qoq
    if change:
        pct = round_half_up(change * 100)
        if pct > 3:
            price_direction = PriceDirection.RISING
            parts.append(f"+{pct}% QoQ")
        elif pct < -3:
            price_direction = PriceDirection.FALLING
            parts.append(f"{pct}% QoQ")
        else:
            price_direction = PriceDirection.STABLE
            parts.append("stable QoQ")

    if snapshot.gross_yield:
        parts.append(f"{to_fixed(snapshot.gross_yield * 100, 1)}% yield")

    sentiment = normalize_sentiment(snapshot.sentiment)
    parts.append(sentiment.value)

    top_news = ""
    if snapshot.top_news:
        top_news = snapshot.top_news[:TOP_NEWS_CHARS]
        if len(snapshot.top_news) > TOP_NEWS_CHARS:
            top_news += ELLIPSIS

    key_signal = "stable"
    if change:
        key_signal = f"price {price_direction.value} {abs(round_half_up(change * 100))}%"

    summary = snapshot.summary_text or PART_SEPARATOR.join(parts)

    return CompressedMarketContext(
        area=snapshot.area,
        summary_text=truncate(summary, max_chars),
        price_direction=price_direction,
        sentiment=sentiment,
        key_signal=key_signal,
        top_news=top_news,
        median_price_psf=snapshot.median_price_psf,
        gross_yield=snapshot.gross_yield,
        computed_at=snapshot.as_of_date.isoformat() if snapshot.as_of_date else _now_iso(),
    )


# ============================================
# COMBINED
# ============================================

def build_combined_context(
    investor: CompressedInvestorContext,
    properties: List[CompressedPropertyContext],
    markets: Dict[str, CompressedMarketContext],
    max_tokens: Optional[int] = None,
) -> str:
    """
    Join investor, property and market summaries into one block.

    Logs a warning when the estimated size exceeds the total context budget.
    """
    max_tokens = max_tokens or settings.MAX_TOTAL_CONTEXT_TOKENS
    sections = [f"INVESTOR: {investor.summary_text}", "", "PROPERTIES:"]

    for i, prop in enumerate(properties, start=1):
        market = markets.get(prop.area)
        market_info = (
            f" | Market: {market.sentiment.value}, {market.price_direction.value}" if market else ""
        )
        sections.append(f"{i}. [{prop.property_id}] {prop.summary_text}{market_info}")

    combined = "\n".join(sections)
    estimated = estimate_tokens(combined)
    if estimated > max_tokens:
        logger.warning(
            f"Combined context exceeds budget: {estimated} tokens (max: {max_tokens})"
        )
    return combined
