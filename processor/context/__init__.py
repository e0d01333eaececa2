"""
Context Module - Tier 3 context compression and caching

Components:
- compressor: investor/property/market summaries under fixed char budgets
- ContextCache: in-memory TTL cache with hit/miss stats
- MarketContextCache: memory cache backed by the market snapshot table
"""

from .models import (
    CompressedInvestorContext,
    CompressedPropertyContext,
    CompressedMarketContext,
)
from .compressor import (
    abbreviate_area,
    truncate,
    compress_investor_context,
    compress_property_context,
    compress_market_context,
    build_combined_context,
)
from .cache import CacheEntry, CacheStats, ContextCache, MarketContextCache

__all__ = [
    "CompressedInvestorContext",
    "CompressedPropertyContext",
    "CompressedMarketContext",
    "abbreviate_area",
    "truncate",
    "compress_investor_context",
    "compress_property_context",
    "compress_market_context",
    "build_combined_context",
    "CacheEntry",
    "CacheStats",
    "ContextCache",
    "MarketContextCache",
]
