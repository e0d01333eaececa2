"""
SQLAlchemy ORM Models

Models are organized by domain:
- Catalog: listings and investors
- Market: pre-computed market summaries
- AI usage: one row per metered LLM call
"""

from .base import Base, TimestampMixin
from .listings import Listing, InvestorRecord
from .market import AIMarketSummary
from .ai_usage import AIUsageLog

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    # Catalog
    "Listing",
    "InvestorRecord",
    # Market
    "AIMarketSummary",
    # AI usage
    "AIUsageLog",
]
