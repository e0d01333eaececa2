"""
Repositories - async data access for the scoring service.

Each repository wraps one table and takes an AsyncSession.
SqlOpportunityStore combines them behind the pipeline's store contract.
"""

from .base import BaseRepository
from .listings import ListingRepository
from .investors import InvestorRepository
from .market_summary import MarketSummaryRepository
from .ai_usage import AIUsageRepository
from .store import SqlOpportunityStore

__all__ = [
    "BaseRepository",
    "ListingRepository",
    "InvestorRepository",
    "MarketSummaryRepository",
    "AIUsageRepository",
    "SqlOpportunityStore",
]
