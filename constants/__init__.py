"""
Constants package for the Opportunity Scoring Service.

Contains shared enums used across modules.
"""

from .enums import (
    UsageType,
    ScoreTier,
    FallbackReason,
    PriceDirection,
    Sentiment,
    CompetitionLevel,
    RiskTolerance,
    HealthStatus,
)

__all__ = [
    # Enums
    "UsageType",
    "ScoreTier",
    "FallbackReason",
    "PriceDirection",
    "Sentiment",
    "CompetitionLevel",
    "RiskTolerance",
    "HealthStatus",
]
