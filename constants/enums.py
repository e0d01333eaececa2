"""
Shared Enums

Application-wide enums used across the scoring pipeline.
"""
from enum import Enum


class UsageType(str, Enum):
    """Token budget categories tracked by the ledger."""
    SCORING = "scoring"
    NEWS = "news"
    CHAT = "chat"
    TOOLS = "tools"


class ScoreTier(str, Enum):
    """Highest pipeline stage an opportunity passed through."""
    DB = "db"
    RULE = "rule"
    AI = "ai"


class FallbackReason(str, Enum):
    """Why an AI score was replaced by a rule-derived one."""
    BUDGET_EXCEEDED = "budget_exceeded"
    RATE_LIMITED = "rate_limited"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"
    UPSTREAM_MALFORMED = "upstream_malformed"


class PriceDirection(str, Enum):
    RISING = "rising"
    STABLE = "stable"
    FALLING = "falling"


class Sentiment(str, Enum):
    BULLISH = "bullish"
    NEUTRAL = "neutral"
    BEARISH = "bearish"


class CompetitionLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class RiskTolerance(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class HealthStatus(str, Enum):
    """Overall daily budget health."""
    OK = "ok"
    WARNING = "warning"
    CRITICAL = "critical"

