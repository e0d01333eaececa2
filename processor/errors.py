"""
Scoring pipeline errors.

Everything except ConfigurationInvalid is caught inside the pipeline and
turned into a fallback annotation plus a log line. Callers of
OpportunityScorer never see them.
"""
from typing import Optional

from config import ConfigurationInvalid
from constants import FallbackReason


class ScoringPipelineError(Exception):
    """Base class for recoverable pipeline failures."""

    fallback_reason: Optional[FallbackReason] = None


class BudgetExceeded(ScoringPipelineError):
    fallback_reason = FallbackReason.BUDGET_EXCEEDED


class RateLimited(ScoringPipelineError):
    fallback_reason = FallbackReason.RATE_LIMITED

    def __init__(self, message: str, retry_after_ms: Optional[int] = None):
        super().__init__(message)
        self.retry_after_ms = retry_after_ms


class UpstreamUnavailable(ScoringPipelineError):
    """Network error, timeout or 5xx from the inference provider."""
    fallback_reason = FallbackReason.UPSTREAM_UNAVAILABLE


class UpstreamMalformed(ScoringPipelineError):
    """Provider response that does not match the expected JSON shape."""
    fallback_reason = FallbackReason.UPSTREAM_MALFORMED


class CollaboratorQueryFailed(ScoringPipelineError):
    """Catalog or market snapshot read failed."""


__all__ = [
    "ScoringPipelineError",
    "BudgetExceeded",
    "RateLimited",
    "UpstreamUnavailable",
    "UpstreamMalformed",
    "CollaboratorQueryFailed",
    "ConfigurationInvalid",
]
