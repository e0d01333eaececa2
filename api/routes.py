"""
API Routes - Endpoint definitions for the Opportunity Scoring Service

Endpoints organized by:
- Health Check
- Opportunities (full and quick scoring)
- Usage (token budget, persisted call history)
- Cache
"""
import uuid
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from loguru import logger
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from database import get_session_dependency
from llm import set_llm_context
from processor import PropertyFilters
from repositories import AIUsageRepository
from services import ScoringServices, get_services

router = APIRouter()


def services_dependency() -> ScoringServices:
    """Overridable in tests via app.dependency_overrides."""
    return get_services()


class FiltersBody(BaseModel):
    areas: Optional[List[str]] = None
    property_types: Optional[List[str]] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    min_yield: Optional[float] = None
    status: Optional[str] = None

    def to_filters(self) -> PropertyFilters:
        return PropertyFilters(**self.model_dump())


class ScoreRequest(BaseModel):
    investor_id: str
    org_id: Optional[str] = Field(default=None, description="Defaults to the investor's organization")
    property_ids: Optional[List[str]] = None
    filters: Optional[FiltersBody] = None
    max_to_score: Optional[int] = Field(default=None, ge=0)
    quick_score: bool = False
    limit: Optional[int] = Field(default=None, gt=0, description="Quick mode only")


# ============================================================
# Health Check
# ============================================================
@router.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "database": str(settings.DATABASE_PATH),
        "llm_provider": settings.LLM_PROVIDER,
    }


# ============================================================
# Opportunities
# ============================================================
@router.post("/opportunities/score")
async def score_opportunities(
    body: ScoreRequest,
    services: ScoringServices = Depends(services_dependency),
):
    """
    Rank listings for an investor.

    quick_score=true runs rules only and never calls the model.
    """
    investor = await services.store.get_investor(body.investor_id)
    if investor is None:
        raise HTTPException(status_code=404, detail="Investor not found")

    org_id = body.org_id or investor.org_id
    if not org_id:
        raise HTTPException(status_code=400, detail="org_id is required")

    filters = body.filters.to_filters() if body.filters else None

    try:
        if body.quick_score:
            opportunities, candidates = await services.rule_only_scorer.quick_score(
                investor,
                org_id,
                filters=filters,
                property_ids=body.property_ids,
                limit=body.limit,
            )
            return {
                "mode": "quick",
                "investor_id": investor.id,
                "opportunities": [o.to_dict() for o in opportunities],
                "total_candidates": candidates,
            }

        set_llm_context(org_id=org_id, request_id=uuid.uuid4().hex, endpoint="/api/opportunities/score")

        if body.property_ids:
            filters = filters or PropertyFilters(status=None)
            filters.property_ids = body.property_ids
            filters.status = "all"

        result = await services.scorer.score_opportunities(
            investor,
            org_id,
            filters=filters,
            max_to_score=body.max_to_score,
        )
        return {
            "mode": "ai-enhanced",
            **result.to_dict(),
            "usage_stats": services.ledger.get_usage_stats(),
        }
    except Exception as e:
        logger.exception(f"Scoring failed for investor {body.investor_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to score opportunities")


# ============================================================
# Usage
# ============================================================
@router.get("/opportunities/usage")
async def get_usage(services: ScoringServices = Depends(services_dependency)):
    """Today's token usage against the daily budgets."""
    return services.ledger.get_usage_stats()


@router.get("/opportunities/usage/history")
async def get_usage_history(
    days: int = Query(default=7, ge=1, le=90),
    session: AsyncSession = Depends(get_session_dependency),
):
    """Aggregated external call log for the last `days` days."""
    repo = AIUsageRepository(session)
    return await repo.get_statistics(days=days)


# ============================================================
# Cache
# ============================================================
@router.get("/cache/stats")
async def get_cache_stats(services: ScoringServices = Depends(services_dependency)):
    return services.cache.stats().to_dict()
