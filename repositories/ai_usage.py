"""
AI Usage Repository

Aggregates over the ai_usage_log table.
"""
from datetime import datetime, timedelta
from typing import Dict, Any

from sqlalchemy import select, func

from database.models import AIUsageLog
from .base import BaseRepository


class AIUsageRepository(BaseRepository[AIUsageLog]):
    """Repository for metered call records."""

    model = AIUsageLog

    async def get_statistics(self, days: int = 7) -> Dict[str, Any]:
        """Usage statistics for the last N days."""
        since = datetime.utcnow() - timedelta(days=days)

        totals_query = select(
            func.count(AIUsageLog.id),
            func.sum(AIUsageLog.input_tokens),
            func.sum(AIUsageLog.output_tokens),
            func.sum(AIUsageLog.cost_usd),
            func.avg(AIUsageLog.duration_ms),
        ).where(AIUsageLog.created_at >= since)
        totals = (await self.session.execute(totals_query)).one()

        failures_query = select(func.count(AIUsageLog.id)).where(
            AIUsageLog.created_at >= since,
            AIUsageLog.success.is_(False),
        )
        failures = (await self.session.execute(failures_query)).scalar() or 0

        by_type_query = select(
            AIUsageLog.usage_type,
            func.count(AIUsageLog.id),
            func.sum(AIUsageLog.input_tokens + AIUsageLog.output_tokens),
            func.sum(AIUsageLog.cost_usd),
        ).where(
            AIUsageLog.created_at >= since
        ).group_by(AIUsageLog.usage_type)
        by_type = {
            row[0]: {"calls": row[1], "tokens": row[2] or 0, "cost_usd": round(row[3] or 0.0, 6)}
            for row in (await self.session.execute(by_type_query)).all()
        }

        input_tokens = totals[1] or 0
        output_tokens = totals[2] or 0
        return {
            "period_days": days,
            "total_calls": totals[0] or 0,
            "failed_calls": failures,
            "total_input_tokens": input_tokens,
            "total_output_tokens": output_tokens,
            "total_tokens": input_tokens + output_tokens,
            "total_cost_usd": round(totals[3] or 0.0, 6),
            "avg_duration_ms": round(totals[4], 2) if totals[4] else None,
            "by_usage_type": by_type,
        }
