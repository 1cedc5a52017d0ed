"""
Analytics router.

GET /analytics/summary — per domain/activity averages over the last N days
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from pocketbrain.db.base import get_db
from pocketbrain.schemas.analytics import AnalyticsSummaryResponse, DomainActivityStatsOut
from pocketbrain.services.queries import get_analytics_summary

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("/summary", response_model=AnalyticsSummaryResponse, summary="Metric averages by activity")
def summary(
    days: int = Query(default=7, ge=1, le=3650),
    db: Session = Depends(get_db),
):
    stats = get_analytics_summary(db, days=days)
    return AnalyticsSummaryResponse(
        days=days,
        items=[
            DomainActivityStatsOut(
                domain=s.domain,
                activity=s.activity,
                avg_mood=s.avg_mood,
                avg_energy=s.avg_energy,
                avg_productivity=s.avg_productivity,
                count=s.count,
            )
            for s in stats
        ],
    )
