"""CAMPO — Metrics & Report Routes."""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel import Session

from app.analyzer.report_engine import build_weekly_report
from app.database import get_session
from app.models.campaign_models import MetricsSnapshot
from app.models.optimization_models import WeeklyReport
from app.store.campaign_store import get_snapshots

router = APIRouter(tags=["Reports"])


@router.get("/metrics", response_model=List[MetricsSnapshot])
async def get_metrics(
    start_date: date,
    end_date: date,
    campaign_id: Optional[str] = None,
    session: Session = Depends(get_session),
):
    """Daily snapshots in ``[start_date, end_date]``."""
    if start_date > end_date:
        raise HTTPException(status_code=400, detail="start_date must not be after end_date")
    return get_snapshots(session, start_date.isoformat(), end_date.isoformat(), campaign_id)


@router.get("/reports/weekly", response_model=WeeklyReport)
async def get_weekly_report(
    end_date: Optional[date] = None,
    days: int = Query(7, ge=1, le=90),
    session: Session = Depends(get_session),
):
    return build_weekly_report(session, end_date=end_date, days=days)
