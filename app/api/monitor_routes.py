"""CAMPO — Monitoring, Decision & Alert Routes."""

from typing import Any, AsyncIterator, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlmodel import Session

from app.connectors.base import AdapterRegistry
from app.connectors.registry import build_adapters, close_adapters
from app.database import get_session
from app.executor.ledger import DecisionLedger
from app.models.campaign_models import Alert, Decision
from app.models.optimization_models import MonitorReport
from app.monitor.pipeline import CampaignMonitor
from app.store.campaign_store import list_alerts, resolve_alert
from app.core.logging import get_logger

logger = get_logger("api.monitor")

router = APIRouter(tags=["Monitoring"])


async def get_adapters() -> AsyncIterator[AdapterRegistry]:
    """Dependency — platform adapters for one request."""
    adapters = build_adapters()
    try:
        yield adapters
    finally:
        await close_adapters(adapters)


# ── Request Models ──


class OutcomeBackfill(BaseModel):
    """Request body for POST /decisions/{id}/outcome."""

    metrics_after: Dict[str, Any]
    success: Optional[bool] = None


# ── Endpoints ──


@router.post("/monitor/run", response_model=MonitorReport)
async def trigger_monitoring(
    session: Session = Depends(get_session),
    adapters: AdapterRegistry = Depends(get_adapters),
):
    """Run a monitoring pass now instead of waiting for the scheduler."""
    try:
        return await CampaignMonitor(session, adapters).monitor_all()
    except Exception as e:
        logger.error(f"Monitoring pass failed: {e}")
        raise HTTPException(status_code=500, detail=f"Monitoring failed: {str(e)}")


@router.get("/decisions", response_model=List[Decision])
async def get_decisions(
    campaign_id: Optional[str] = None,
    decision_type: Optional[str] = None,
    limit: int = Query(100, ge=1, le=1000),
    session: Session = Depends(get_session),
):
    """Most recent decisions first."""
    return DecisionLedger(session).list_decisions(campaign_id, decision_type, limit)


@router.post("/decisions/{decision_id}/outcome", response_model=Decision)
async def backfill_decision_outcome(
    decision_id: int,
    body: OutcomeBackfill,
    session: Session = Depends(get_session),
):
    """Attach post-decision metrics to a recorded decision."""
    decision = DecisionLedger(session).backfill_outcome(
        decision_id, body.metrics_after, body.success
    )
    if decision is None:
        raise HTTPException(status_code=404, detail=f"Decision {decision_id} not found")
    return decision


@router.get("/alerts", response_model=List[Alert])
async def get_alerts(
    resolved: Optional[bool] = None,
    severity: Optional[str] = None,
    campaign_id: Optional[str] = None,
    limit: int = Query(100, ge=1, le=1000),
    session: Session = Depends(get_session),
):
    return list_alerts(session, resolved, severity, campaign_id, limit)


@router.post("/alerts/{alert_id}/resolve", response_model=Alert)
async def resolve(alert_id: int, session: Session = Depends(get_session)):
    """Operator resolution of an alert."""
    alert = resolve_alert(session, alert_id)
    if alert is None:
        raise HTTPException(status_code=404, detail=f"Alert {alert_id} not found")
    return alert
