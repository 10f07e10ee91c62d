"""CAMPO — Campaign Store.

Single-row reads and writes over the campaign tables. Every write commits
on its own; nothing here spans multiple rows in one transaction.
"""

from datetime import datetime, timezone
from typing import List, Optional

from sqlmodel import Session, select

from app.models.campaign_models import (
    Alert,
    Campaign,
    CampaignStatus,
    MetricsSnapshot,
)
from app.models.optimization_models import AlertCandidate, PerformanceMetrics
from app.core.logging import get_logger

logger = get_logger("store")


class CampaignNotFoundError(Exception):
    """Raised when an action references a campaign row that does not exist."""


# ── Campaigns ──


def get_active_campaigns(session: Session) -> List[Campaign]:
    return list(
        session.exec(
            select(Campaign)
            .where(Campaign.status == CampaignStatus.ACTIVE.value)
            .order_by(Campaign.created_at)
        ).all()
    )


def get_campaign(session: Session, campaign_id: str) -> Campaign:
    campaign = session.get(Campaign, campaign_id)
    if campaign is None:
        raise CampaignNotFoundError(f"Campaign {campaign_id} not found")
    return campaign


def save_campaign(session: Session, campaign: Campaign) -> Campaign:
    campaign.updated_at = datetime.now(timezone.utc)
    session.add(campaign)
    session.commit()
    session.refresh(campaign)
    return campaign


# ── Metrics Snapshots ──


def upsert_snapshot(
    session: Session,
    campaign_id: str,
    date: str,
    metrics: PerformanceMetrics,
) -> MetricsSnapshot:
    """Write metrics for (campaign_id, date), overwriting an existing row."""
    values = metrics.model_dump()
    values["impressions"] = int(values["impressions"])
    values["clicks"] = int(values["clicks"])

    existing = session.exec(
        select(MetricsSnapshot).where(
            MetricsSnapshot.campaign_id == campaign_id,
            MetricsSnapshot.date == date,
        )
    ).first()

    if existing:
        for field, value in values.items():
            setattr(existing, field, value)
        existing.updated_at = datetime.now(timezone.utc)
        snapshot = existing
    else:
        snapshot = MetricsSnapshot(campaign_id=campaign_id, date=date, **values)

    session.add(snapshot)
    session.commit()
    session.refresh(snapshot)
    return snapshot


def get_snapshots(
    session: Session,
    date_start: str,
    date_stop: str,
    campaign_id: Optional[str] = None,
) -> List[MetricsSnapshot]:
    """Snapshots with ``date_start <= date <= date_stop`` (YYYY-MM-DD)."""
    query = select(MetricsSnapshot).where(
        MetricsSnapshot.date >= date_start,
        MetricsSnapshot.date <= date_stop,
    )
    if campaign_id:
        query = query.where(MetricsSnapshot.campaign_id == campaign_id)
    return list(
        session.exec(query.order_by(MetricsSnapshot.date, MetricsSnapshot.campaign_id)).all()
    )


# ── Alerts ──


def insert_alert(
    session: Session, campaign_id: Optional[str], candidate: AlertCandidate
) -> Alert:
    alert = Alert(
        campaign_id=campaign_id,
        alert_type=candidate.type,
        severity=candidate.severity,
        message=candidate.message,
    )
    session.add(alert)
    session.commit()
    session.refresh(alert)
    return alert


def list_alerts(
    session: Session,
    resolved: Optional[bool] = None,
    severity: Optional[str] = None,
    campaign_id: Optional[str] = None,
    limit: int = 100,
) -> List[Alert]:
    query = select(Alert)
    if resolved is not None:
        query = query.where(Alert.resolved == resolved)
    if severity:
        query = query.where(Alert.severity == severity)
    if campaign_id:
        query = query.where(Alert.campaign_id == campaign_id)
    return list(session.exec(query.order_by(Alert.id.desc()).limit(limit)).all())


def resolve_alert(session: Session, alert_id: int) -> Optional[Alert]:
    """Mark an alert resolved. Returns None if it does not exist."""
    alert = session.get(Alert, alert_id)
    if alert is None:
        return None
    if not alert.resolved:
        alert.resolved = True
        alert.resolved_at = datetime.now(timezone.utc)
        session.add(alert)
        session.commit()
        session.refresh(alert)
        logger.info(f"Alert {alert_id} resolved", extra={"campaign_id": alert.campaign_id})
    return alert
