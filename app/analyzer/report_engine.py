"""CAMPO — Weekly Report Engine.

Aggregates the last seven days of metrics snapshots per campaign,
ordered by spend.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import func
from sqlmodel import Session, select

from app.analyzer.decision_engine import to_account_time
from app.models.campaign_models import Campaign, MetricsSnapshot
from app.models.optimization_models import (
    CampaignReportRow,
    ReportSummary,
    WeeklyReport,
)
from app.core.logging import get_logger

logger = get_logger("analyzer.report")


def build_weekly_report(
    session: Session,
    end_date: Optional[date] = None,
    days: int = 7,
    now: Optional[datetime] = None,
) -> WeeklyReport:
    """Report on ``days`` days ending at ``end_date`` (inclusive).

    ``end_date`` defaults to today in the account timezone, the same calendar
    the monitoring pass dates its snapshots with.
    """
    end_date = end_date or to_account_time(now).date()
    start = (end_date - timedelta(days=days - 1)).isoformat()
    stop = end_date.isoformat()

    total_spend = func.sum(MetricsSnapshot.spend)
    rows = session.exec(
        select(
            Campaign.id,
            Campaign.name,
            Campaign.platform,
            func.sum(MetricsSnapshot.impressions),
            func.sum(MetricsSnapshot.clicks),
            func.sum(MetricsSnapshot.conversions),
            total_spend,
            func.sum(MetricsSnapshot.revenue),
            func.avg(MetricsSnapshot.ctr),
            func.avg(MetricsSnapshot.cpc),
            func.avg(MetricsSnapshot.cpl),
            func.avg(MetricsSnapshot.roas),
        )
        .join(MetricsSnapshot, MetricsSnapshot.campaign_id == Campaign.id)
        .where(MetricsSnapshot.date >= start, MetricsSnapshot.date <= stop)
        .group_by(Campaign.id, Campaign.name, Campaign.platform)
        .order_by(total_spend.desc())
    ).all()

    campaigns = [
        CampaignReportRow(
            campaign_id=cid,
            campaign_name=name,
            platform=platform,
            total_impressions=int(impressions or 0),
            total_clicks=int(clicks or 0),
            total_conversions=round(conversions or 0, 2),
            total_spend=round(spend or 0, 2),
            total_revenue=round(revenue or 0, 2),
            avg_ctr=round(ctr or 0, 4),
            avg_cpc=round(cpc or 0, 4),
            avg_cpl=round(cpl or 0, 4),
            avg_roas=round(roas or 0, 4),
        )
        for (
            cid,
            name,
            platform,
            impressions,
            clicks,
            conversions,
            spend,
            revenue,
            ctr,
            cpc,
            cpl,
            roas,
        ) in rows
    ]

    report = WeeklyReport(
        period=f"Last {days} days",
        date_range_start=start,
        date_range_end=stop,
        generated_at=datetime.now(timezone.utc).isoformat(),
        campaigns=campaigns,
        summary=ReportSummary(
            total_spend=round(sum(c.total_spend for c in campaigns), 2),
            total_conversions=round(sum(c.total_conversions for c in campaigns), 2),
            total_revenue=round(sum(c.total_revenue for c in campaigns), 2),
        ),
    )
    logger.info(f"Weekly report built for {len(campaigns)} campaigns ({start} → {stop})")
    return report
