"""CAMPO — Campaign Monitoring Loop.

Runs one monitoring pass:
  fetch active campaigns → per campaign:
    fetch metrics → normalize → persist snapshot → evaluate rules →
    dispatch actions → evaluate alerts → persist alerts

Campaigns are processed one after another to bound platform rate-limit
exposure. A failure inside one campaign is logged and the pass moves on.
The pass itself has no timeout and no retry; retries live in the HTTP
clients only.
"""

from datetime import datetime, timezone
from typing import Callable, Optional

from sqlmodel import Session

from app.analyzer.alert_engine import evaluate_alerts
from app.analyzer.decision_engine import evaluate_rules, to_account_time
from app.analyzer.kpi_engine import normalize_metrics
from app.config import RuleThresholds, settings
from app.connectors.base import AdapterRegistry, resolve_adapter
from app.connectors.registry import build_adapters, close_adapters
from app.database import engine
from app.executor.dispatcher import ActionDispatcher
from app.executor.ledger import DecisionLedger
from app.models.campaign_models import Campaign
from app.models.optimization_models import CampaignOutcome, MonitorReport
from app.store.campaign_store import get_active_campaigns, insert_alert, upsert_snapshot
from app.core.logging import get_logger

logger = get_logger("monitor.pipeline")

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CampaignMonitor:
    """Monitoring loop over all active campaigns."""

    def __init__(
        self,
        session: Session,
        adapters: AdapterRegistry,
        thresholds: Optional[RuleThresholds] = None,
        clock: Optional[Clock] = None,
        date_range: Optional[str] = None,
    ):
        self.session = session
        self.adapters = adapters
        self.thresholds = thresholds or settings.thresholds
        self.clock = clock or _utcnow
        self.date_range = date_range or settings.metrics_date_range
        self.ledger = DecisionLedger(session)
        self.dispatcher = ActionDispatcher(session, adapters, self.ledger)

    async def monitor_all(self) -> MonitorReport:
        """Run one full pass. Always returns; failures end up in the report."""
        report = MonitorReport(started_at=self.clock().isoformat())
        logger.info("Starting campaign monitoring...")

        try:
            campaigns = get_active_campaigns(self.session)
        except Exception as e:
            logger.error(f"Could not load active campaigns: {e}")
            self.session.rollback()
            report.finished_at = self.clock().isoformat()
            return report

        report.campaigns_total = len(campaigns)
        logger.info(f"Monitoring {len(campaigns)} active campaigns")

        for campaign in campaigns:
            # Read before monitor_campaign: a rollback expires the instance
            campaign_id, name, platform = campaign.id, campaign.name, campaign.platform
            recorded_before = self.ledger.recorded
            try:
                outcome = await self.monitor_campaign(campaign)
            except Exception as e:
                self.session.rollback()
                logger.error(
                    f"Error monitoring campaign '{name}': {e}",
                    extra={"campaign_id": campaign_id, "platform": platform},
                )
                outcome = CampaignOutcome(
                    campaign_id=campaign_id,
                    campaign_name=name,
                    platform=platform,
                    success=False,
                    error=str(e),
                )
                report.campaigns_failed += 1
            report.outcomes.append(outcome)
            # Counted from the ledger: a campaign that fails mid-dispatch still
            # leaves the decisions it committed
            report.decisions_recorded += self.ledger.recorded - recorded_before
            report.alerts_created += len(outcome.alerts)

        report.finished_at = self.clock().isoformat()
        logger.info(
            f"Campaign monitoring completed: {report.campaigns_total} campaigns, "
            f"{report.campaigns_failed} failed, {report.decisions_recorded} decisions, "
            f"{report.alerts_created} alerts"
        )
        return report

    async def monitor_campaign(self, campaign: Campaign) -> CampaignOutcome:
        """Run the per-campaign sub-pipeline. Exceptions propagate to the caller."""
        extra = {"campaign_id": campaign.id, "platform": campaign.platform}
        now = self.clock()
        daily_budget = campaign.daily_budget or 0.0

        adapter = resolve_adapter(self.adapters, campaign.platform)
        raw = await adapter.get_campaign_metrics(campaign.campaign_id, self.date_range)
        metrics = normalize_metrics(raw)

        snapshot_date = to_account_time(now).date().isoformat()
        upsert_snapshot(self.session, campaign.id, snapshot_date, metrics)

        actions = evaluate_rules(metrics, daily_budget, now=now, thresholds=self.thresholds)
        await self.dispatcher.dispatch_all(campaign.id, actions, metrics_before=metrics)

        alerts = evaluate_alerts(metrics, daily_budget, thresholds=self.thresholds)
        for candidate in alerts:
            insert_alert(self.session, campaign.id, candidate)

        logger.info(
            f"Campaign '{campaign.name}' monitored. Decisions: {len(actions)}, alerts: {len(alerts)}",
            extra=extra,
        )
        return CampaignOutcome(
            campaign_id=campaign.id,
            campaign_name=campaign.name,
            platform=campaign.platform,
            metrics=metrics,
            actions=[a.type.value for a in actions],
            alerts=[a.type for a in alerts],
        )


async def run_monitoring_pass() -> MonitorReport:
    """Parameterless trigger entry point used by the scheduler."""
    adapters = build_adapters()
    try:
        with Session(engine) as session:
            return await CampaignMonitor(session, adapters).monitor_all()
    finally:
        await close_adapters(adapters)
