"""CAMPO — Optimization Schemas (KPIs, actions, alerts, pass reports)."""

from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict


class ActionType(str, Enum):
    """Decision types produced by the rule engine or operators."""

    BID_ADJUSTMENT = "bid_adjustment"
    BUDGET_REALLOCATION = "budget_reallocation"
    PAUSE_CAMPAIGN = "pause_campaign"
    CREATIVE_REFRESH = "creative_refresh"
    PACING_ADJUSTMENT = "pacing_adjustment"
    CAMPAIGN_CREATION = "campaign_creation"


# Types that change state on the ad platform; the rest are advisory.
MUTATING_ACTIONS = frozenset(
    {
        ActionType.BID_ADJUSTMENT,
        ActionType.BUDGET_REALLOCATION,
        ActionType.PAUSE_CAMPAIGN,
    }
)


class PerformanceMetrics(BaseModel):
    """Raw counters plus the derived KPIs for one campaign."""

    impressions: float = 0.0
    clicks: float = 0.0
    spend: float = 0.0
    conversions: float = 0.0
    revenue: float = 0.0
    ctr: float = 0.0
    cpc: float = 0.0
    cpl: float = 0.0
    cpa: float = 0.0
    roas: float = 0.0
    conversion_rate: float = 0.0


class ActionDescriptor(BaseModel):
    """A candidate corrective action."""

    type: ActionType
    action: str
    reason: str
    adjustment: Optional[Union[float, str]] = None
    suggestion: Optional[str] = None
    current_budget: Optional[float] = None
    new_budget: Optional[float] = None

    @property
    def is_mutating(self) -> bool:
        return self.type in MUTATING_ACTIONS


class ExecutionResult(BaseModel):
    """Platform response to an executed decision.

    Extra keys carry platform-specific details (new_budget, status, ...).
    """

    model_config = ConfigDict(extra="allow")

    success: bool
    message: str = ""


class AlertCandidate(BaseModel):
    """Alert produced by the alert rules, before persistence."""

    type: str
    severity: str
    message: str


class CampaignSpec(BaseModel):
    """Input for creating a campaign on a platform."""

    platform: str
    name: str
    daily_budget: float
    objective: str = ""
    campaign_type: str = "SEARCH"
    targeting: Dict[str, Any] = {}
    keywords: List[str] = []
    creatives: List[Dict[str, Any]] = []


class CampaignOutcome(BaseModel):
    """What one campaign's sub-pipeline did during a pass."""

    campaign_id: str
    campaign_name: str = ""
    platform: str = ""
    success: bool = True
    metrics: Optional[PerformanceMetrics] = None
    actions: List[str] = []
    alerts: List[str] = []
    error: Optional[str] = None


class MonitorReport(BaseModel):
    """Summary of one monitoring pass."""

    started_at: str
    finished_at: str = ""
    campaigns_total: int = 0
    campaigns_failed: int = 0
    decisions_recorded: int = 0
    alerts_created: int = 0
    outcomes: List[CampaignOutcome] = []


class CampaignReportRow(BaseModel):
    """Seven-day aggregate for one campaign."""

    campaign_id: str
    campaign_name: str
    platform: str
    total_impressions: int = 0
    total_clicks: int = 0
    total_conversions: float = 0.0
    total_spend: float = 0.0
    total_revenue: float = 0.0
    avg_ctr: float = 0.0
    avg_cpc: float = 0.0
    avg_cpl: float = 0.0
    avg_roas: float = 0.0


class ReportSummary(BaseModel):
    total_spend: float = 0.0
    total_conversions: float = 0.0
    total_revenue: float = 0.0


class WeeklyReport(BaseModel):
    """Weekly performance report over the metrics store."""

    period: str = "Last 7 days"
    date_range_start: str
    date_range_end: str
    generated_at: str
    campaigns: List[CampaignReportRow] = []
    summary: ReportSummary = ReportSummary()
