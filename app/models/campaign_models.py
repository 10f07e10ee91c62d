"""CAMPO — Campaign, Metrics, Decision & Alert Tables.

Campaign is the aggregate root. Snapshots, decisions and alerts hold a
plain reference to it; nothing is ever deleted or cascaded.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import event, inspect
from sqlmodel import SQLModel, Field, UniqueConstraint


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Platform(str, Enum):
    """Ad platforms with an adapter."""

    META = "meta"
    GOOGLE = "google"


class CampaignStatus(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    ARCHIVED = "archived"


class Severity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class ImmutableDecisionError(Exception):
    """Raised when a write tries to rewrite an audited decision field."""


class Campaign(SQLModel, table=True):
    """A campaign managed on an external ad platform."""

    __tablename__ = "campaigns"

    id: str = Field(
        default_factory=lambda: uuid.uuid4().hex,
        primary_key=True,
        description="Internal campaign id",
    )
    platform: str = Field(index=True, description="meta | google")
    account_id: str = Field(index=True, description="Platform ad account id")
    campaign_id: str = Field(description="Platform-native campaign id")
    name: str
    objective: str = ""
    status: str = Field(
        default=CampaignStatus.PAUSED.value,
        index=True,
        description="active | paused | archived",
    )
    daily_budget: float = 0.0
    total_spent: float = 0.0
    metadata_json: str = Field(default="{}", description="Opaque platform data")
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class MetricsSnapshot(SQLModel, table=True):
    """Metrics as of the latest monitoring pass for one campaign-day.

    Unique on (campaign_id, date): a later pass overwrites the row.
    """

    __tablename__ = "performance_metrics"
    __table_args__ = (
        UniqueConstraint("campaign_id", "date", name="uq_metrics_campaign_date"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    campaign_id: str = Field(index=True, foreign_key="campaigns.id")
    date: str = Field(index=True, description="YYYY-MM-DD")
    impressions: int = 0
    clicks: int = 0
    conversions: float = 0.0
    spend: float = 0.0
    revenue: float = 0.0
    ctr: float = 0.0
    cpc: float = 0.0
    cpl: float = 0.0
    cpa: float = 0.0
    roas: float = 0.0
    conversion_rate: float = 0.0
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class Decision(SQLModel, table=True):
    """Append-only audit record of an automated decision.

    Only ``metrics_after`` and ``success`` may change after insert.
    """

    __tablename__ = "ai_decisions"

    id: Optional[int] = Field(default=None, primary_key=True)
    campaign_id: Optional[str] = Field(
        default=None, index=True, foreign_key="campaigns.id"
    )
    decision_type: str = Field(index=True)
    reason: str
    action_taken: str = Field(description="JSON: decision + platform result")
    metrics_before: Optional[str] = Field(default=None, description="JSON")
    metrics_after: Optional[str] = Field(default=None, description="JSON")
    success: Optional[bool] = None
    created_at: datetime = Field(default_factory=_utcnow, index=True)


class Alert(SQLModel, table=True):
    """Severity-tagged alert, resolved out-of-band by an operator."""

    __tablename__ = "alerts"

    id: Optional[int] = Field(default=None, primary_key=True)
    campaign_id: Optional[str] = Field(
        default=None, index=True, foreign_key="campaigns.id"
    )
    alert_type: str
    severity: str = Field(index=True, description="info | warning | critical")
    message: str
    resolved: bool = Field(default=False, index=True)
    resolved_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=_utcnow)


IMMUTABLE_DECISION_FIELDS = (
    "campaign_id",
    "decision_type",
    "reason",
    "action_taken",
    "metrics_before",
    "created_at",
)


@event.listens_for(Decision, "before_update")
def _guard_decision_update(mapper, connection, target: Decision) -> None:
    state = inspect(target)
    for field in IMMUTABLE_DECISION_FIELDS:
        if state.attrs[field].history.has_changes():
            raise ImmutableDecisionError(
                f"Decision {target.id}: '{field}' cannot be modified"
            )
