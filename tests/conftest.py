from datetime import datetime, timezone

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

from app.config import RuleThresholds
from app.connectors.base import PlatformAPIError, new_budget_for
from app.models.campaign_models import Campaign
from app.models.optimization_models import ActionType, ExecutionResult

# 09:00 UTC, before the fast-burn cutoff
MORNING = datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc)
AFTERNOON = datetime(2026, 10, 19, 15, 0, tzinfo=timezone.utc)


class FakeAdapter:
    """In-memory platform adapter recording every call."""

    def __init__(self, metrics=None, fail_metrics_for=(), fail_execute=False):
        self.metrics = metrics or {}
        self.fail_metrics_for = set(fail_metrics_for)
        self.fail_execute = fail_execute
        self.executed = []
        self.created = []
        self.closed = False

    async def create_campaign(self, spec):
        self.created.append(spec)
        return {"account_id": "act_1", "campaign_id": "native-new", "name": spec.name}

    async def get_campaign_metrics(self, native_campaign_id, date_range="today"):
        if native_campaign_id in self.fail_metrics_for:
            raise PlatformAPIError("insights unavailable", status_code=503)
        return self.metrics.get(native_campaign_id, {})

    async def execute_decision(self, native_campaign_id, decision):
        self.executed.append((native_campaign_id, decision))
        if self.fail_execute:
            raise PlatformAPIError("token expired", status_code=401, error_code=190)
        if decision.type == ActionType.BUDGET_REALLOCATION:
            return ExecutionResult(success=True, new_budget=new_budget_for(decision))
        if decision.type == ActionType.PAUSE_CAMPAIGN:
            return ExecutionResult(success=True, status="PAUSED")
        if decision.type == ActionType.BID_ADJUSTMENT:
            return ExecutionResult(success=True)
        return ExecutionResult(success=False, message="Decision type not implemented")

    async def close(self):
        self.closed = True


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def thresholds():
    return RuleThresholds()


@pytest.fixture
def make_campaign(session):
    def _make(
        name="Gypsum Ceilings",
        platform="meta",
        native_id="111",
        daily_budget=100.0,
        status="active",
    ):
        campaign = Campaign(
            platform=platform,
            account_id="act_1",
            campaign_id=native_id,
            name=name,
            objective="OUTCOME_LEADS",
            status=status,
            daily_budget=daily_budget,
        )
        session.add(campaign)
        session.commit()
        session.refresh(campaign)
        return campaign

    return _make
