"""CAMPO — Action Dispatcher.

Sends platform-mutating actions to the campaign's adapter and writes
every action (advisory ones included) to the decision ledger. A platform
failure is recorded with ``success=False`` and never raised.
"""

import time
from datetime import datetime, timezone
from typing import List, Optional

from sqlmodel import Session

from app.connectors.base import (
    AdapterRegistry,
    PlatformAPIError,
    UnsupportedPlatformError,
    resolve_adapter,
)
from app.executor.ledger import DecisionLedger
from app.models.campaign_models import Campaign, CampaignStatus, Decision
from app.models.optimization_models import (
    ActionDescriptor,
    ActionType,
    ExecutionResult,
    PerformanceMetrics,
)
from app.store.campaign_store import get_campaign
from app.core.logging import get_logger

logger = get_logger("executor.dispatcher")


class ActionDispatcher:
    """Executes candidate actions against the owning ad platform."""

    def __init__(
        self,
        session: Session,
        adapters: AdapterRegistry,
        ledger: Optional[DecisionLedger] = None,
    ):
        self.session = session
        self.adapters = adapters
        self.ledger = ledger or DecisionLedger(session)

    async def dispatch(
        self,
        campaign_id: str,
        action: ActionDescriptor,
        metrics_before: Optional[PerformanceMetrics] = None,
    ) -> Decision:
        """Execute (or just log, for advisory types) one action.

        Raises CampaignNotFoundError when the campaign row is missing.
        """
        campaign = get_campaign(self.session, campaign_id)
        log_extra = {
            "campaign_id": campaign.id,
            "platform": campaign.platform,
            "decision_type": action.type.value,
        }

        result: Optional[ExecutionResult] = None
        if action.is_mutating:
            started = time.perf_counter()
            result = await self._execute(campaign, action)
            log_extra["duration_ms"] = round((time.perf_counter() - started) * 1000, 1)
            if result.success:
                self._apply_locally(campaign, action, result)
            else:
                logger.warning(
                    f"Action {action.action} failed for '{campaign.name}': {result.message}",
                    extra=log_extra,
                )
        else:
            logger.info(f"Advisory action for '{campaign.name}': {action.reason}", extra=log_extra)

        return self.ledger.record(
            campaign_id=campaign.id,
            decision_type=action.type.value,
            reason=action.reason,
            action_taken={
                "decision": action.model_dump(mode="json", exclude_none=True),
                "result": result.model_dump(mode="json") if result else None,
            },
            metrics_before=metrics_before,
            success=result.success if result else None,
        )

    async def dispatch_all(
        self,
        campaign_id: str,
        actions: List[ActionDescriptor],
        metrics_before: Optional[PerformanceMetrics] = None,
    ) -> List[Decision]:
        """Dispatch actions in order; one failed action never stops the rest."""
        return [await self.dispatch(campaign_id, a, metrics_before) for a in actions]

    async def _execute(self, campaign: Campaign, action: ActionDescriptor) -> ExecutionResult:
        try:
            adapter = resolve_adapter(self.adapters, campaign.platform)
            return await adapter.execute_decision(campaign.campaign_id, action)
        except UnsupportedPlatformError as e:
            return ExecutionResult(success=False, message=str(e))
        except PlatformAPIError as e:
            return ExecutionResult(
                success=False,
                message=str(e),
                status_code=e.status_code,
                error_code=e.error_code,
            )

    def _apply_locally(
        self, campaign: Campaign, action: ActionDescriptor, result: ExecutionResult
    ) -> None:
        """Mirror a successful platform change onto the campaign row."""
        extras = result.model_extra or {}
        if action.type == ActionType.BUDGET_REALLOCATION and "new_budget" in extras:
            campaign.daily_budget = float(extras["new_budget"])
        elif action.type == ActionType.PAUSE_CAMPAIGN:
            campaign.status = CampaignStatus.PAUSED.value
        else:
            return
        campaign.updated_at = datetime.now(timezone.utc)
        self.session.add(campaign)
        self.session.commit()
