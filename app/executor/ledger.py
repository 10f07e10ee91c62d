"""CAMPO — Decision Ledger.

Append-only trail of automated decisions. ``record`` only inserts;
``backfill_outcome`` is the one path that touches an existing row, and
it may only set ``metrics_after`` / ``success`` (the model guard rejects
anything else).
"""

import json
from typing import Any, List, Optional

from pydantic import BaseModel
from sqlmodel import Session, select

from app.models.campaign_models import Decision
from app.core.logging import get_logger

logger = get_logger("executor.ledger")


def _serialize(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, BaseModel):
        return value.model_dump_json()
    return json.dumps(value, default=str)


class DecisionLedger:
    """Durable, insert-only decision log."""

    def __init__(self, session: Session):
        self.session = session
        # Rows committed through this ledger instance
        self.recorded = 0

    def record(
        self,
        campaign_id: Optional[str],
        decision_type: str,
        reason: str,
        action_taken: Any,
        metrics_before: Any = None,
        success: Optional[bool] = None,
    ) -> Decision:
        """Insert one decision. ``campaign_id`` may be None for platform-wide events."""
        decision = Decision(
            campaign_id=campaign_id,
            decision_type=decision_type,
            reason=reason,
            action_taken=_serialize(action_taken) or "{}",
            metrics_before=_serialize(metrics_before),
            success=success,
        )
        self.session.add(decision)
        self.session.commit()
        self.session.refresh(decision)
        self.recorded += 1
        logger.info(
            f"Decision {decision.id} recorded: {reason}",
            extra={"campaign_id": campaign_id, "decision_type": decision_type},
        )
        return decision

    def backfill_outcome(
        self,
        decision_id: int,
        metrics_after: Any,
        success: Optional[bool] = None,
    ) -> Optional[Decision]:
        """Attach post-decision metrics (and optionally the verdict)."""
        decision = self.session.get(Decision, decision_id)
        if decision is None:
            return None
        decision.metrics_after = _serialize(metrics_after)
        if success is not None:
            decision.success = success
        self.session.add(decision)
        self.session.commit()
        self.session.refresh(decision)
        return decision

    def list_decisions(
        self,
        campaign_id: Optional[str] = None,
        decision_type: Optional[str] = None,
        limit: int = 100,
    ) -> List[Decision]:
        query = select(Decision)
        if campaign_id:
            query = query.where(Decision.campaign_id == campaign_id)
        if decision_type:
            query = query.where(Decision.decision_type == decision_type)
        return list(self.session.exec(query.order_by(Decision.id.desc()).limit(limit)).all())
