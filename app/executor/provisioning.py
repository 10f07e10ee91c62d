"""CAMPO — Campaign Provisioning.

Creates a campaign on its ad platform and registers it locally. New
campaigns start ``paused`` so an operator can review before activation.
"""

import json

from sqlmodel import Session

from app.connectors.base import AdapterRegistry, resolve_adapter
from app.executor.ledger import DecisionLedger
from app.models.campaign_models import Campaign, CampaignStatus
from app.models.optimization_models import ActionType, CampaignSpec
from app.store.campaign_store import save_campaign
from app.core.logging import get_logger

logger = get_logger("executor.provisioning")


async def provision_campaign(
    session: Session,
    adapters: AdapterRegistry,
    spec: CampaignSpec,
) -> Campaign:
    """Create ``spec`` on its platform, store it paused and log the decision.

    Platform errors propagate; nothing is stored when creation fails.
    """
    adapter = resolve_adapter(adapters, spec.platform)
    created = await adapter.create_campaign(spec)

    campaign = save_campaign(
        session,
        Campaign(
            platform=spec.platform,
            account_id=str(created["account_id"]),
            campaign_id=str(created["campaign_id"]),
            name=created.get("name", spec.name),
            objective=spec.objective,
            status=CampaignStatus.PAUSED.value,
            daily_budget=spec.daily_budget,
            metadata_json=json.dumps(
                {"platform_result": created, "targeting": spec.targeting}, default=str
            ),
        ),
    )

    DecisionLedger(session).record(
        campaign_id=campaign.id,
        decision_type=ActionType.CAMPAIGN_CREATION.value,
        reason=f"Campaign created for {spec.name} with a daily budget of {spec.daily_budget:.2f}",
        action_taken=created,
        success=True,
    )
    logger.info(
        f"Provisioned campaign '{campaign.name}' ({campaign.campaign_id})",
        extra={"campaign_id": campaign.id, "platform": campaign.platform},
    )
    return campaign
