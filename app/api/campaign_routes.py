"""CAMPO — Campaign Routes."""

from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, select

from app.api.monitor_routes import get_adapters
from app.connectors.base import AdapterRegistry, PlatformAPIError, UnsupportedPlatformError
from app.database import get_session
from app.executor.provisioning import provision_campaign
from app.models.campaign_models import Campaign
from app.models.optimization_models import CampaignSpec
from app.store.campaign_store import CampaignNotFoundError, get_campaign
from app.core.logging import get_logger

logger = get_logger("api.campaigns")

router = APIRouter(prefix="/campaigns", tags=["Campaigns"])


@router.get("", response_model=List[Campaign])
async def list_campaigns(session: Session = Depends(get_session)):
    return session.exec(select(Campaign).order_by(Campaign.created_at)).all()


@router.get("/{campaign_id}", response_model=Campaign)
async def read_campaign(campaign_id: str, session: Session = Depends(get_session)):
    try:
        return get_campaign(session, campaign_id)
    except CampaignNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("", response_model=Campaign, status_code=201)
async def create_campaign(
    spec: CampaignSpec,
    session: Session = Depends(get_session),
    adapters: AdapterRegistry = Depends(get_adapters),
):
    """Create a campaign on its platform. It is stored paused for review."""
    try:
        return await provision_campaign(session, adapters, spec)
    except UnsupportedPlatformError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except PlatformAPIError as e:
        logger.error(f"Campaign creation failed: {e}", extra={"platform": spec.platform})
        raise HTTPException(status_code=502, detail=f"Campaign creation failed: {str(e)}")
