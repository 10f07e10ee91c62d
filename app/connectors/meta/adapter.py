"""CAMPO — Meta Ads Adapter.

Campaign creation, insight polling and decision execution on top of
MetaClient. Meta exposes budget controls only, so bid adjustments are
acknowledged without effect.
"""

from typing import Any, Dict, List

from app.config import settings
from app.connectors.base import new_budget_for
from app.connectors.meta.client import MetaClient
from app.connectors.meta.transformer import transform_insight_row
from app.models.optimization_models import (
    ActionDescriptor,
    ActionType,
    CampaignSpec,
    ExecutionResult,
)
from app.core.logging import get_logger

logger = get_logger("meta.adapter")

INSIGHT_FIELDS = "impressions,clicks,spend,ctr,cpc,cpm,actions,action_values"

# Generic range name → Meta date_preset
DATE_PRESETS = {
    "today": "today",
    "yesterday": "yesterday",
    "last_7d": "last_7d",
    "last_14d": "last_14d",
    "last_30d": "last_30d",
}


def _format_targeting(targeting: Dict[str, Any]) -> Dict[str, Any]:
    """Translate generic targeting into Meta's targeting spec."""
    formatted: Dict[str, Any] = {
        "geo_locations": targeting.get("geo_locations") or {"countries": ["BR"]},
        "age_min": targeting.get("age_min") or 18,
        "age_max": targeting.get("age_max") or 65,
    }
    for key in ("interests", "behaviors"):
        items = targeting.get(key) or []
        if items:
            formatted[key] = [{"id": i["id"], "name": i.get("name", "")} for i in items]
    return formatted


class MetaAdsAdapter:
    """Platform adapter for Meta (Facebook / Instagram) ads."""

    platform = "meta"

    def __init__(self, client: MetaClient | None = None):
        self.client = client or MetaClient()

    async def close(self) -> None:
        await self.client.close()

    # ── Campaign Creation ──

    async def create_campaign(self, spec: CampaignSpec) -> Dict[str, Any]:
        """Create campaign + ad set (+ ads) on Meta, all paused."""
        account = self.client.account_path
        campaign = await self.client.post(
            f"{account}/campaigns",
            {
                "name": spec.name,
                "objective": spec.objective or "OUTCOME_SALES",
                "status": "PAUSED",
                "special_ad_categories": [],
            },
        )
        adset = await self.client.post(
            f"{account}/adsets",
            {
                "name": f"{spec.name} - Ad Set 1",
                "campaign_id": campaign["id"],
                "targeting": _format_targeting(spec.targeting),
                "optimization_goal": "OFFSITE_CONVERSIONS",
                "billing_event": "IMPRESSIONS",
                "bid_strategy": "LOWEST_COST_WITHOUT_CAP",
                "daily_budget": round(spec.daily_budget * 100),  # cents
                "status": "PAUSED",
            },
        )
        ads: List[Dict[str, Any]] = []
        for creative in spec.creatives:
            ads.append(await self._create_ad(adset["id"], creative))

        logger.info(
            f"Created Meta campaign {campaign['id']} with {len(ads)} ads",
            extra={"platform": self.platform},
        )
        return {
            "account_id": self.client.ad_account_id,
            "campaign_id": campaign["id"],
            "adset_id": adset["id"],
            "ads": ads,
            "name": spec.name,
            "review_url": (
                "https://business.facebook.com/adsmanager/manage/campaigns"
                f"?act={self.client.ad_account_id}&selected_campaign_ids={campaign['id']}"
            ),
        }

    async def _create_ad(self, adset_id: str, creative: Dict[str, Any]) -> Dict[str, Any]:
        account = self.client.account_path
        ad_creative = await self.client.post(
            f"{account}/adcreatives",
            {
                "name": creative.get("name", "Creative 1"),
                "object_story_spec": {
                    "page_id": settings.meta_page_id,
                    "link_data": {
                        "image_hash": creative.get("image_hash"),
                        "link": creative.get("link"),
                        "message": creative.get("primary_text"),
                        "name": creative.get("headline"),
                        "description": creative.get("description"),
                        "call_to_action": {"type": creative.get("cta", "LEARN_MORE")},
                    },
                },
            },
        )
        return await self.client.post(
            f"{account}/ads",
            {
                "name": creative.get("name", "Ad 1"),
                "adset_id": adset_id,
                "creative": {"creative_id": ad_creative["id"]},
                "status": "PAUSED",
            },
        )

    # ── Metrics ──

    async def get_campaign_metrics(
        self, native_campaign_id: str, date_range: str = "today"
    ) -> Dict[str, Any]:
        """Fetch campaign insights for a date preset."""
        result = await self.client.get(
            f"{native_campaign_id}/insights",
            {
                "fields": INSIGHT_FIELDS,
                "date_preset": DATE_PRESETS.get(date_range, date_range),
            },
        )
        rows = result.get("data") or []
        return transform_insight_row(rows[0] if rows else {})

    # ── Decision Execution ──

    async def execute_decision(
        self, native_campaign_id: str, decision: ActionDescriptor
    ) -> ExecutionResult:
        if decision.type == ActionType.BID_ADJUSTMENT:
            return ExecutionResult(
                success=True,
                message="Bid adjustment not applicable on Meta Ads (budget-only controls)",
                applied=False,
            )

        if decision.type == ActionType.BUDGET_REALLOCATION:
            new_budget = new_budget_for(decision)
            await self.client.post(
                native_campaign_id, {"daily_budget": round(new_budget * 100)}
            )
            return ExecutionResult(success=True, new_budget=new_budget)

        if decision.type == ActionType.PAUSE_CAMPAIGN:
            await self.client.post(native_campaign_id, {"status": "PAUSED"})
            return ExecutionResult(success=True, status="PAUSED")

        return ExecutionResult(success=False, message="Decision type not implemented")
