"""CAMPO — Google Ads Adapter.

Bids are steered through the campaign's target CPA; budgets through the
linked campaign budget resource.
"""

from typing import Any, Dict, List

from app.connectors.base import new_budget_for
from app.connectors.google.client import GoogleAdsAPIError, GoogleAdsClient
from app.models.optimization_models import (
    ActionDescriptor,
    ActionType,
    CampaignSpec,
    ExecutionResult,
)
from app.core.logging import get_logger

logger = get_logger("google.adapter")

MICROS = 1_000_000
DEFAULT_TARGET_CPA_MICROS = 50 * MICROS
DEFAULT_CPC_BID_MICROS = 5 * MICROS

# Generic range name → GAQL date range literal
DATE_RANGES = {
    "today": "TODAY",
    "yesterday": "YESTERDAY",
    "last_7d": "LAST_7_DAYS",
    "last_14d": "LAST_14_DAYS",
    "last_30d": "LAST_30_DAYS",
}


def _campaign_id(native_campaign_id: str) -> str:
    """Validate a numeric campaign id before it goes into GAQL."""
    cid = str(native_campaign_id).strip()
    if not cid.isdigit():
        raise GoogleAdsAPIError(f"Invalid Google Ads campaign id: {native_campaign_id!r}")
    return cid


def _num(value: Any) -> float:
    # int64 fields arrive as JSON strings
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


class GoogleAdsAdapter:
    """Platform adapter for Google Ads."""

    platform = "google"

    def __init__(self, client: GoogleAdsClient | None = None):
        self.client = client or GoogleAdsClient()

    async def close(self) -> None:
        await self.client.close()

    # ── Campaign Creation ──

    async def create_campaign(self, spec: CampaignSpec) -> Dict[str, Any]:
        """Create budget, campaign (paused), ad group and keywords."""
        budget = await self.client.mutate(
            "campaignBudgets",
            [
                {
                    "create": {
                        "name": f"{spec.name} Budget",
                        "amountMicros": str(round(spec.daily_budget * MICROS)),
                        "deliveryMethod": "STANDARD",
                    }
                }
            ],
        )
        campaign = await self.client.mutate(
            "campaigns",
            [
                {
                    "create": {
                        "name": spec.name,
                        "status": "PAUSED",
                        "advertisingChannelType": spec.campaign_type or "SEARCH",
                        "campaignBudget": budget[0]["resourceName"],
                        "targetCpa": {"targetCpaMicros": str(DEFAULT_TARGET_CPA_MICROS)},
                    }
                }
            ],
        )
        campaign_resource = campaign[0]["resourceName"]
        campaign_id = campaign_resource.split("/")[-1]

        ad_group = await self.client.mutate(
            "adGroups",
            [
                {
                    "create": {
                        "name": f"{spec.name} - Ad Group 1",
                        "campaign": campaign_resource,
                        "status": "ENABLED",
                        "type": "SEARCH_STANDARD",
                        "cpcBidMicros": str(DEFAULT_CPC_BID_MICROS),
                    }
                }
            ],
        )
        ad_group_resource = ad_group[0]["resourceName"]

        if spec.keywords:
            await self.client.mutate(
                "adGroupCriteria",
                [
                    {
                        "create": {
                            "adGroup": ad_group_resource,
                            "status": "ENABLED",
                            "keyword": {"text": keyword, "matchType": "BROAD"},
                        }
                    }
                    for keyword in spec.keywords
                ],
            )

        logger.info(
            f"Created Google Ads campaign {campaign_id} with {len(spec.keywords)} keywords",
            extra={"platform": self.platform},
        )
        return {
            "account_id": self.client.customer_id,
            "campaign_id": campaign_id,
            "ad_group": ad_group_resource,
            "campaign_budget": budget[0]["resourceName"],
            "name": spec.name,
            "review_url": f"https://ads.google.com/aw/campaigns?campaignId={campaign_id}",
        }

    # ── Metrics ──

    async def get_campaign_metrics(
        self, native_campaign_id: str, date_range: str = "today"
    ) -> Dict[str, Any]:
        cid = _campaign_id(native_campaign_id)
        during = DATE_RANGES.get(date_range, "TODAY")
        rows = await self.client.search(
            "SELECT campaign.id, metrics.impressions, metrics.clicks, "
            "metrics.cost_micros, metrics.conversions, metrics.conversions_value, "
            "metrics.ctr, metrics.average_cpc "
            f"FROM campaign WHERE campaign.id = {cid} AND segments.date DURING {during}"
        )

        totals = {"impressions": 0.0, "clicks": 0.0, "spend": 0.0, "conversions": 0.0, "revenue": 0.0}
        ctr = cpc = 0.0
        for row in rows:
            m = row.get("metrics", {})
            totals["impressions"] += _num(m.get("impressions"))
            totals["clicks"] += _num(m.get("clicks"))
            totals["spend"] += _num(m.get("costMicros")) / MICROS
            totals["conversions"] += _num(m.get("conversions"))
            totals["revenue"] += _num(m.get("conversionsValue"))
            ctr = _num(m.get("ctr")) * 100
            cpc = _num(m.get("averageCpc")) / MICROS
        return {**totals, "ctr": ctr, "cpc": cpc}

    # ── Decision Execution ──

    async def _lookup(self, cid: str, fields: str) -> Dict[str, Any]:
        rows = await self.client.search(f"SELECT {fields} FROM campaign WHERE campaign.id = {cid}")
        if not rows:
            raise GoogleAdsAPIError(f"Campaign {cid} not found in Google Ads")
        return rows[0].get("campaign", {})

    async def _adjust_target_cpa(self, cid: str, decision: ActionDescriptor) -> ExecutionResult:
        campaign = await self._lookup(
            cid, "campaign.resource_name, campaign.target_cpa.target_cpa_micros"
        )
        current = _num(campaign.get("targetCpa", {}).get("targetCpaMicros"))
        if current <= 0:
            return ExecutionResult(success=False, message="Campaign has no target CPA to adjust")
        new_micros = round(current * (1 + _num(decision.adjustment) / 100))
        await self.client.mutate(
            "campaigns",
            [
                {
                    "update": {
                        "resourceName": self.client.resource_name("campaigns", cid),
                        "targetCpa": {"targetCpaMicros": str(new_micros)},
                    },
                    "updateMask": "target_cpa.target_cpa_micros",
                }
            ],
        )
        return ExecutionResult(success=True, new_target_cpa=new_micros / MICROS)

    async def _set_budget(self, cid: str, decision: ActionDescriptor) -> ExecutionResult:
        campaign = await self._lookup(cid, "campaign.resource_name, campaign.campaign_budget")
        budget_resource = campaign.get("campaignBudget")
        if not budget_resource:
            raise GoogleAdsAPIError(f"Campaign {cid} has no campaign budget")
        new_budget = new_budget_for(decision)
        await self.client.mutate(
            "campaignBudgets",
            [
                {
                    "update": {
                        "resourceName": budget_resource,
                        "amountMicros": str(round(new_budget * MICROS)),
                    },
                    "updateMask": "amount_micros",
                }
            ],
        )
        return ExecutionResult(success=True, new_budget=new_budget)

    async def execute_decision(
        self, native_campaign_id: str, decision: ActionDescriptor
    ) -> ExecutionResult:
        if decision.type == ActionType.BID_ADJUSTMENT:
            return await self._adjust_target_cpa(_campaign_id(native_campaign_id), decision)

        if decision.type == ActionType.BUDGET_REALLOCATION:
            return await self._set_budget(_campaign_id(native_campaign_id), decision)

        if decision.type == ActionType.PAUSE_CAMPAIGN:
            cid = _campaign_id(native_campaign_id)
            operations: List[Dict[str, Any]] = [
                {
                    "update": {
                        "resourceName": self.client.resource_name("campaigns", cid),
                        "status": "PAUSED",
                    },
                    "updateMask": "status",
                }
            ]
            await self.client.mutate("campaigns", operations)
            return ExecutionResult(success=True, status="PAUSED")

        return ExecutionResult(success=False, message="Decision type not implemented")
