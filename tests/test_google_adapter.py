import asyncio
import json

import httpx
import pytest

from app.connectors.google.adapter import GoogleAdsAdapter
from app.connectors.google.client import GoogleAdsAPIError, GoogleAdsClient
from app.models.optimization_models import ActionDescriptor, ActionType, CampaignSpec

CUSTOMER = "1234567890"


class FakeGoogleAds:
    """MockTransport handler emulating the OAuth and Google Ads REST endpoints."""

    def __init__(self, target_cpa_micros="50000000", fail_status=None):
        self.target_cpa_micros = target_cpa_micros
        self.fail_status = fail_status
        self.token_requests = 0
        self.searches = []
        self.mutations = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.host == "oauth2.googleapis.com":
            self.token_requests += 1
            return httpx.Response(200, json={"access_token": "ya29.token", "expires_in": 3599})

        assert request.headers["Authorization"] == "Bearer ya29.token"
        assert request.headers["developer-token"] == "dev-token"
        if self.fail_status:
            return httpx.Response(
                self.fail_status,
                json={"error": {"code": self.fail_status, "message": "PERMISSION_DENIED"}},
            )

        body = json.loads(request.content)
        path = request.url.path
        if path.endswith("googleAds:search"):
            self.searches.append(body["query"])
            return httpx.Response(200, json={"results": self._search(body["query"])})

        resource = path.rsplit("/", 1)[-1].split(":")[0]
        self.mutations.append((resource, body["operations"]))
        return httpx.Response(
            200,
            json={"results": [{"resourceName": f"customers/{CUSTOMER}/{resource}/555"}]},
        )

    def _search(self, query):
        if "metrics." in query:
            return [
                {
                    "campaign": {"id": "555"},
                    "metrics": {
                        "impressions": "4000",
                        "clicks": "80",
                        "costMicros": "120500000",
                        "conversions": 6.0,
                        "conversionsValue": 300.0,
                        "ctr": 0.02,
                        "averageCpc": "1506250",
                    },
                }
            ]
        if "target_cpa" in query:
            cpa = {"targetCpaMicros": self.target_cpa_micros} if self.target_cpa_micros else {}
            return [{"campaign": {"resourceName": f"customers/{CUSTOMER}/campaigns/555", "targetCpa": cpa}}]
        if "campaign_budget" in query:
            return [{"campaign": {"campaignBudget": f"customers/{CUSTOMER}/campaignBudgets/9"}}]
        return []


def _adapter(fake):
    client = GoogleAdsClient(
        customer_id="123-456-7890",
        developer_token="dev-token",
        transport=httpx.MockTransport(fake),
        retry_base_delay=0,
    )
    return GoogleAdsAdapter(client=client)


def test_metrics_convert_micros():
    fake = FakeGoogleAds()
    metrics = asyncio.run(_adapter(fake).get_campaign_metrics("555", "last_7d"))

    assert metrics["impressions"] == 4000
    assert metrics["spend"] == pytest.approx(120.5)
    assert metrics["conversions"] == 6
    assert metrics["revenue"] == 300
    assert metrics["ctr"] == pytest.approx(2.0)
    assert "campaign.id = 555" in fake.searches[0]
    assert "DURING LAST_7_DAYS" in fake.searches[0]


def test_non_numeric_campaign_id_is_rejected():
    with pytest.raises(GoogleAdsAPIError):
        asyncio.run(_adapter(FakeGoogleAds()).get_campaign_metrics("555 OR 1=1"))


def test_access_token_is_cached():
    fake = FakeGoogleAds()
    adapter = _adapter(fake)

    async def twice():
        await adapter.get_campaign_metrics("555")
        await adapter.get_campaign_metrics("555")

    asyncio.run(twice())
    assert fake.token_requests == 1


def test_bid_adjustment_lowers_target_cpa():
    fake = FakeGoogleAds()
    decision = ActionDescriptor(
        type=ActionType.BID_ADJUSTMENT, action="decrease_bid", reason="r", adjustment=-10
    )
    result = asyncio.run(_adapter(fake).execute_decision("555", decision))

    assert result.success is True
    assert result.model_extra["new_target_cpa"] == pytest.approx(45.0)
    resource, operations = fake.mutations[0]
    assert resource == "campaigns"
    assert operations[0]["update"]["targetCpa"] == {"targetCpaMicros": "45000000"}
    assert operations[0]["updateMask"] == "target_cpa.target_cpa_micros"


def test_bid_adjustment_without_target_cpa_fails_softly():
    fake = FakeGoogleAds(target_cpa_micros=None)
    decision = ActionDescriptor(type=ActionType.BID_ADJUSTMENT, action="decrease_bid", reason="r", adjustment=-10)
    result = asyncio.run(_adapter(fake).execute_decision("555", decision))
    assert result.success is False
    assert fake.mutations == []


def test_budget_reallocation_updates_campaign_budget():
    fake = FakeGoogleAds()
    decision = ActionDescriptor(
        type=ActionType.BUDGET_REALLOCATION,
        action="reduce_budget",
        reason="r",
        adjustment=-20,
        current_budget=100,
    )
    result = asyncio.run(_adapter(fake).execute_decision("555", decision))

    assert result.model_extra["new_budget"] == 80.0
    resource, operations = fake.mutations[0]
    assert resource == "campaignBudgets"
    assert operations[0]["update"] == {
        "resourceName": f"customers/{CUSTOMER}/campaignBudgets/9",
        "amountMicros": "80000000",
    }


def test_pause_campaign():
    fake = FakeGoogleAds()
    decision = ActionDescriptor(type=ActionType.PAUSE_CAMPAIGN, action="pause", reason="r")
    result = asyncio.run(_adapter(fake).execute_decision("555", decision))
    assert result.model_extra["status"] == "PAUSED"
    assert fake.mutations[0][1][0]["update"] == {
        "resourceName": f"customers/{CUSTOMER}/campaigns/555",
        "status": "PAUSED",
    }


def test_unknown_decision_type():
    decision = ActionDescriptor(type=ActionType.PACING_ADJUSTMENT, action="x", reason="r")
    result = asyncio.run(_adapter(FakeGoogleAds()).execute_decision("555", decision))
    assert result.success is False


def test_api_error_is_raised_as_platform_error():
    fake = FakeGoogleAds(fail_status=403)
    with pytest.raises(GoogleAdsAPIError) as exc:
        asyncio.run(_adapter(fake).get_campaign_metrics("555"))
    assert exc.value.status_code == 403
    assert "PERMISSION_DENIED" in str(exc.value)


def test_create_campaign_chain():
    fake = FakeGoogleAds()
    spec = CampaignSpec(
        platform="google",
        name="Gypsum Ceilings",
        daily_budget=40,
        keywords=["gypsum ceiling", "gypsum ceiling price"],
    )
    created = asyncio.run(_adapter(fake).create_campaign(spec))

    assert created["account_id"] == CUSTOMER
    assert created["campaign_id"] == "555"
    assert [r for r, _ in fake.mutations] == ["campaignBudgets", "campaigns", "adGroups", "adGroupCriteria"]
    assert fake.mutations[0][1][0]["create"]["amountMicros"] == "40000000"
    assert fake.mutations[1][1][0]["create"]["status"] == "PAUSED"
    keywords = [op["create"]["keyword"]["text"] for op in fake.mutations[3][1]]
    assert keywords == spec.keywords


def test_list_error_body_raises_platform_error():
    def handler(request):
        if request.url.host == "oauth2.googleapis.com":
            return httpx.Response(200, json={"access_token": "ya29.token", "expires_in": 3599})
        return httpx.Response(400, json=[{"error": {"message": "batched"}}])

    with pytest.raises(GoogleAdsAPIError) as exc:
        asyncio.run(_adapter(handler).get_campaign_metrics("555"))
    assert exc.value.status_code == 400


def test_oauth_response_that_is_not_an_object():
    def handler(request):
        return httpx.Response(200, json=["ya29.token"])

    with pytest.raises(GoogleAdsAPIError):
        asyncio.run(_adapter(handler).get_campaign_metrics("555"))
