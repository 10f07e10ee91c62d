"""CAMPO — Google Ads API Client.

REST client for the Google Ads API: OAuth refresh-token exchange,
GAQL search with pagination, and mutate operations.
"""

import asyncio
import time
from typing import Any, Dict, List, Optional

import httpx

from app.config import settings
from app.connectors.base import PlatformAPIError, error_details
from app.core.logging import get_logger

logger = get_logger("google.client")

MAX_RETRIES = 3
RETRY_BASE_DELAY = 2  # seconds
TOKEN_EXPIRY_MARGIN = 60  # refresh a minute early


class GoogleAdsAPIError(PlatformAPIError):
    """Raised when the Google Ads API or OAuth endpoint returns an error."""


class GoogleAdsClient:
    """Async HTTP client for the Google Ads REST API."""

    def __init__(
        self,
        customer_id: str | None = None,
        developer_token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        retry_base_delay: float = RETRY_BASE_DELAY,
    ):
        self.customer_id = (customer_id or settings.google_ads_customer_id).replace("-", "")
        self.developer_token = developer_token or settings.google_ads_developer_token
        self.base_url = f"{settings.google_ads_base_url}/{settings.google_ads_api_version}"
        self.retry_base_delay = retry_base_delay
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._access_token: Optional[str] = None
        self._token_expires_at: float = 0.0

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=30.0, transport=self._transport)
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    # ── OAuth ──

    async def get_access_token(self) -> str:
        """Exchange the refresh token for an access token (cached until expiry)."""
        if self._access_token and time.monotonic() < self._token_expires_at:
            return self._access_token

        client = await self._get_client()
        try:
            resp = await client.post(
                settings.google_oauth_token_url,
                data={
                    "client_id": settings.google_ads_client_id,
                    "client_secret": settings.google_ads_client_secret,
                    "refresh_token": settings.google_ads_refresh_token,
                    "grant_type": "refresh_token",
                },
            )
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as e:
            raise GoogleAdsAPIError(
                f"OAuth token refresh failed: {e.response.text}", e.response.status_code
            ) from e
        except (httpx.RequestError, ValueError) as e:
            raise GoogleAdsAPIError(f"OAuth token refresh failed: {e}") from e

        token = data.get("access_token") if isinstance(data, dict) else None
        if not token:
            raise GoogleAdsAPIError("OAuth response did not contain an access token")
        self._access_token = token
        try:
            expires_in = float(data.get("expires_in", 3600))
        except (TypeError, ValueError):
            expires_in = 3600.0
        self._token_expires_at = time.monotonic() + expires_in - TOKEN_EXPIRY_MARGIN
        return token

    async def _headers(self) -> Dict[str, str]:
        headers = {
            "Authorization": f"Bearer {await self.get_access_token()}",
            "developer-token": self.developer_token,
        }
        if settings.google_ads_login_customer_id:
            headers["login-customer-id"] = settings.google_ads_login_customer_id.replace("-", "")
        return headers

    # ── Core Request Method ──

    async def _post(self, path: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """POST with retry on 429 / 5xx / connection errors."""
        url = f"{self.base_url}/customers/{self.customer_id}/{path}"
        client = await self._get_client()
        headers = await self._headers()

        for attempt in range(1, MAX_RETRIES + 1):
            try:
                resp = await client.post(url, json=body, headers=headers)
                resp.raise_for_status()
                result = resp.json()
                if not isinstance(result, dict):
                    raise GoogleAdsAPIError(
                        f"Malformed response from {url}: expected a JSON object",
                        resp.status_code,
                    )
                return result

            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                if attempt < MAX_RETRIES and (status == 429 or status >= 500):
                    wait = self.retry_base_delay * (2 ** (attempt - 1))
                    logger.warning(f"Google Ads error {status}. Retrying in {wait}s")
                    await asyncio.sleep(wait)
                    continue
                message, code = error_details(e.response, str(e))
                raise GoogleAdsAPIError(message, status, code) from e

            except httpx.RequestError as e:
                if attempt < MAX_RETRIES:
                    wait = self.retry_base_delay * (2 ** (attempt - 1))
                    logger.warning(f"Request error: {e}. Retrying in {wait}s")
                    await asyncio.sleep(wait)
                    continue
                raise GoogleAdsAPIError(
                    f"Connection failed after {MAX_RETRIES} retries: {e}"
                ) from e

            except ValueError as e:
                raise GoogleAdsAPIError(f"Malformed response from {url}: {e}") from e

        raise GoogleAdsAPIError("Max retries exhausted")

    # ── Search & Mutate ──

    async def search(self, query: str, max_pages: int = 20) -> List[Dict[str, Any]]:
        """Run a GAQL query and return all result rows."""
        rows: List[Dict[str, Any]] = []
        body: Dict[str, Any] = {"query": query}
        for _ in range(max_pages):
            result = await self._post("googleAds:search", body)
            rows.extend(result.get("results", []))
            token = result.get("nextPageToken")
            if not token:
                break
            body = {"query": query, "pageToken": token}
        return rows

    async def mutate(
        self, resource: str, operations: List[Dict[str, Any]]
    ) -> List[Dict[str, Any]]:
        """Apply operations to ``customers/{id}/{resource}:mutate``."""
        result = await self._post(f"{resource}:mutate", {"operations": operations})
        results = result.get("results")
        if not isinstance(results, list):
            raise GoogleAdsAPIError(f"Unexpected mutate response for {resource}")
        return results

    def resource_name(self, collection: str, entity_id: str) -> str:
        return f"customers/{self.customer_id}/{collection}/{entity_id}"
