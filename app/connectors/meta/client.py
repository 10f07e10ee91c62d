"""CAMPO — Meta API Client.

Handles authentication, retry logic and rate limiting for the Meta
Marketing API.
"""

import asyncio
from typing import Any, Dict, Optional

import httpx

from app.config import settings
from app.connectors.base import PlatformAPIError, error_details
from app.core.logging import get_logger

logger = get_logger("meta.client")

MAX_RETRIES = 3
RETRY_BASE_DELAY = 2  # seconds


class MetaAPIError(PlatformAPIError):
    """Raised when Meta API returns an error."""


class MetaClient:
    """Async HTTP client for Meta Marketing API."""

    def __init__(
        self,
        access_token: str | None = None,
        ad_account_id: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        retry_base_delay: float = RETRY_BASE_DELAY,
    ):
        self.access_token = access_token or settings.meta_access_token
        self.ad_account_id = ad_account_id or settings.meta_ad_account_id
        self.base_url = f"{settings.meta_base_url}/{settings.meta_api_version}"
        self.retry_base_delay = retry_base_delay
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def account_path(self) -> str:
        """Ad account node, e.g. ``act_123``."""
        if self.ad_account_id.startswith("act_"):
            return self.ad_account_id
        return f"act_{self.ad_account_id}"

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=30.0, transport=self._transport)
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    # ── Core Request Method ──

    async def _request(
        self,
        method: str,
        path: str,
        params: Dict[str, Any] | None = None,
        payload: Dict[str, Any] | None = None,
    ) -> Dict[str, Any]:
        """Make a request with retry + rate-limit handling."""
        url = path if path.startswith("http") else f"{self.base_url}/{path}"
        params = dict(params or {})
        params["access_token"] = self.access_token

        client = await self._get_client()

        for attempt in range(1, MAX_RETRIES + 1):
            try:
                resp = await client.request(method, url, params=params, json=payload)

                # Rate limited
                if resp.status_code == 429 and attempt < MAX_RETRIES:
                    wait = self.retry_base_delay * (2 ** (attempt - 1))
                    logger.warning(
                        f"Rate limited (429). Retrying in {wait}s (attempt {attempt}/{MAX_RETRIES})"
                    )
                    await asyncio.sleep(wait)
                    continue

                resp.raise_for_status()
                body = resp.json()
                if not isinstance(body, dict):
                    raise MetaAPIError(
                        f"Malformed response from {url}: expected a JSON object",
                        resp.status_code,
                    )
                if "error" in body:
                    error_msg, error_code = error_details(resp, "Unknown Meta error")
                    raise MetaAPIError(error_msg, resp.status_code, error_code)
                return body

            except httpx.HTTPStatusError as e:
                error_msg, error_code = error_details(e.response, str(e))

                if attempt < MAX_RETRIES and e.response.status_code >= 500:
                    wait = self.retry_base_delay * (2 ** (attempt - 1))
                    logger.warning(
                        f"Server error {e.response.status_code}. Retrying in {wait}s"
                    )
                    await asyncio.sleep(wait)
                    continue

                raise MetaAPIError(error_msg, e.response.status_code, error_code) from e

            except httpx.RequestError as e:
                if attempt < MAX_RETRIES:
                    wait = self.retry_base_delay * (2 ** (attempt - 1))
                    logger.warning(f"Request error: {e}. Retrying in {wait}s")
                    await asyncio.sleep(wait)
                    continue
                raise MetaAPIError(
                    f"Connection failed after {MAX_RETRIES} retries: {e}"
                ) from e

            except ValueError as e:
                raise MetaAPIError(f"Malformed response from {url}: {e}") from e

        raise MetaAPIError("Max retries exhausted")

    async def get(self, path: str, params: Dict[str, Any] | None = None) -> Dict[str, Any]:
        return await self._request("GET", path, params=params)

    async def post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", path, payload=payload)
