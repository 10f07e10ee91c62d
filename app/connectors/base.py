"""CAMPO — Platform Adapter Contract.

Adapters are plain objects selected by ``Campaign.platform`` from a
strategy table (``{"meta": MetaAdsAdapter(), "google": GoogleAdsAdapter()}``)
injected into the monitor and the dispatcher.
"""

from typing import Any, Dict, Mapping, Protocol, Tuple, runtime_checkable

import httpx

from app.models.optimization_models import (
    ActionDescriptor,
    CampaignSpec,
    ExecutionResult,
)


class PlatformAPIError(Exception):
    """Raised when an ad platform call fails (network, auth, 4xx/5xx, bad payload)."""

    def __init__(self, message: str, status_code: int = 0, error_code: int = 0):
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(message)


class UnsupportedPlatformError(Exception):
    """Raised when no adapter is registered for a campaign's platform."""


@runtime_checkable
class PlatformAdapter(Protocol):
    """Capabilities every ad platform exposes to the optimizer."""

    async def create_campaign(self, spec: CampaignSpec) -> Dict[str, Any]:
        """Create the campaign (paused) and return at least
        ``{account_id, campaign_id, name}``."""
        ...

    async def get_campaign_metrics(
        self, native_campaign_id: str, date_range: str = "today"
    ) -> Dict[str, Any]:
        """Return raw counters ``{impressions, clicks, spend, conversions,
        revenue}`` plus any platform-reported rates."""
        ...

    async def execute_decision(
        self, native_campaign_id: str, decision: ActionDescriptor
    ) -> ExecutionResult:
        """Apply a decision. Unknown types return ``success=False``."""
        ...

    async def close(self) -> None: ...


AdapterRegistry = Mapping[str, PlatformAdapter]


def resolve_adapter(adapters: AdapterRegistry, platform: str) -> PlatformAdapter:
    """Pick the adapter for a platform or raise UnsupportedPlatformError."""
    adapter = adapters.get(platform)
    if adapter is None:
        raise UnsupportedPlatformError(f"No adapter registered for platform '{platform}'")
    return adapter


def new_budget_for(decision: ActionDescriptor) -> float:
    """Target budget of a budget_reallocation: explicit or current ± adjustment %."""
    if decision.new_budget is not None:
        return round(decision.new_budget, 2)
    current = decision.current_budget or 0.0
    try:
        pct = float(decision.adjustment or 0)
    except (TypeError, ValueError):
        pct = 0.0
    return round(current * (1 + pct / 100), 2)


def error_details(response: httpx.Response, default_message: str) -> Tuple[str, int]:
    """Extract ``(message, code)`` from an ``{"error": {...}}`` response body.

    Bodies that are not JSON objects, or whose ``error`` is not an object,
    fall back to ``default_message`` and code 0.
    """
    try:
        body = response.json()
    except ValueError:
        return default_message, 0
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        code = error.get("code", 0)
        return str(error.get("message") or default_message), code if isinstance(code, int) else 0
    if isinstance(error, str) and error:
        return error, 0
    return default_message, 0
