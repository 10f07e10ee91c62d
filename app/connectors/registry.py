"""CAMPO — Adapter strategy table."""

from typing import Dict

from app.connectors.base import PlatformAdapter
from app.connectors.google.adapter import GoogleAdsAdapter
from app.connectors.meta.adapter import MetaAdsAdapter
from app.models.campaign_models import Platform


def build_adapters() -> Dict[str, PlatformAdapter]:
    """One adapter per supported platform, configured from settings."""
    return {
        Platform.META.value: MetaAdsAdapter(),
        Platform.GOOGLE.value: GoogleAdsAdapter(),
    }


async def close_adapters(adapters: Dict[str, PlatformAdapter]) -> None:
    for adapter in adapters.values():
        await adapter.close()
