"""CAMPO — Central Configuration via Pydantic Settings."""

import os
from typing import Optional

from pydantic import BaseModel
from pydantic_settings import BaseSettings


class RuleThresholds(BaseModel):
    """Fixed policy constants for the decision and alert rules.

    Override any of them with e.g. ``THRESHOLDS__MAX_CPL=60``.
    """

    max_cpl: float = 50.0
    min_roas: float = 2.0
    min_roas_conversions: float = 10
    min_ctr: float = 1.0  # %
    min_ctr_impressions: float = 1000
    fast_burn_ratio: float = 0.8  # share of daily budget
    fast_burn_cutoff_hour: int = 12
    budget_alert_ratio: float = 0.9
    bid_adjustment_pct: float = -10.0
    budget_adjustment_pct: float = -20.0


class Settings(BaseSettings):
    """Application settings loaded from environment variables / .env file."""

    # ── Meta API ──
    meta_access_token: str = ""
    meta_ad_account_id: str = ""
    meta_page_id: str = ""
    meta_api_version: str = "v22.0"
    meta_base_url: str = "https://graph.facebook.com"

    # ── Google Ads API ──
    google_ads_customer_id: str = ""
    google_ads_developer_token: str = ""
    google_ads_client_id: str = ""
    google_ads_client_secret: str = ""
    google_ads_refresh_token: str = ""
    google_ads_login_customer_id: Optional[str] = None
    google_ads_api_version: str = "v22"
    google_ads_base_url: str = "https://googleads.googleapis.com"
    google_oauth_token_url: str = "https://oauth2.googleapis.com/token"

    # ── Database ──
    database_url: str = ""

    # ── App ──
    log_level: str = "INFO"
    scheduler_enabled: bool = True
    monitor_interval_hours: int = 6
    weekly_report_weekday: str = "mon"
    weekly_report_hour: int = 8

    # ── Optimization ──
    account_timezone: str = "UTC"
    metrics_date_range: str = "today"  # today | yesterday | last_7d | last_30d
    thresholds: RuleThresholds = RuleThresholds()

    @property
    def effective_database_url(self) -> str:
        """Return PostgreSQL URL if set, otherwise fall back to SQLite."""
        if self.database_url:
            return self.database_url
        if os.environ.get("VERCEL"):
            return "sqlite:////tmp/campo.db"
        return "sqlite:///./campo.db"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_nested_delimiter": "__",
    }


settings = Settings()
