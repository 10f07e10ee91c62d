"""CAMPO — Unified Metric Registry.

Defines the canonical counters pulled from ad platforms and the KPIs
derived from them. Adapters must return the counters named here; the KPI
engine derives everything else from the formulas in ``DERIVED_METRICS``.
"""

from enum import Enum
from typing import Dict, Optional


class MetricType(str, Enum):
    """How a metric is categorised."""

    VOLUME = "volume"  # Raw counts: impressions, clicks
    COST = "cost"  # Monetary: spend
    REVENUE = "revenue"  # Income attributed to the campaign
    DERIVED = "derived"  # Computed by the KPI engine


class MetricDefinition:
    """Describes a single metric.

    Derived metrics name their ``numerator`` / ``denominator`` counters and
    a ``scale`` (100 for percentages).
    """

    def __init__(
        self,
        name: str,
        metric_type: MetricType,
        unit: str = "",
        description: str = "",
        numerator: Optional[str] = None,
        denominator: Optional[str] = None,
        scale: float = 1.0,
    ):
        self.name = name
        self.metric_type = metric_type
        self.unit = unit
        self.description = description
        self.numerator = numerator
        self.denominator = denominator
        self.scale = scale

    def __repr__(self) -> str:
        return f"<Metric {self.name} ({self.metric_type.value})>"


# ─────────────────────────────────────────────
# RAW COUNTERS, returned by every platform adapter
# ─────────────────────────────────────────────

RAW_COUNTERS: Dict[str, MetricDefinition] = {
    "impressions": MetricDefinition(
        "impressions", MetricType.VOLUME, "count", "Number of times ad was shown"
    ),
    "clicks": MetricDefinition("clicks", MetricType.VOLUME, "count", "Total clicks"),
    "spend": MetricDefinition(
        "spend", MetricType.COST, "currency", "Total amount spent"
    ),
    "conversions": MetricDefinition(
        "conversions", MetricType.VOLUME, "count", "Leads or purchases"
    ),
    "revenue": MetricDefinition(
        "revenue", MetricType.REVENUE, "currency", "Attributed conversion value"
    ),
}


# ─────────────────────────────────────────────
# DERIVED METRICS, computed by the KPI engine
# ─────────────────────────────────────────────

DERIVED_METRICS: Dict[str, MetricDefinition] = {
    "ctr": MetricDefinition(
        "ctr", MetricType.DERIVED, "%", "Clicks / Impressions",
        numerator="clicks", denominator="impressions", scale=100,
    ),
    "cpc": MetricDefinition(
        "cpc", MetricType.DERIVED, "currency", "Spend / Clicks",
        numerator="spend", denominator="clicks",
    ),
    # CPL and CPA share a formula: both price one converting action
    "cpl": MetricDefinition(
        "cpl", MetricType.DERIVED, "currency", "Cost per lead (Spend / Conversions)",
        numerator="spend", denominator="conversions",
    ),
    "cpa": MetricDefinition(
        "cpa", MetricType.DERIVED, "currency", "Cost per acquisition",
        numerator="spend", denominator="conversions",
    ),
    "roas": MetricDefinition(
        "roas", MetricType.DERIVED, "ratio", "Revenue / Spend",
        numerator="revenue", denominator="spend",
    ),
    "conversion_rate": MetricDefinition(
        "conversion_rate", MetricType.DERIVED, "%", "Conversions / Clicks",
        numerator="conversions", denominator="clicks", scale=100,
    ),
}
