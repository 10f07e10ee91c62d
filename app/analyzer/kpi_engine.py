"""CAMPO — KPI Engine.

Converts raw platform counters into derived KPIs:
CTR, CPC, CPL, CPA, ROAS, Conversion Rate.

Pure and total: any input mapping yields a finite, non-negative result.
"""

import math
from typing import Any, Mapping

from app.core.metric_registry import DERIVED_METRICS, RAW_COUNTERS
from app.models.optimization_models import PerformanceMetrics


def _safe_counter(value: Any) -> float:
    """Coerce a raw counter to a finite non-negative float, else 0."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number) or number < 0:
        return 0.0
    return number


def _ratio(numerator: float, denominator: float, scale: float = 1.0) -> float:
    if denominator <= 0:
        return 0.0
    result = numerator / denominator * scale
    # Overflow on extreme inputs (e.g. 1e308 / 1e-308)
    return result if math.isfinite(result) else 0.0


def normalize_metrics(raw: Mapping[str, Any] | None) -> PerformanceMetrics:
    """Derive KPIs from ``{impressions, clicks, spend, conversions, revenue}``.

    Platform-reported rates in ``raw`` (ctr, cpc, cpm, ...) are ignored.
    """
    raw = raw or {}
    counters = {name: _safe_counter(raw.get(name)) for name in RAW_COUNTERS}
    derived = {
        name: _ratio(counters[m.numerator], counters[m.denominator], m.scale)
        for name, m in DERIVED_METRICS.items()
    }
    return PerformanceMetrics(**counters, **derived)
