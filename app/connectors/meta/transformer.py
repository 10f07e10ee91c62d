"""CAMPO — Meta Insight → Raw Counters Transformer.

Meta reports conversions inside the ``actions`` list and revenue inside
``action_values``. Aggregate and pixel-specific action types describe the
same events, so each group contributes its first present type only.
"""

from typing import Any, Dict, List

# Direct-map fields from Meta insight response
DIRECT_METRICS = ["impressions", "clicks", "spend", "ctr", "cpc", "cpm"]

# Preference-ordered aliases of one conversion event
LEAD_ACTIONS = ["lead", "onsite_conversion.lead_grouped", "offsite_conversion.fb_pixel_lead"]
PURCHASE_ACTIONS = ["purchase", "offsite_conversion.fb_pixel_purchase"]
CONVERSION_GROUPS = [LEAD_ACTIONS, PURCHASE_ACTIONS]


def _safe_float(value: Any) -> float:
    """Safely convert a value to float."""
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _first_present(values: Dict[str, float], aliases: List[str]) -> float:
    for action_type in aliases:
        if action_type in values:
            return values[action_type]
    return 0.0


def _index_actions(entries: Any) -> Dict[str, float]:
    indexed: Dict[str, float] = {}
    for entry in entries or []:
        if isinstance(entry, dict) and entry.get("action_type"):
            indexed[entry["action_type"]] = _safe_float(entry.get("value", 0))
    return indexed


def transform_insight_row(row: Dict[str, Any] | None) -> Dict[str, float]:
    """Turn one insights row into ``{impressions, clicks, spend, conversions,
    revenue, ctr, cpc, cpm}``. An empty row yields zeros."""
    row = row or {}
    metrics: Dict[str, float] = {
        name: _safe_float(row.get(name, 0)) for name in DIRECT_METRICS
    }

    actions = _index_actions(row.get("actions"))
    metrics["conversions"] = sum(
        _first_present(actions, group) for group in CONVERSION_GROUPS
    )

    # Action values (revenue)
    action_values = _index_actions(row.get("action_values"))
    metrics["revenue"] = _first_present(action_values, PURCHASE_ACTIONS)

    return metrics
