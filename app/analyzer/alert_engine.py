"""CAMPO — Alert Engine.

Sibling of the decision engine over the same KPIs. Produces
severity-tagged alerts; nothing is dispatched and repeated passes emit
repeated alerts (no dedup against unresolved ones).
"""

from typing import List, Optional

from app.config import RuleThresholds, settings
from app.models.campaign_models import Severity
from app.models.optimization_models import AlertCandidate, PerformanceMetrics


def evaluate_alerts(
    metrics: PerformanceMetrics,
    daily_budget: float,
    thresholds: Optional[RuleThresholds] = None,
) -> List[AlertCandidate]:
    """Return the alerts raised by the given KPIs, in fixed rule order."""
    t = thresholds or settings.thresholds
    daily_budget = daily_budget or 0.0
    alerts: List[AlertCandidate] = []

    # 1. CPL above target
    if metrics.cpl > t.max_cpl:
        alerts.append(
            AlertCandidate(
                type="high_cpl",
                severity=Severity.WARNING.value,
                message=f"CPL of {metrics.cpl:.2f} is above the target of {t.max_cpl:.2f}",
            )
        )

    # 2. ROAS below target with meaningful volume
    if metrics.roas < t.min_roas and metrics.conversions > t.min_roas_conversions:
        alerts.append(
            AlertCandidate(
                type="low_roas",
                severity=Severity.CRITICAL.value,
                message=f"ROAS of {metrics.roas:.2f}x is below the target of {t.min_roas:.2f}x",
            )
        )

    # 3. Daily budget nearly exhausted (campaigns without a budget are skipped)
    if daily_budget > 0 and metrics.spend > daily_budget * t.budget_alert_ratio:
        alerts.append(
            AlertCandidate(
                type="budget_exceeded",
                severity=Severity.INFO.value,
                message=(
                    f"Daily budget nearly exhausted: {metrics.spend:.2f} "
                    f"of {daily_budget:.2f}"
                ),
            )
        )

    return alerts
