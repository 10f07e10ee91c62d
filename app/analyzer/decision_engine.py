"""CAMPO — Decision Engine.

Maps a campaign's KPIs and budget to corrective actions. Rules are an
ordered list of (predicate, factory) pairs; every rule is evaluated on
every pass and more than one may fire:

- High CPL      → decrease bid
- Low ROAS      → reduce budget
- Weak CTR      → suggest new creatives (advisory)
- Fast burn     → switch to even delivery (advisory)
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List, Optional
from zoneinfo import ZoneInfo

from app.config import RuleThresholds, settings
from app.models.optimization_models import (
    ActionDescriptor,
    ActionType,
    PerformanceMetrics,
)
from app.core.logging import get_logger

logger = get_logger("analyzer.decision")


@dataclass(frozen=True)
class RuleContext:
    """Everything a rule may look at."""

    metrics: PerformanceMetrics
    daily_budget: float
    hour: int
    thresholds: RuleThresholds


@dataclass(frozen=True)
class DecisionRule:
    name: str
    predicate: Callable[[RuleContext], bool]
    factory: Callable[[RuleContext], ActionDescriptor]


# ── Rule: High cost per lead ──


def _high_cpl(ctx: RuleContext) -> bool:
    return ctx.metrics.cpl > ctx.thresholds.max_cpl


def _decrease_bid(ctx: RuleContext) -> ActionDescriptor:
    return ActionDescriptor(
        type=ActionType.BID_ADJUSTMENT,
        action="decrease_bid",
        reason=(
            f"CPL of {ctx.metrics.cpl:.2f} is above the target of "
            f"{ctx.thresholds.max_cpl:.2f}"
        ),
        adjustment=ctx.thresholds.bid_adjustment_pct,
    )


# ── Rule: Low return on ad spend ──


def _low_roas(ctx: RuleContext) -> bool:
    return (
        ctx.metrics.roas < ctx.thresholds.min_roas
        and ctx.metrics.conversions > ctx.thresholds.min_roas_conversions
    )


def _reduce_budget(ctx: RuleContext) -> ActionDescriptor:
    return ActionDescriptor(
        type=ActionType.BUDGET_REALLOCATION,
        action="reduce_budget",
        reason=(
            f"ROAS of {ctx.metrics.roas:.2f}x is below the target of "
            f"{ctx.thresholds.min_roas:.2f}x"
        ),
        adjustment=ctx.thresholds.budget_adjustment_pct,
        current_budget=ctx.daily_budget,
    )


# ── Rule: Weak engagement ──


def _weak_ctr(ctx: RuleContext) -> bool:
    return (
        ctx.metrics.ctr < ctx.thresholds.min_ctr
        and ctx.metrics.impressions > ctx.thresholds.min_ctr_impressions
    )


def _refresh_creatives(ctx: RuleContext) -> ActionDescriptor:
    return ActionDescriptor(
        type=ActionType.CREATIVE_REFRESH,
        action="suggest_new_creatives",
        reason=f"CTR of {ctx.metrics.ctr:.2f}% is too low",
        suggestion="Create new creatives with more persuasive copy",
    )


# ── Rule: Fast budget burn ──


def _fast_burn(ctx: RuleContext) -> bool:
    return (
        ctx.daily_budget > 0
        and ctx.metrics.spend > ctx.daily_budget * ctx.thresholds.fast_burn_ratio
        and ctx.hour < ctx.thresholds.fast_burn_cutoff_hour
    )


def _even_delivery(ctx: RuleContext) -> ActionDescriptor:
    return ActionDescriptor(
        type=ActionType.PACING_ADJUSTMENT,
        action="slow_down_delivery",
        reason=(
            f"Spending budget too fast: {ctx.metrics.spend:.2f} of "
            f"{ctx.daily_budget:.2f} before {ctx.thresholds.fast_burn_cutoff_hour}:00"
        ),
        adjustment="switch to even delivery",
    )


DECISION_RULES: List[DecisionRule] = [
    DecisionRule("high_cpl", _high_cpl, _decrease_bid),
    DecisionRule("low_roas", _low_roas, _reduce_budget),
    DecisionRule("weak_ctr", _weak_ctr, _refresh_creatives),
    DecisionRule("fast_burn", _fast_burn, _even_delivery),
]


def to_account_time(now: Optional[datetime] = None, tz_name: Optional[str] = None) -> datetime:
    """Convert to the account timezone. Naive datetimes are taken as-is."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now
    return now.astimezone(ZoneInfo(tz_name or settings.account_timezone))


def evaluate_rules(
    metrics: PerformanceMetrics,
    daily_budget: float,
    now: Optional[datetime] = None,
    thresholds: Optional[RuleThresholds] = None,
    rules: Optional[List[DecisionRule]] = None,
) -> List[ActionDescriptor]:
    """Run every rule in order and collect the actions that fire."""
    ctx = RuleContext(
        metrics=metrics,
        daily_budget=daily_budget or 0.0,
        hour=to_account_time(now).hour,
        thresholds=thresholds or settings.thresholds,
    )
    actions: List[ActionDescriptor] = []
    for rule in rules if rules is not None else DECISION_RULES:
        if rule.predicate(ctx):
            actions.append(rule.factory(ctx))
            logger.debug(f"Rule '{rule.name}' fired")
    return actions
