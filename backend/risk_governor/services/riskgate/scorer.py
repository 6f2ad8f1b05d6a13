from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict

from risk_governor.schemas.risk import OrderType, RiskLevel

from .context import EvaluationContext
from .rules import RuleRun

# Fixed point contributions.
DAILY_PNL_POINTS = 30
OPEN_POSITIONS_POINTS = 20
DAY_TRADES_POINTS = 15
NOTIONAL_POINTS = 25
VOLATILE_MARKET_ORDER_POINTS = 10

DAILY_PNL_RATIO = 0.5
OPEN_POSITIONS_RATIO = 0.7
DAY_TRADES_THRESHOLD = 2
NOTIONAL_RATIO = 0.7


@dataclass(frozen=True)
class RiskScore:
    score: float
    level: RiskLevel
    contributions: Dict[str, float] = field(default_factory=dict)


def level_for_score(score: float) -> RiskLevel:
    if score >= 90:
        return RiskLevel.critical
    if score >= 70:
        return RiskLevel.high
    if score >= 40:
        return RiskLevel.medium
    return RiskLevel.low


def score_risk(ctx: EvaluationContext, run: RuleRun) -> RiskScore:
    """Score the order from 0 to 100 and map it to a risk tier.

    Every contribution is a step function of a single input, so the score
    never decreases when one input grows. Any blocking violation forces the
    critical tier whatever the number.
    """

    limits = ctx.limits
    account = ctx.account
    contributions: Dict[str, float] = {}

    if account.daily_pnl < -DAILY_PNL_RATIO * float(limits.max_daily_loss_absolute):
        contributions["daily_pnl"] = DAILY_PNL_POINTS
    if len(account.active_positions) >= OPEN_POSITIONS_RATIO * int(limits.max_concurrent_positions):
        contributions["open_positions"] = OPEN_POSITIONS_POINTS
    if account.day_trade_count_today >= DAY_TRADES_THRESHOLD:
        contributions["day_trades"] = DAY_TRADES_POINTS
    if ctx.notional > NOTIONAL_RATIO * ctx.max_position_value:
        contributions["notional"] = NOTIONAL_POINTS
    if ctx.order.order_type == OrderType.market and ctx.order.high_volatility:
        contributions["volatile_market_order"] = VOLATILE_MARKET_ORDER_POINTS

    score = float(max(0, min(100, sum(contributions.values()))))
    level = RiskLevel.critical if run.has_blocking_violation else level_for_score(score)
    return RiskScore(score=score, level=level, contributions=contributions)


__all__ = ["RiskScore", "score_risk", "level_for_score"]
