from __future__ import annotations

from math import floor
from typing import Any, Mapping, Optional

from pydantic import ValidationError

from risk_governor.core.errors import ConfigurationError, InvalidInputError
from risk_governor.schemas.risk import (
    AccountSnapshot,
    Modifications,
    OrderRequest,
    RemainingCapacity,
    RiskLimits,
    Verdict,
)

from .context import EvaluationContext, build_context
from .rules import RuleRun, run_rules
from .scorer import score_risk


def _error_fields(exc: ValidationError) -> list[str]:
    return sorted({".".join(str(p) for p in err.get("loc", ())) for err in exc.errors()})


def coerce_limits(limits: RiskLimits | Mapping[str, Any] | None) -> RiskLimits:
    """Return validated limits or fail closed with ConfigurationError."""

    if limits is None:
        raise ConfigurationError("Risk limits are not configured.")
    if isinstance(limits, RiskLimits):
        return limits
    if isinstance(limits, Mapping):
        try:
            return RiskLimits.model_validate(dict(limits))
        except ValidationError as exc:
            raise ConfigurationError(
                "Risk limits are incomplete or invalid.",
                details={"fields": _error_fields(exc)},
            ) from exc
    raise ConfigurationError(f"Unsupported risk limits type: {type(limits).__name__}.")


def coerce_order(order: OrderRequest | Mapping[str, Any]) -> OrderRequest:
    if isinstance(order, OrderRequest):
        return order
    try:
        return OrderRequest.model_validate(dict(order))
    except (TypeError, ValueError) as exc:
        fields = _error_fields(exc) if isinstance(exc, ValidationError) else []
        raise InvalidInputError("Order request is malformed.", details={"fields": fields}) from exc


def coerce_account(account: AccountSnapshot | Mapping[str, Any]) -> AccountSnapshot:
    if isinstance(account, AccountSnapshot):
        return account
    try:
        return AccountSnapshot.model_validate(dict(account))
    except (TypeError, ValueError) as exc:
        fields = _error_fields(exc) if isinstance(exc, ValidationError) else []
        raise InvalidInputError("Account snapshot is malformed.", details={"fields": fields}) from exc


def remaining_capacity(account: AccountSnapshot, limits: RiskLimits) -> RemainingCapacity:
    return RemainingCapacity(
        remaining_daily_loss=max(0.0, float(limits.max_daily_loss_absolute) + float(account.daily_pnl)),
        remaining_positions=max(0, int(limits.max_concurrent_positions) - len(account.active_positions)),
        remaining_day_trades=max(0, int(limits.pattern_day_trader_limit) - int(account.day_trade_count_today)),
    )


def _suggest_modifications(ctx: EvaluationContext, run: RuleRun) -> Optional[Modifications]:
    """Size the order down to the per-trade risk budget.

    The suggestion is only returned when an order at that quantity passes
    every blocking rule on its own.
    """

    if "RISK_PER_TRADE" not in {v.rule_id for v in run.violations}:
        return None
    risk_per_share = ctx.risk_per_share
    if not risk_per_share or risk_per_share <= 0:
        return None

    limit_pct = float(ctx.limits.max_risk_per_trade_pct)
    budget = limit_pct / 100.0 * float(ctx.account.equity)
    suggested = floor(budget / risk_per_share)

    # One step down absorbs float rounding at the exact budget boundary.
    for quantity in (suggested, suggested - 1):
        if quantity < 1 or quantity >= ctx.order.quantity:
            continue
        try:
            candidate = ctx.with_quantity(quantity)
        except InvalidInputError:
            return None
        check = run_rules(candidate)
        if check.has_blocking_violation:
            return None
        if "RISK_PER_TRADE" in {v.rule_id for v in check.violations}:
            continue
        return Modifications(
            suggested_quantity=quantity,
            reason=(
                f"Reduce quantity from {ctx.order.quantity} to {quantity} to keep "
                f"per-trade risk within {limit_pct:.2f}% of equity."
            ),
        )
    return None


def evaluate_context(ctx: EvaluationContext) -> Verdict:
    """Run the rule catalog and scorer over a built context."""

    run = run_rules(ctx)
    risk = score_risk(ctx, run)
    return Verdict(
        allowed=not run.has_blocking_violation,
        violations=run.violations,
        warnings=run.warnings,
        risk_level=risk.level,
        risk_score=risk.score,
        modifications=_suggest_modifications(ctx, run),
        evaluated_rules=run.evaluated_rules,
        score_contributions=risk.contributions,
        metrics={
            "effective_price": ctx.effective_price,
            "notional": ctx.notional,
            "max_position_value": ctx.max_position_value,
            "position_size_pct": ctx.position_size_pct,
            "risk_per_share": ctx.risk_per_share,
            "risk_pct": ctx.risk_pct,
        },
        remaining=remaining_capacity(ctx.account, ctx.limits),
        limits_hash=ctx.limits.content_hash(),
    )


def prepare_context(
    order: OrderRequest | Mapping[str, Any],
    account: AccountSnapshot | Mapping[str, Any],
    limits: RiskLimits | Mapping[str, Any] | None,
    today_trade_count: Optional[int] = None,
    *,
    workspace_id: Optional[str] = None,
) -> EvaluationContext:
    limits_model = coerce_limits(limits)
    return build_context(
        coerce_order(order),
        coerce_account(account),
        limits_model,
        today_trade_count,
        workspace_id=workspace_id,
    )


def decide(
    order: OrderRequest | Mapping[str, Any],
    account: AccountSnapshot | Mapping[str, Any],
    limits: RiskLimits | Mapping[str, Any] | None,
    today_trade_count: Optional[int] = None,
    *,
    workspace_id: Optional[str] = None,
) -> Verdict:
    """Evaluate an order and return its verdict.

    Risk failures are reported in the verdict, never raised. Malformed input
    raises InvalidInputError; missing or invalid limits raise
    ConfigurationError.
    """

    ctx = prepare_context(order, account, limits, today_trade_count, workspace_id=workspace_id)
    return evaluate_context(ctx)


__all__ = [
    "decide",
    "evaluate_context",
    "prepare_context",
    "coerce_limits",
    "coerce_order",
    "coerce_account",
    "remaining_capacity",
]
