from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, List, Optional, Tuple

from risk_governor.schemas.risk import RiskWarning, Severity, Side, Violation

from .context import EvaluationContext, is_valid_symbol

# Position size warns once the order uses this share of the limit.
POSITION_SIZE_WARN_RATIO = 0.8


class OutcomeKind(str, Enum):
    passed = "pass"
    warn = "warn"
    violate = "violate"


@dataclass(frozen=True)
class RuleOutcome:
    kind: OutcomeKind
    violation: Optional[Violation] = None
    warning: Optional[RiskWarning] = None

    @property
    def blocking(self) -> bool:
        return self.violation is not None and self.violation.blocking


PASS = RuleOutcome(kind=OutcomeKind.passed)


def _violate(rule_id: str, severity: Severity, message: str, **details: Any) -> RuleOutcome:
    return RuleOutcome(
        kind=OutcomeKind.violate,
        violation=Violation(rule_id=rule_id, severity=severity, message=message, details=details),
    )


def _warn(rule_id: str, message: str, **details: Any) -> RuleOutcome:
    return RuleOutcome(
        kind=OutcomeKind.warn,
        warning=RiskWarning(rule_id=rule_id, message=message, details=details),
    )


def check_symbol_format(ctx: EvaluationContext) -> RuleOutcome:
    if is_valid_symbol(ctx.symbol):
        return PASS
    return _violate(
        "SYMBOL_FORMAT",
        Severity.high,
        f"Symbol {ctx.symbol!r} is not a valid ticker.",
        symbol=ctx.symbol,
    )


def check_blacklist(ctx: EvaluationContext) -> RuleOutcome:
    if ctx.symbol.upper() not in ctx.limits.blacklisted_symbols:
        return PASS
    return _violate(
        "BLACKLISTED_SYMBOL",
        Severity.high,
        f"{ctx.symbol} is blacklisted for trading.",
        symbol=ctx.symbol,
    )


def check_min_price(ctx: EvaluationContext) -> RuleOutcome:
    minimum = float(ctx.limits.min_order_price)
    if ctx.effective_price >= minimum:
        return PASS
    return _violate(
        "MIN_PRICE",
        Severity.high,
        f"Price {ctx.effective_price:.2f} below minimum {minimum:.2f}.",
        price=ctx.effective_price,
        min_order_price=minimum,
    )


def check_daily_loss(ctx: EvaluationContext) -> RuleOutcome:
    # Independent of the order: once breached, every order is denied.
    limit = float(ctx.limits.max_daily_loss_absolute)
    pnl = float(ctx.account.daily_pnl)
    if pnl > -limit:
        return PASS
    return _violate(
        "DAILY_LOSS_LIMIT",
        Severity.high,
        f"Daily loss limit of ${limit:,.0f} reached.",
        daily_pnl=pnl,
        max_daily_loss_absolute=limit,
    )


def check_buying_power(ctx: EvaluationContext) -> RuleOutcome:
    if ctx.order.side != Side.buy:
        return PASS
    cash = float(ctx.account.available_cash)
    if ctx.notional <= cash:
        return PASS
    return _violate(
        "BUYING_POWER",
        Severity.high,
        f"Order value ${ctx.notional:,.2f} exceeds available cash ${cash:,.2f}.",
        notional=ctx.notional,
        available_cash=cash,
    )


def check_min_order_value(ctx: EvaluationContext) -> RuleOutcome:
    minimum = float(ctx.limits.min_order_value)
    if ctx.notional >= minimum:
        return PASS
    return _violate(
        "MIN_ORDER_VALUE",
        Severity.medium,
        f"Order value ${ctx.notional:,.2f} below minimum ${minimum:,.2f}.",
        notional=ctx.notional,
        min_order_value=minimum,
    )


def check_position_size(ctx: EvaluationContext) -> RuleOutcome:
    limit_pct = float(ctx.limits.max_position_size_pct_of_equity)
    pct = ctx.position_size_pct
    if pct is None:
        return _violate(
            "POSITION_SIZE",
            Severity.high,
            "Account has no equity to size the position against.",
            notional=ctx.notional,
            equity=float(ctx.account.equity),
        )
    if pct > limit_pct:
        return _violate(
            "POSITION_SIZE",
            Severity.high,
            f"Position size {pct:.1f}% exceeds limit {limit_pct:.1f}%.",
            position_size_pct=pct,
            max_position_size_pct_of_equity=limit_pct,
        )
    if pct > POSITION_SIZE_WARN_RATIO * limit_pct:
        return _warn(
            "POSITION_SIZE",
            f"Position size {pct:.1f}% is close to the {limit_pct:.1f}% limit.",
            position_size_pct=pct,
            max_position_size_pct_of_equity=limit_pct,
        )
    return PASS


def check_concurrent_positions(ctx: EvaluationContext) -> RuleOutcome:
    if ctx.order.side != Side.buy:
        return PASS
    # Adding to an existing position does not open a new one.
    if ctx.symbol.upper() in ctx.held_symbols:
        return PASS
    open_count = len(ctx.account.active_positions)
    maximum = int(ctx.limits.max_concurrent_positions)
    if open_count < maximum:
        return PASS
    return _violate(
        "MAX_POSITIONS",
        Severity.medium,
        f"Maximum {maximum} concurrent positions reached.",
        open_positions=open_count,
        max_concurrent_positions=maximum,
    )


def check_pattern_day_trader(ctx: EvaluationContext) -> RuleOutcome:
    limits = ctx.limits
    if ctx.order.side != Side.sell:
        return PASS
    if float(ctx.account.equity) >= float(limits.pattern_day_trader_equity_threshold):
        return PASS
    day_trades = int(ctx.account.day_trade_count_today)
    if day_trades < int(limits.pattern_day_trader_limit):
        return PASS
    # Only closing a position opened this session counts as a day trade.
    if ctx.symbol.upper() not in ctx.same_session_symbols:
        return PASS
    return _violate(
        "PDT_VIOLATION",
        Severity.high,
        (
            f"Pattern Day Trader rule: {day_trades} day trades reached with account "
            f"< ${float(limits.pattern_day_trader_equity_threshold):,.0f}."
        ),
        day_trade_count_today=day_trades,
        equity=float(ctx.account.equity),
    )


def check_trade_frequency(ctx: EvaluationContext) -> RuleOutcome:
    maximum = ctx.limits.max_trades_per_day
    if maximum is None or ctx.today_trade_count < int(maximum):
        return PASS
    return _violate(
        "TRADE_FREQUENCY",
        Severity.medium,
        f"Daily trade limit of {int(maximum)} reached.",
        today_trade_count=ctx.today_trade_count,
        max_trades_per_day=int(maximum),
    )


def check_risk_per_trade(ctx: EvaluationContext) -> RuleOutcome:
    # Without a stop loss there is no computable per-trade risk.
    if ctx.risk_pct is None:
        return PASS
    limit_pct = float(ctx.limits.max_risk_per_trade_pct)
    if ctx.risk_pct <= limit_pct:
        return PASS
    # Low severity: the engine prefers a smaller size over a denial.
    return _violate(
        "RISK_PER_TRADE",
        Severity.low,
        f"Risk {ctx.risk_pct:.2f}% exceeds limit {limit_pct:.2f}%.",
        risk_pct=ctx.risk_pct,
        risk_per_share=ctx.risk_per_share,
        max_risk_per_trade_pct=limit_pct,
    )


@dataclass(frozen=True)
class RuleSpec:
    rule_id: str
    check: Callable[[EvaluationContext], RuleOutcome]
    # A violation stops all later rules.
    hard_stop: bool = False
    # Severity overrides from the workspace configuration are ignored.
    always_hard: bool = False


RULE_CATALOG: Tuple[RuleSpec, ...] = (
    RuleSpec("SYMBOL_FORMAT", check_symbol_format, hard_stop=True, always_hard=True),
    RuleSpec("BLACKLISTED_SYMBOL", check_blacklist, hard_stop=True, always_hard=True),
    RuleSpec("MIN_PRICE", check_min_price, hard_stop=True, always_hard=True),
    RuleSpec("DAILY_LOSS_LIMIT", check_daily_loss, always_hard=True),
    RuleSpec("BUYING_POWER", check_buying_power, always_hard=True),
    RuleSpec("MIN_ORDER_VALUE", check_min_order_value),
    RuleSpec("POSITION_SIZE", check_position_size),
    RuleSpec("MAX_POSITIONS", check_concurrent_positions),
    RuleSpec("PDT_VIOLATION", check_pattern_day_trader, always_hard=True),
    RuleSpec("TRADE_FREQUENCY", check_trade_frequency),
    RuleSpec("RISK_PER_TRADE", check_risk_per_trade),
)

RULE_IDS: Tuple[str, ...] = tuple(spec.rule_id for spec in RULE_CATALOG)


@dataclass(frozen=True)
class RuleRun:
    outcomes: List[Tuple[str, RuleOutcome]] = field(default_factory=list)
    stopped_by: Optional[str] = None

    @property
    def evaluated_rules(self) -> List[str]:
        return [rule_id for rule_id, _ in self.outcomes]

    @property
    def violations(self) -> List[Violation]:
        return [o.violation for _, o in self.outcomes if o.violation is not None]

    @property
    def warnings(self) -> List[RiskWarning]:
        return [o.warning for _, o in self.outcomes if o.warning is not None]

    @property
    def has_blocking_violation(self) -> bool:
        return any(o.blocking for _, o in self.outcomes)


def _apply_override(spec: RuleSpec, outcome: RuleOutcome, ctx: EvaluationContext) -> RuleOutcome:
    if outcome.violation is None or spec.always_hard:
        return outcome
    override = ctx.limits.rule_severity_overrides.get(spec.rule_id)
    if override is None or override == outcome.violation.severity:
        return outcome
    return RuleOutcome(
        kind=outcome.kind,
        violation=outcome.violation.model_copy(update={"severity": override}),
    )


def run_rules(
    ctx: EvaluationContext,
    catalog: Tuple[RuleSpec, ...] = RULE_CATALOG,
) -> RuleRun:
    """Evaluate the catalog in priority order.

    Every rule runs so callers see the full violation list, except that a
    violated hard-stop rule ends the run.
    """

    outcomes: List[Tuple[str, RuleOutcome]] = []
    for spec in catalog:
        outcome = _apply_override(spec, spec.check(ctx), ctx)
        outcomes.append((spec.rule_id, outcome))
        if spec.hard_stop and outcome.kind == OutcomeKind.violate:
            return RuleRun(outcomes=outcomes, stopped_by=spec.rule_id)
    return RuleRun(outcomes=outcomes)


__all__ = [
    "OutcomeKind",
    "RuleOutcome",
    "RuleSpec",
    "RuleRun",
    "RULE_CATALOG",
    "RULE_IDS",
    "POSITION_SIZE_WARN_RATIO",
    "run_rules",
    "check_symbol_format",
    "check_blacklist",
    "check_min_price",
    "check_daily_loss",
    "check_buying_power",
    "check_min_order_value",
    "check_position_size",
    "check_concurrent_positions",
    "check_pattern_day_trader",
    "check_trade_frequency",
    "check_risk_per_trade",
]
