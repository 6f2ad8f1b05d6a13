from __future__ import annotations

from risk_governor.schemas.risk import (
    AccountSnapshot,
    OpenPosition,
    OrderRequest,
    RiskLimits,
    Severity,
)
from risk_governor.services.riskgate.context import build_context
from risk_governor.services.riskgate.rules import (
    RULE_IDS,
    OutcomeKind,
    check_blacklist,
    check_buying_power,
    check_concurrent_positions,
    check_daily_loss,
    check_min_order_value,
    check_min_price,
    check_pattern_day_trader,
    check_position_size,
    check_risk_per_trade,
    check_trade_frequency,
    run_rules,
)


def _limits(**overrides) -> RiskLimits:
    data = dict(
        max_daily_loss_absolute=1000.0,
        max_position_size_pct_of_equity=10.0,
        max_risk_per_trade_pct=1.0,
        max_concurrent_positions=3,
        min_order_price=5.0,
        min_order_value=100.0,
    )
    data.update(overrides)
    return RiskLimits(**data)


def _ctx(
    *,
    symbol: str = "AAPL",
    side: str = "buy",
    quantity: int = 10,
    price: float = 100.0,
    stop_loss: float | None = None,
    account: AccountSnapshot | None = None,
    limits: RiskLimits | None = None,
    today_trade_count: int | None = None,
):
    order = OrderRequest(
        symbol=symbol,
        side=side,
        quantity=quantity,
        order_type="limit",
        price=price,
        stop_loss=stop_loss,
    )
    return build_context(
        order,
        account or AccountSnapshot(equity=100_000.0, available_cash=100_000.0),
        limits or _limits(),
        today_trade_count,
    )


def test_catalog_order_is_fixed() -> None:
    assert RULE_IDS == (
        "SYMBOL_FORMAT",
        "BLACKLISTED_SYMBOL",
        "MIN_PRICE",
        "DAILY_LOSS_LIMIT",
        "BUYING_POWER",
        "MIN_ORDER_VALUE",
        "POSITION_SIZE",
        "MAX_POSITIONS",
        "PDT_VIOLATION",
        "TRADE_FREQUENCY",
        "RISK_PER_TRADE",
    )


def test_clean_order_passes_every_rule() -> None:
    run = run_rules(_ctx())
    assert run.evaluated_rules == list(RULE_IDS)
    assert run.violations == []
    assert run.warnings == []
    assert run.stopped_by is None
    assert not run.has_blocking_violation


def test_blacklist_is_case_insensitive_and_stops_evaluation() -> None:
    limits = _limits(blacklisted_symbols=["gme", " amc "])
    assert limits.blacklisted_symbols == frozenset({"GME", "AMC"})

    ctx = _ctx(symbol="GME", limits=limits)
    outcome = check_blacklist(ctx)
    assert outcome.kind == OutcomeKind.violate
    assert outcome.violation.severity == Severity.high

    run = run_rules(ctx)
    assert run.stopped_by == "BLACKLISTED_SYMBOL"
    assert run.evaluated_rules == ["SYMBOL_FORMAT", "BLACKLISTED_SYMBOL"]
    assert [v.rule_id for v in run.violations] == ["BLACKLISTED_SYMBOL"]


def test_min_price_is_a_hard_stop() -> None:
    ctx = _ctx(price=2.0, quantity=1000)
    assert check_min_price(ctx).kind == OutcomeKind.violate

    run = run_rules(ctx)
    assert run.stopped_by == "MIN_PRICE"
    assert "BUYING_POWER" not in run.evaluated_rules


def test_daily_loss_denies_at_the_limit() -> None:
    at_limit = AccountSnapshot(equity=10_000.0, available_cash=10_000.0, daily_pnl=-1000.0)
    under = AccountSnapshot(equity=10_000.0, available_cash=10_000.0, daily_pnl=-999.0)
    assert check_daily_loss(_ctx(account=at_limit)).kind == OutcomeKind.violate
    assert check_daily_loss(_ctx(account=under)).kind == OutcomeKind.passed


def test_daily_loss_applies_to_sell_orders_too() -> None:
    account = AccountSnapshot(equity=10_000.0, available_cash=10_000.0, daily_pnl=-5000.0)
    run = run_rules(_ctx(side="sell", account=account))
    assert "DAILY_LOSS_LIMIT" in [v.rule_id for v in run.violations]
    # Not a hard stop: the remaining rules still report.
    assert run.evaluated_rules == list(RULE_IDS)


def test_buying_power_only_checks_buys() -> None:
    poor = AccountSnapshot(equity=100_000.0, available_cash=500.0)
    assert check_buying_power(_ctx(account=poor)).kind == OutcomeKind.violate
    assert check_buying_power(_ctx(side="sell", account=poor)).kind == OutcomeKind.passed


def test_min_order_value() -> None:
    assert check_min_order_value(_ctx(quantity=1, price=50.0)).kind == OutcomeKind.violate
    assert check_min_order_value(_ctx(quantity=2, price=50.0)).kind == OutcomeKind.passed


def test_position_size_warns_near_the_limit_and_violates_above() -> None:
    # 10% limit on 100k equity: warn above 8k, violate above 10k.
    assert check_position_size(_ctx(quantity=70)).kind == OutcomeKind.passed
    warn = check_position_size(_ctx(quantity=90))
    assert warn.kind == OutcomeKind.warn
    assert warn.warning.rule_id == "POSITION_SIZE"
    assert not warn.blocking
    violate = check_position_size(_ctx(quantity=110))
    assert violate.kind == OutcomeKind.violate
    assert violate.violation.severity == Severity.high


def test_position_size_with_zero_equity_is_violated() -> None:
    account = AccountSnapshot(equity=0.0, available_cash=10_000.0)
    outcome = check_position_size(_ctx(account=account))
    assert outcome.kind == OutcomeKind.violate


def test_max_positions_ignores_existing_symbols_and_sells() -> None:
    account = AccountSnapshot(
        equity=100_000.0,
        available_cash=100_000.0,
        open_positions=[
            OpenPosition(symbol="AAPL", quantity=1),
            OpenPosition(symbol="MSFT", quantity=1),
            OpenPosition(symbol="TSLA", quantity=1),
        ],
    )
    assert check_concurrent_positions(_ctx(symbol="NVDA", account=account)).kind == OutcomeKind.violate
    assert check_concurrent_positions(_ctx(symbol="AAPL", account=account)).kind == OutcomeKind.passed
    assert (
        check_concurrent_positions(_ctx(symbol="NVDA", side="sell", account=account)).kind
        == OutcomeKind.passed
    )


def test_pdt_requires_small_account_same_session_close_and_count_reached() -> None:
    positions = [OpenPosition(symbol="AAPL", quantity=10, opened_today=True)]
    small = AccountSnapshot(
        equity=20_000.0, available_cash=20_000.0, open_positions=positions, day_trade_count_today=3
    )
    assert check_pattern_day_trader(_ctx(side="sell", account=small)).kind == OutcomeKind.violate

    large = small.model_copy(update={"equity": 30_000.0})
    assert check_pattern_day_trader(_ctx(side="sell", account=large)).kind == OutcomeKind.passed

    fewer = small.model_copy(update={"day_trade_count_today": 2})
    assert check_pattern_day_trader(_ctx(side="sell", account=fewer)).kind == OutcomeKind.passed

    overnight = small.model_copy(
        update={"open_positions": [OpenPosition(symbol="AAPL", quantity=10, opened_today=False)]}
    )
    assert check_pattern_day_trader(_ctx(side="sell", account=overnight)).kind == OutcomeKind.passed

    assert check_pattern_day_trader(_ctx(side="buy", account=small)).kind == OutcomeKind.passed


def test_trade_frequency_is_disabled_without_a_limit() -> None:
    assert check_trade_frequency(_ctx(today_trade_count=50)).kind == OutcomeKind.passed

    limits = _limits(max_trades_per_day=5)
    assert check_trade_frequency(_ctx(limits=limits, today_trade_count=4)).kind == OutcomeKind.passed
    assert check_trade_frequency(_ctx(limits=limits, today_trade_count=5)).kind == OutcomeKind.violate


def test_risk_per_trade_is_low_severity_and_non_blocking() -> None:
    assert check_risk_per_trade(_ctx()).kind == OutcomeKind.passed

    # 10 shares * $20 risk = $200 = 0.2% of equity.
    assert check_risk_per_trade(_ctx(stop_loss=80.0)).kind == OutcomeKind.passed

    # 100 shares * $20 risk = $2,000 = 2% of equity.
    outcome = check_risk_per_trade(_ctx(quantity=100, stop_loss=80.0, limits=_limits(max_position_size_pct_of_equity=50.0)))
    assert outcome.kind == OutcomeKind.violate
    assert outcome.violation.severity == Severity.low
    assert not outcome.blocking


def test_severity_override_applies_to_soft_rules_only() -> None:
    limits = _limits(
        min_order_value=10_000.0,
        rule_severity_overrides={"MIN_ORDER_VALUE": "low", "BUYING_POWER": "low"},
    )
    account = AccountSnapshot(equity=100_000.0, available_cash=500.0)
    run = run_rules(_ctx(limits=limits, account=account))

    by_rule = {v.rule_id: v for v in run.violations}
    assert by_rule["MIN_ORDER_VALUE"].severity == Severity.low
    assert by_rule["BUYING_POWER"].severity == Severity.high
    assert run.has_blocking_violation


def test_override_can_escalate_risk_per_trade() -> None:
    limits = _limits(
        max_position_size_pct_of_equity=50.0,
        rule_severity_overrides={"RISK_PER_TRADE": "medium"},
    )
    run = run_rules(_ctx(quantity=100, stop_loss=80.0, limits=limits))
    assert [v.rule_id for v in run.violations] == ["RISK_PER_TRADE"]
    assert run.has_blocking_violation


def test_max_positions_ignores_flat_rows() -> None:
    account = AccountSnapshot(
        equity=100_000.0,
        available_cash=100_000.0,
        open_positions=[
            OpenPosition(symbol="AAPL", quantity=1),
            OpenPosition(symbol="MSFT", quantity=1),
            OpenPosition(symbol="TSLA", quantity=0),
        ],
    )
    # Two live positions against a limit of three.
    assert check_concurrent_positions(_ctx(symbol="NVDA", account=account)).kind == OutcomeKind.passed
    assert check_concurrent_positions(_ctx(symbol="TSLA", account=account)).kind == OutcomeKind.passed

    full = account.model_copy(
        update={"open_positions": [*account.open_positions, OpenPosition(symbol="AMD", quantity=2)]}
    )
    outcome = check_concurrent_positions(_ctx(symbol="TSLA", account=full))
    assert outcome.kind == OutcomeKind.violate
    assert outcome.violation.details["open_positions"] == 3
