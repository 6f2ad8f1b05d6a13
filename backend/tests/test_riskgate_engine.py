from __future__ import annotations

import pytest

from risk_governor.core.errors import ConfigurationError, InvalidInputError
from risk_governor.schemas.risk import (
    AccountSnapshot,
    OpenPosition,
    OrderRequest,
    RiskLevel,
    RiskLimits,
)
from risk_governor.services.riskgate.context import build_context
from risk_governor.services.riskgate.engine import decide, remaining_capacity


def _limits(**overrides) -> RiskLimits:
    data = dict(
        max_daily_loss_absolute=2000.0,
        max_position_size_pct_of_equity=5.0,
        max_risk_per_trade_pct=1.0,
        max_concurrent_positions=5,
        min_order_price=1.0,
        min_order_value=100.0,
    )
    data.update(overrides)
    return RiskLimits(**data)


def test_buying_power_denies_order_larger_than_cash() -> None:
    account = AccountSnapshot(equity=100_000.0, available_cash=25_000.0)
    order = OrderRequest(symbol="AAPL", side="buy", quantity=1000, order_type="limit", price=150.0)

    verdict = decide(order, account, _limits())

    assert verdict.allowed is False
    assert "BUYING_POWER" in verdict.violation_codes
    assert verdict.risk_level == RiskLevel.critical


def test_daily_loss_breach_denies_any_order() -> None:
    account = AccountSnapshot(equity=10_000.0, available_cash=10_000.0, daily_pnl=-520.0)
    limits = _limits(max_daily_loss_absolute=500.0, max_position_size_pct_of_equity=50.0)

    for order in (
        OrderRequest(symbol="AAPL", side="buy", quantity=1, order_type="limit", price=150.0),
        OrderRequest(symbol="MSFT", side="sell", quantity=1, order_type="limit", price=300.0),
    ):
        verdict = decide(order, account, limits)
        assert verdict.allowed is False
        assert verdict.risk_level == RiskLevel.critical
        assert "DAILY_LOSS_LIMIT" in verdict.violation_codes


def test_small_order_within_limits_is_allowed_at_low_risk() -> None:
    account = AccountSnapshot(equity=100_000.0, available_cash=100_000.0)
    order = OrderRequest(symbol="MSFT", side="buy", quantity=10, order_type="limit", price=300.0)

    verdict = decide(order, account, _limits())

    assert verdict.allowed is True
    assert verdict.violations == []
    assert verdict.risk_level == RiskLevel.low
    assert verdict.modifications is None
    assert verdict.metrics["notional"] == 3000.0
    assert verdict.metrics["position_size_pct"] == pytest.approx(3.0)


def test_excess_risk_per_trade_suggests_smaller_quantity() -> None:
    # Stop 2% away; 1,500 shares put 3% of equity at risk against a 1% limit.
    account = AccountSnapshot(equity=100_000.0, available_cash=200_000.0)
    limits = _limits(max_position_size_pct_of_equity=200.0)
    order = OrderRequest(
        symbol="SPY", side="buy", quantity=1500, order_type="limit", price=100.0, stop_loss=98.0
    )

    verdict = decide(order, account, limits)

    assert verdict.allowed is True
    assert verdict.violation_codes == ["RISK_PER_TRADE"]
    assert verdict.violations[0].severity.value == "low"
    assert verdict.modifications is not None
    suggested = verdict.modifications.suggested_quantity
    assert suggested == 500

    resized = build_context(order.model_copy(update={"quantity": suggested}), account, limits)
    assert resized.risk_pct is not None and resized.risk_pct <= 1.0


def test_no_suggestion_when_smaller_order_breaks_a_hard_rule() -> None:
    account = AccountSnapshot(equity=100_000.0, available_cash=200_000.0)
    limits = _limits(max_position_size_pct_of_equity=200.0, min_order_value=60_000.0)
    order = OrderRequest(
        symbol="SPY", side="buy", quantity=1500, order_type="limit", price=100.0, stop_loss=98.0
    )

    verdict = decide(order, account, limits)

    assert verdict.allowed is True
    assert verdict.modifications is None


def test_pattern_day_trader_blocks_same_session_close() -> None:
    account = AccountSnapshot(
        equity=20_000.0,
        available_cash=20_000.0,
        day_trade_count_today=3,
        open_positions=[OpenPosition(symbol="TSLA", quantity=5, avg_cost=200.0, opened_today=True)],
    )
    order = OrderRequest(symbol="TSLA", side="sell", quantity=5, order_type="limit", price=200.0)

    verdict = decide(order, account, _limits())

    assert verdict.allowed is False
    assert "PDT_VIOLATION" in verdict.violation_codes
    assert verdict.risk_level == RiskLevel.critical


def test_blacklist_dominates_other_failures() -> None:
    account = AccountSnapshot(equity=1_000.0, available_cash=10.0, daily_pnl=-5000.0)
    limits = _limits(blacklisted_symbols=["GME"])
    order = OrderRequest(symbol="GME", side="buy", quantity=1000, order_type="limit", price=20.0)

    verdict = decide(order, account, limits)

    assert verdict.allowed is False
    assert verdict.violation_codes == ["BLACKLISTED_SYMBOL"]
    assert verdict.evaluated_rules == ["SYMBOL_FORMAT", "BLACKLISTED_SYMBOL"]


def test_identical_inputs_give_identical_verdicts() -> None:
    account = AccountSnapshot(equity=50_000.0, available_cash=20_000.0, daily_pnl=-300.0)
    order = OrderRequest(symbol="NVDA", side="buy", quantity=20, order_type="limit", price=100.0, stop_loss=90.0)

    first = decide(order, account, _limits(), 2)
    second = decide(order, account, _limits(), 2)

    assert first == second
    assert first.model_dump(mode="json") == second.model_dump(mode="json")


def test_larger_quantity_never_lowers_the_score() -> None:
    account = AccountSnapshot(equity=100_000.0, available_cash=1_000_000.0)
    previous = -1.0
    for quantity in (1, 5, 20, 35, 50, 100, 1000):
        order = OrderRequest(symbol="AAPL", side="buy", quantity=quantity, order_type="limit", price=100.0)
        verdict = decide(order, account, _limits())
        assert verdict.risk_score >= previous
        previous = verdict.risk_score


def test_denied_orders_are_never_allowed() -> None:
    account = AccountSnapshot(equity=100_000.0, available_cash=1_000.0)
    order = OrderRequest(symbol="AAPL", side="buy", quantity=100, order_type="limit", price=100.0)

    verdict = decide(order, account, _limits())

    assert any(v.blocking for v in verdict.violations)
    assert verdict.allowed is False


def test_accepts_plain_mappings() -> None:
    verdict = decide(
        {"symbol": "MSFT", "side": "buy", "quantity": 10, "order_type": "limit", "price": 300.0},
        {"equity": 100_000.0, "available_cash": 100_000.0},
        _limits().model_dump(),
    )
    assert verdict.allowed is True


def test_missing_limits_fail_closed() -> None:
    account = AccountSnapshot(equity=100_000.0, available_cash=100_000.0)
    order = OrderRequest(symbol="MSFT", side="buy", quantity=10, order_type="limit", price=300.0)

    with pytest.raises(ConfigurationError):
        decide(order, account, None)

    incomplete = _limits().model_dump()
    incomplete.pop("min_order_value")
    with pytest.raises(ConfigurationError) as excinfo:
        decide(order, account, incomplete)
    assert "min_order_value" in excinfo.value.details["fields"]

    invalid = _limits().model_dump()
    invalid["max_concurrent_positions"] = -1
    with pytest.raises(ConfigurationError):
        decide(order, account, invalid)


def test_malformed_order_mapping_raises_invalid_input() -> None:
    account = AccountSnapshot(equity=100_000.0, available_cash=100_000.0)
    with pytest.raises(InvalidInputError):
        decide({"symbol": "MSFT", "side": "hold", "quantity": 1}, account, _limits())


def test_verdict_reports_remaining_capacity_and_limits_hash() -> None:
    account = AccountSnapshot(
        equity=100_000.0,
        available_cash=100_000.0,
        daily_pnl=-500.0,
        day_trade_count_today=1,
        open_positions=[OpenPosition(symbol="AAPL", quantity=1)],
    )
    limits = _limits()
    order = OrderRequest(symbol="MSFT", side="buy", quantity=10, order_type="limit", price=300.0)

    verdict = decide(order, account, limits)

    assert verdict.remaining == remaining_capacity(account, limits)
    assert verdict.remaining.remaining_daily_loss == 1500.0
    assert verdict.remaining.remaining_positions == 4
    assert verdict.remaining.remaining_day_trades == 2
    assert verdict.limits_hash == limits.content_hash()


def test_nan_stop_loss_raises_invalid_input() -> None:
    account = AccountSnapshot(equity=100_000.0, available_cash=100_000.0)
    order = OrderRequest(
        symbol="MSFT", side="buy", quantity=10, order_type="limit", price=300.0, stop_loss=float("nan")
    )
    with pytest.raises(InvalidInputError):
        decide(order, account, _limits())


def test_nan_account_values_raise_invalid_input() -> None:
    order = OrderRequest(symbol="MSFT", side="buy", quantity=10, order_type="limit", price=300.0)
    with pytest.raises(InvalidInputError):
        decide(order, {"equity": 100_000.0, "available_cash": 100_000.0, "daily_pnl": float("nan")}, _limits())


def test_flat_positions_do_not_use_capacity() -> None:
    account = AccountSnapshot(
        equity=100_000.0,
        available_cash=100_000.0,
        open_positions=[
            OpenPosition(symbol="AAPL", quantity=10),
            OpenPosition(symbol="NFLX", quantity=0),
        ],
    )
    assert remaining_capacity(account, _limits()).remaining_positions == 4
