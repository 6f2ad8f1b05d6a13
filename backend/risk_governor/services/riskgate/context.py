from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Optional

from risk_governor.core.errors import InvalidInputError
from risk_governor.schemas.risk import (
    AccountSnapshot,
    OrderRequest,
    OrderType,
    RiskLimits,
)

SYMBOL_PATTERN = re.compile(r"^[A-Z]{1,5}$")


def is_valid_symbol(symbol: str) -> bool:
    return bool(SYMBOL_PATTERN.fullmatch(symbol or ""))


@dataclass(frozen=True)
class EvaluationContext:
    """Normalized, immutable inputs plus the derived values shared by rules."""

    order: OrderRequest
    account: AccountSnapshot
    limits: RiskLimits
    workspace_id: Optional[str]
    today_trade_count: int
    effective_price: float
    notional: float
    max_position_value: float
    # None when the account has no equity to size against.
    position_size_pct: Optional[float]
    # Only set when the order carries a stop loss.
    risk_per_share: Optional[float]
    risk_pct: Optional[float]
    held_symbols: FrozenSet[str] = field(default_factory=frozenset)
    same_session_symbols: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def symbol(self) -> str:
        return self.order.symbol

    def with_quantity(self, quantity: int) -> "EvaluationContext":
        """Rebuild the context for the same order at a different quantity."""

        return build_context(
            self.order.model_copy(update={"quantity": int(quantity)}),
            self.account,
            self.limits,
            self.today_trade_count,
            workspace_id=self.workspace_id,
        )

    def to_audit_dict(self) -> Dict[str, Any]:
        return {
            "workspace_id": self.workspace_id,
            "order": self.order.model_dump(mode="json"),
            "account": self.account.model_dump(mode="json"),
            "limits": self.limits.to_audit_dict(),
            "today_trade_count": self.today_trade_count,
            "effective_price": self.effective_price,
            "notional": self.notional,
            "max_position_value": self.max_position_value,
            "position_size_pct": self.position_size_pct,
            "risk_per_share": self.risk_per_share,
            "risk_pct": self.risk_pct,
        }


def _require_finite(order: OrderRequest) -> None:
    for name in ("price", "reference_price", "stop_loss", "take_profit"):
        value = getattr(order, name)
        if value is not None and not math.isfinite(value):
            raise InvalidInputError(f"{name} must be a finite number.", details={"field": name})


def _effective_price(order: OrderRequest) -> float:
    if order.order_type in (OrderType.limit, OrderType.stop):
        if order.price is None:
            raise InvalidInputError(
                f"A price is required for {order.order_type.value} orders.",
                details={"order_type": order.order_type.value},
            )
        if order.price <= 0:
            raise InvalidInputError("Order price must be positive.", details={"price": order.price})
        return float(order.price)

    # Market orders: an explicit price wins, otherwise the caller's reference
    # price. The engine never fetches a quote itself.
    price = order.price if order.price is not None else order.reference_price
    if price is None:
        raise InvalidInputError("Market orders require a price or a reference price.")
    if price <= 0:
        raise InvalidInputError("Order price must be positive.", details={"price": price})
    return float(price)


def build_context(
    order: OrderRequest,
    account: AccountSnapshot,
    limits: RiskLimits,
    today_trade_count: Optional[int] = None,
    *,
    workspace_id: Optional[str] = None,
) -> EvaluationContext:
    """Validate the order and derive the values every rule works from.

    Raises InvalidInputError for a non-positive quantity, a missing or
    non-positive price, a non-finite price or stop loss, a non-positive stop
    loss, or a symbol that is not 1-5 upper-case letters.
    """

    symbol = (order.symbol or "").strip()
    if not is_valid_symbol(symbol):
        raise InvalidInputError(
            f"Symbol {order.symbol!r} is not a valid ticker.",
            details={"symbol": order.symbol},
        )
    if symbol != order.symbol:
        order = order.model_copy(update={"symbol": symbol})

    if order.quantity <= 0:
        raise InvalidInputError("Quantity must be positive.", details={"quantity": order.quantity})

    _require_finite(order)

    if order.stop_loss is not None and order.stop_loss <= 0:
        raise InvalidInputError("Stop loss must be positive.", details={"stop_loss": order.stop_loss})

    if today_trade_count is not None and today_trade_count < 0:
        raise InvalidInputError(
            "Today's trade count cannot be negative.",
            details={"today_trade_count": today_trade_count},
        )

    price = _effective_price(order)
    notional = float(order.quantity) * price
    equity = float(account.equity)

    position_size_pct: Optional[float] = None
    if equity > 0:
        position_size_pct = notional / equity * 100.0

    risk_per_share: Optional[float] = None
    risk_pct: Optional[float] = None
    if order.stop_loss is not None:
        risk_per_share = abs(price - float(order.stop_loss))
        if equity > 0:
            risk_pct = risk_per_share * order.quantity / equity * 100.0

    held = frozenset(p.symbol.upper() for p in account.active_positions)
    same_session = frozenset(
        p.symbol.upper() for p in account.active_positions if p.opened_today
    )

    return EvaluationContext(
        order=order,
        account=account,
        limits=limits,
        workspace_id=workspace_id,
        today_trade_count=(
            int(today_trade_count)
            if today_trade_count is not None
            else int(account.day_trade_count_today)
        ),
        effective_price=price,
        notional=notional,
        max_position_value=float(limits.max_position_size_pct_of_equity) / 100.0 * equity,
        position_size_pct=position_size_pct,
        risk_per_share=risk_per_share,
        risk_pct=risk_pct,
        held_symbols=held,
        same_session_symbols=same_session,
    )


__all__ = ["EvaluationContext", "build_context", "is_valid_symbol", "SYMBOL_PATTERN"]
