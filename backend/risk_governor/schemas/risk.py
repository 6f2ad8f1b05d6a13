from __future__ import annotations

import hashlib
import json
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Side(str, Enum):
    buy = "buy"
    sell = "sell"


class OrderType(str, Enum):
    market = "market"
    limit = "limit"
    stop = "stop"


class Severity(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"


class RiskLevel(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"
    critical = "critical"


# Severities that deny the order.
BLOCKING_SEVERITIES = frozenset({Severity.medium, Severity.high})


class OrderRequest(BaseModel):
    """A proposed order. Business validation happens in the context builder."""

    model_config = ConfigDict(frozen=True)

    symbol: str
    side: Side
    quantity: int
    order_type: OrderType = OrderType.market
    price: Optional[float] = None
    stop_loss: Optional[float] = None
    take_profit: Optional[float] = None
    # Caller-supplied last price; the effective price of market orders.
    reference_price: Optional[float] = None
    # Caller-classified high-volatility or ETF-class symbol.
    high_volatility: bool = False


class OpenPosition(BaseModel):
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    symbol: str
    quantity: float
    avg_cost: float = 0.0
    opened_today: bool = False


class AccountSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    equity: float = Field(ge=0)
    available_cash: float = Field(ge=0)
    open_positions: List[OpenPosition] = Field(default_factory=list)
    day_trade_count_today: int = Field(default=0, ge=0)
    daily_pnl: float = 0.0

    @property
    def active_positions(self) -> List[OpenPosition]:
        """Open positions with a non-zero quantity; flat leftover rows are ignored."""

        return [p for p in self.open_positions if p.quantity != 0]


class RiskLimits(BaseModel):
    """Per-workspace risk configuration. Required fields have no defaults."""

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    version: str = "v1"

    max_daily_loss_absolute: float = Field(ge=0)
    max_position_size_pct_of_equity: float = Field(gt=0)
    max_risk_per_trade_pct: float = Field(gt=0)
    max_concurrent_positions: int = Field(ge=0)
    min_order_price: float = Field(ge=0)
    min_order_value: float = Field(ge=0)

    blacklisted_symbols: FrozenSet[str] = Field(default_factory=frozenset)
    pattern_day_trader_equity_threshold: float = Field(default=25000.0, ge=0)
    pattern_day_trader_limit: int = Field(default=3, ge=0)
    max_trades_per_day: Optional[int] = Field(default=None, ge=1)
    rule_severity_overrides: Dict[str, Severity] = Field(default_factory=dict)

    @field_validator("blacklisted_symbols", mode="before")
    @classmethod
    def _normalize_blacklist(cls, value: Any) -> Any:
        if value is None:
            return frozenset()
        return frozenset(str(s).strip().upper() for s in value if str(s).strip())

    def to_audit_dict(self) -> Dict[str, Any]:
        data = self.model_dump(mode="json")
        data["blacklisted_symbols"] = sorted(self.blacklisted_symbols)
        return data

    def content_hash(self) -> str:
        raw = json.dumps(self.to_audit_dict(), sort_keys=True, separators=(",", ":")).encode("utf-8")
        return hashlib.sha256(raw).hexdigest()


class Violation(BaseModel):
    model_config = ConfigDict(frozen=True)

    rule_id: str
    severity: Severity
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)

    @property
    def blocking(self) -> bool:
        return self.severity in BLOCKING_SEVERITIES


class RiskWarning(BaseModel):
    model_config = ConfigDict(frozen=True)

    rule_id: str
    severity: Severity = Severity.low
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class Modifications(BaseModel):
    model_config = ConfigDict(frozen=True)

    suggested_quantity: Optional[int] = None
    reason: str


class RemainingCapacity(BaseModel):
    model_config = ConfigDict(frozen=True)

    remaining_daily_loss: float
    remaining_positions: int
    remaining_day_trades: int


class Verdict(BaseModel):
    model_config = ConfigDict(frozen=True)

    allowed: bool
    violations: List[Violation] = Field(default_factory=list)
    warnings: List[RiskWarning] = Field(default_factory=list)
    risk_level: RiskLevel
    risk_score: float = Field(ge=0, le=100)
    modifications: Optional[Modifications] = None
    evaluated_rules: List[str] = Field(default_factory=list)
    score_contributions: Dict[str, float] = Field(default_factory=dict)
    metrics: Dict[str, Optional[float]] = Field(default_factory=dict)
    remaining: Optional[RemainingCapacity] = None
    limits_hash: Optional[str] = None

    @property
    def violation_codes(self) -> List[str]:
        return [v.rule_id for v in self.violations]


class EvaluateRequest(BaseModel):
    workspace_id: str = Field(min_length=1)
    order: OrderRequest
    today_trade_count: Optional[int] = Field(default=None, ge=0)


class TradingStatus(BaseModel):
    workspace_id: Optional[str] = None
    trading_allowed: bool
    reason: Optional[str] = None
    active_controls: List[str] = Field(default_factory=list)
    remaining: RemainingCapacity
    daily_loss_pct_of_limit: Optional[float] = None


__all__ = [
    "Side",
    "OrderType",
    "Severity",
    "RiskLevel",
    "BLOCKING_SEVERITIES",
    "OrderRequest",
    "OpenPosition",
    "AccountSnapshot",
    "RiskLimits",
    "Violation",
    "RiskWarning",
    "Modifications",
    "RemainingCapacity",
    "Verdict",
    "EvaluateRequest",
    "TradingStatus",
]
