from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .risk import Severity


class RiskLimitsUpsert(BaseModel):
    """Payload for storing a workspace's limits.

    Required limits may be omitted; such a workspace is stored but every
    evaluation against it is denied until the configuration is complete.
    """

    version: str = "v1"
    max_daily_loss_absolute: Optional[float] = Field(default=None, ge=0)
    max_position_size_pct_of_equity: Optional[float] = Field(default=None, gt=0)
    max_risk_per_trade_pct: Optional[float] = Field(default=None, gt=0)
    max_concurrent_positions: Optional[int] = Field(default=None, ge=0)
    min_order_price: Optional[float] = Field(default=None, ge=0)
    min_order_value: Optional[float] = Field(default=None, ge=0)
    pattern_day_trader_equity_threshold: float = Field(default=25000.0, ge=0)
    pattern_day_trader_limit: int = Field(default=3, ge=0)
    max_trades_per_day: Optional[int] = Field(default=None, ge=1)
    rule_severity_overrides: Dict[str, Severity] = Field(default_factory=dict)


class RiskLimitsRead(RiskLimitsUpsert):
    workspace_id: str
    blacklisted_symbols: List[str] = Field(default_factory=list)
    complete: bool
    updated_at: datetime


class BlacklistEntryCreate(BaseModel):
    symbol: str = Field(min_length=1, max_length=16)
    reason: Optional[str] = Field(default=None, max_length=255)

    @field_validator("symbol")
    @classmethod
    def _upper(cls, value: str) -> str:
        return value.strip().upper()


class BlacklistEntryRead(BaseModel):
    workspace_id: str
    symbol: str
    reason: Optional[str]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


__all__ = [
    "RiskLimitsUpsert",
    "RiskLimitsRead",
    "BlacklistEntryCreate",
    "BlacklistEntryRead",
]
