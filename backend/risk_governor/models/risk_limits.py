from __future__ import annotations

from datetime import UTC, datetime
from typing import Optional

from sqlalchemy import Float, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from risk_governor.db.base import Base
from risk_governor.db.types import UTCDateTime


class WorkspaceRiskLimits(Base):
    __tablename__ = "risk_limits"

    __table_args__ = (
        UniqueConstraint("workspace_id", name="ux_risk_limits_workspace_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    workspace_id: Mapped[str] = mapped_column(String(64), nullable=False)
    version: Mapped[str] = mapped_column(String(32), nullable=False, default="v1")

    # Required limits are nullable so a partially configured workspace is
    # stored as-is and rejected (fail-closed) at evaluation time.
    max_daily_loss_absolute: Mapped[Optional[float]] = mapped_column(Float)
    max_position_size_pct_of_equity: Mapped[Optional[float]] = mapped_column(Float)
    max_risk_per_trade_pct: Mapped[Optional[float]] = mapped_column(Float)
    max_concurrent_positions: Mapped[Optional[int]] = mapped_column(Integer)
    min_order_price: Mapped[Optional[float]] = mapped_column(Float)
    min_order_value: Mapped[Optional[float]] = mapped_column(Float)

    pattern_day_trader_equity_threshold: Mapped[float] = mapped_column(
        Float, nullable=False, default=25000.0
    )
    pattern_day_trader_limit: Mapped[int] = mapped_column(Integer, nullable=False, default=3)
    max_trades_per_day: Mapped[Optional[int]] = mapped_column(Integer)
    severity_overrides_json: Mapped[str] = mapped_column(Text(), nullable=False, default="{}")

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), nullable=False, default=lambda: datetime.now(UTC)
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )


class BlacklistedSymbol(Base):
    __tablename__ = "blacklisted_symbols"

    __table_args__ = (
        UniqueConstraint("workspace_id", "symbol", name="ux_blacklisted_symbols_workspace_symbol"),
        Index("ix_blacklisted_symbols_workspace_id", "workspace_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    workspace_id: Mapped[str] = mapped_column(String(64), nullable=False)
    symbol: Mapped[str] = mapped_column(String(16), nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), nullable=False, default=lambda: datetime.now(UTC)
    )


__all__ = ["WorkspaceRiskLimits", "BlacklistedSymbol"]
