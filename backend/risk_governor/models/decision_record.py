from __future__ import annotations

from datetime import UTC, datetime
from typing import Optional

from sqlalchemy import Boolean, Float, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from risk_governor.db.base import Base
from risk_governor.db.types import UTCDateTime


class DecisionRecord(Base):
    __tablename__ = "decision_records"

    __table_args__ = (
        UniqueConstraint("decision_id", name="ux_decision_records_decision_id"),
        Index("ix_decision_records_workspace_ts", "workspace_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    decision_id: Mapped[str] = mapped_column(String(64), nullable=False)
    workspace_id: Mapped[Optional[str]] = mapped_column(String(64))
    symbol: Mapped[str] = mapped_column(String(16), nullable=False)
    side: Mapped[str] = mapped_column(String(8), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    allowed: Mapped[bool] = mapped_column(Boolean, nullable=False)
    risk_level: Mapped[str] = mapped_column(String(16), nullable=False)
    risk_score: Mapped[float] = mapped_column(Float, nullable=False)
    violation_codes: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    verdict_json: Mapped[str] = mapped_column(Text(), nullable=False, default="{}")
    context_json: Mapped[str] = mapped_column(Text(), nullable=False, default="{}")
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), nullable=False, default=lambda: datetime.now(UTC)
    )


__all__ = ["DecisionRecord"]
