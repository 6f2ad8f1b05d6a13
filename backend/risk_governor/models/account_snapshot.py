from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from risk_governor.db.base import Base
from risk_governor.db.types import UTCDateTime


class AccountSnapshotRecord(Base):
    """Portfolio snapshot pushed by the upstream account sync.

    Rows are append-only; the latest row per workspace is the current state.
    """

    __tablename__ = "account_snapshots"

    __table_args__ = (
        Index("ix_account_snapshots_workspace_ts", "workspace_id", "as_of_ts"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    workspace_id: Mapped[str] = mapped_column(String(64), nullable=False)
    source: Mapped[str] = mapped_column(String(32), nullable=False, default="sync")
    payload_json: Mapped[str] = mapped_column(Text(), nullable=False, default="{}")
    as_of_ts: Mapped[datetime] = mapped_column(
        UTCDateTime(), nullable=False, default=lambda: datetime.now(UTC)
    )


__all__ = ["AccountSnapshotRecord"]
