from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Optional

from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from risk_governor.models import AccountSnapshotRecord
from risk_governor.schemas.account_snapshots import AccountSnapshotRead
from risk_governor.schemas.risk import AccountSnapshot


def save_account_snapshot(
    db: Session,
    workspace_id: str,
    snapshot: AccountSnapshot,
    *,
    source: str = "sync",
    as_of_ts: Optional[datetime] = None,
) -> AccountSnapshotRecord:
    """Append a portfolio snapshot for the workspace."""

    row = AccountSnapshotRecord(
        workspace_id=workspace_id,
        source=source,
        payload_json=json.dumps(snapshot.model_dump(mode="json"), sort_keys=True),
        as_of_ts=as_of_ts or datetime.now(UTC),
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def latest_snapshot_row(db: Session, workspace_id: str) -> Optional[AccountSnapshotRecord]:
    return (
        db.execute(
            select(AccountSnapshotRecord)
            .where(AccountSnapshotRecord.workspace_id == workspace_id)
            .order_by(desc(AccountSnapshotRecord.as_of_ts), desc(AccountSnapshotRecord.id))
            .limit(1)
        )
        .scalars()
        .first()
    )


def snapshot_from_row(row: AccountSnapshotRecord) -> AccountSnapshot:
    return AccountSnapshot.model_validate_json(row.payload_json)


def to_read_model(row: AccountSnapshotRecord) -> AccountSnapshotRead:
    return AccountSnapshotRead(
        workspace_id=row.workspace_id,
        source=row.source,
        as_of_ts=row.as_of_ts,
        snapshot=snapshot_from_row(row),
    )


__all__ = ["save_account_snapshot", "latest_snapshot_row", "snapshot_from_row", "to_read_model"]
