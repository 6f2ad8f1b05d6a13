from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from risk_governor.db.session import get_db
from risk_governor.schemas.account_snapshots import AccountSnapshotRead
from risk_governor.schemas.risk import AccountSnapshot
from risk_governor.services.account_snapshots import (
    latest_snapshot_row,
    save_account_snapshot,
    to_read_model,
)

# ruff: noqa: B008  # FastAPI dependency injection pattern

router = APIRouter()


@router.put("/{workspace_id}", response_model=AccountSnapshotRead)
def put_account_snapshot(
    workspace_id: str,
    payload: AccountSnapshot,
    source: str = Query("sync", max_length=32),
    db: Session = Depends(get_db),
) -> AccountSnapshotRead:
    """Store the latest portfolio state pushed by the account sync."""

    row = save_account_snapshot(db, workspace_id, payload, source=source)
    return to_read_model(row)


@router.get("/{workspace_id}", response_model=AccountSnapshotRead)
def get_account_snapshot(
    workspace_id: str,
    db: Session = Depends(get_db),
) -> AccountSnapshotRead:
    row = latest_snapshot_row(db, workspace_id)
    if row is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No account snapshot stored for this workspace.",
        )
    return to_read_model(row)


__all__ = ["router"]
