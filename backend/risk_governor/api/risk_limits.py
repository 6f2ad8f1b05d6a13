from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from risk_governor.db.session import get_db
from risk_governor.schemas.risk_limits import (
    BlacklistEntryCreate,
    BlacklistEntryRead,
    RiskLimitsRead,
    RiskLimitsUpsert,
)
from risk_governor.services import risk_limits_store as store

# ruff: noqa: B008  # FastAPI dependency injection pattern

router = APIRouter()


@router.get("/{workspace_id}", response_model=RiskLimitsRead)
def read_risk_limits(
    workspace_id: str,
    db: Session = Depends(get_db),
) -> RiskLimitsRead:
    row = store.get_limits_row(db, workspace_id)
    if row is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No risk limits configured for this workspace.",
        )
    return store.to_read_model(row, store.list_blacklist(db, workspace_id))


@router.put("/{workspace_id}", response_model=RiskLimitsRead)
def put_risk_limits(
    workspace_id: str,
    payload: RiskLimitsUpsert,
    db: Session = Depends(get_db),
) -> RiskLimitsRead:
    row = store.upsert_limits(db, workspace_id, payload)
    return store.to_read_model(row, store.list_blacklist(db, workspace_id))


@router.get("/{workspace_id}/blacklist", response_model=List[BlacklistEntryRead])
def list_blacklist(
    workspace_id: str,
    db: Session = Depends(get_db),
) -> List[BlacklistEntryRead]:
    return [BlacklistEntryRead.model_validate(r) for r in store.list_blacklist(db, workspace_id)]


@router.post(
    "/{workspace_id}/blacklist",
    response_model=BlacklistEntryRead,
    status_code=status.HTTP_201_CREATED,
)
def add_blacklist_entry(
    workspace_id: str,
    payload: BlacklistEntryCreate,
    db: Session = Depends(get_db),
) -> BlacklistEntryRead:
    row = store.add_to_blacklist(db, workspace_id, payload.symbol, reason=payload.reason)
    return BlacklistEntryRead.model_validate(row)


@router.delete("/{workspace_id}/blacklist/{symbol}", status_code=status.HTTP_204_NO_CONTENT)
def remove_blacklist_entry(
    workspace_id: str,
    symbol: str,
    db: Session = Depends(get_db),
) -> None:
    if not store.remove_from_blacklist(db, workspace_id, symbol):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Symbol is not blacklisted.",
        )


__all__ = ["router"]
