from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from risk_governor.db.session import get_db
from risk_governor.models import DecisionRecord
from risk_governor.schemas.decision_records import DecisionRecordRead

# ruff: noqa: B008  # FastAPI dependency injection pattern

router = APIRouter()


@router.get("/", response_model=List[DecisionRecordRead])
def list_decision_records(
    workspace_id: Optional[str] = Query(None),
    allowed: Optional[bool] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
) -> List[DecisionRecord]:
    """Return recent decision records, most recent first."""

    query = db.query(DecisionRecord)
    if workspace_id is not None:
        query = query.filter(DecisionRecord.workspace_id == workspace_id)
    if allowed is not None:
        query = query.filter(DecisionRecord.allowed == allowed)

    return (
        query.order_by(DecisionRecord.created_at.desc(), DecisionRecord.id.desc())  # type: ignore[arg-type]
        .limit(limit)
        .all()
    )


__all__ = ["router"]
