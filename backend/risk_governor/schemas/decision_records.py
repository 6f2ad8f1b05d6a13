from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class DecisionRecordRead(BaseModel):
    id: int
    decision_id: str
    workspace_id: Optional[str]
    symbol: str
    side: str
    quantity: int
    allowed: bool
    risk_level: str
    risk_score: float
    violation_codes: str
    verdict_json: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


__all__ = ["DecisionRecordRead"]
