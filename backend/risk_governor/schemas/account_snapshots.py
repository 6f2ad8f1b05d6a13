from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from .risk import AccountSnapshot


class AccountSnapshotRead(BaseModel):
    workspace_id: str
    source: str
    as_of_ts: datetime
    snapshot: AccountSnapshot


__all__ = ["AccountSnapshotRead"]
