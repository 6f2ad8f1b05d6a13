from __future__ import annotations

from typing import Protocol

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from risk_governor.core.errors import ConfigurationError, UpstreamUnavailableError
from risk_governor.schemas.risk import AccountSnapshot, RiskLimits

from .account_snapshots import latest_snapshot_row, snapshot_from_row
from .risk_limits_store import get_limits_row, limits_from_row, list_blacklist


class AccountProvider(Protocol):
    def get_snapshot(self, workspace_id: str) -> AccountSnapshot: ...


class RiskLimitsProvider(Protocol):
    def get_limits(self, workspace_id: str) -> RiskLimits: ...


class SqlAccountProvider:
    """Reads the latest stored portfolio snapshot for a workspace."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def get_snapshot(self, workspace_id: str) -> AccountSnapshot:
        try:
            row = latest_snapshot_row(self.db, workspace_id)
        except SQLAlchemyError as exc:
            raise UpstreamUnavailableError(
                "Account snapshot store is unavailable.",
                details={"workspace_id": workspace_id},
            ) from exc
        if row is None:
            raise UpstreamUnavailableError(
                "No account snapshot is available for the workspace.",
                details={"workspace_id": workspace_id},
            )
        try:
            return snapshot_from_row(row)
        except ValidationError as exc:
            raise UpstreamUnavailableError(
                "Stored account snapshot is unreadable.",
                details={"workspace_id": workspace_id, "snapshot_id": row.id},
            ) from exc


class SqlRiskLimitsProvider:
    """Reads a workspace's limits and blacklist."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def get_limits(self, workspace_id: str) -> RiskLimits:
        try:
            row = get_limits_row(self.db, workspace_id)
            blacklist = list_blacklist(self.db, workspace_id) if row is not None else []
        except SQLAlchemyError as exc:
            raise UpstreamUnavailableError(
                "Risk configuration store is unavailable.",
                details={"workspace_id": workspace_id},
            ) from exc
        if row is None:
            raise ConfigurationError(
                "No risk limits are configured for the workspace.",
                details={"workspace_id": workspace_id},
            )
        return limits_from_row(row, blacklist)


__all__ = [
    "AccountProvider",
    "RiskLimitsProvider",
    "SqlAccountProvider",
    "SqlRiskLimitsProvider",
]
