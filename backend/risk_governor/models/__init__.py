from .account_snapshot import AccountSnapshotRecord
from .decision_record import DecisionRecord
from .risk_limits import BlacklistedSymbol, WorkspaceRiskLimits

__all__ = [
    "AccountSnapshotRecord",
    "BlacklistedSymbol",
    "DecisionRecord",
    "WorkspaceRiskLimits",
]
