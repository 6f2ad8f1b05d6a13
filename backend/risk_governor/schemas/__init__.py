from .risk import (
    AccountSnapshot,
    EvaluateRequest,
    Modifications,
    OpenPosition,
    OrderRequest,
    OrderType,
    RemainingCapacity,
    RiskLevel,
    RiskLimits,
    RiskWarning,
    Severity,
    Side,
    TradingStatus,
    Verdict,
    Violation,
)

__all__ = [
    "AccountSnapshot",
    "EvaluateRequest",
    "Modifications",
    "OpenPosition",
    "OrderRequest",
    "OrderType",
    "RemainingCapacity",
    "RiskLevel",
    "RiskLimits",
    "RiskWarning",
    "Severity",
    "Side",
    "TradingStatus",
    "Verdict",
    "Violation",
]
