from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from risk_governor.core.errors import (
    ConfigurationError,
    RiskGovernorError,
    UpstreamUnavailableError,
)
from risk_governor.schemas.risk import (
    AccountSnapshot,
    OrderRequest,
    RiskLevel,
    RiskLimits,
    Severity,
    TradingStatus,
    Verdict,
    Violation,
)

from .decision_records import DecisionRecordEmitter
from .providers import AccountProvider, RiskLimitsProvider
from .riskgate.engine import evaluate_context, prepare_context, remaining_capacity

logger = logging.getLogger(__name__)


def denial_verdict(code: str, message: str, *, details: Optional[Dict[str, Any]] = None) -> Verdict:
    """Verdict for an order that could not be evaluated. Never allows."""

    return Verdict(
        allowed=False,
        violations=[
            Violation(rule_id=code, severity=Severity.high, message=message, details=details or {})
        ],
        risk_level=RiskLevel.critical,
        risk_score=100.0,
    )


def _fetch_inputs(
    workspace_id: str,
    account_provider: AccountProvider,
    limits_provider: RiskLimitsProvider,
) -> tuple[RiskLimits, AccountSnapshot]:
    try:
        limits = limits_provider.get_limits(workspace_id)
        account = account_provider.get_snapshot(workspace_id)
    except RiskGovernorError:
        raise
    except Exception as exc:
        raise UpstreamUnavailableError(
            "Risk inputs could not be loaded.",
            details={"workspace_id": workspace_id, "error": type(exc).__name__},
        ) from exc
    return limits, account


def evaluate_order(
    order: OrderRequest | Mapping[str, Any],
    workspace_id: str,
    *,
    account_provider: AccountProvider,
    limits_provider: RiskLimitsProvider,
    emitter: Optional[DecisionRecordEmitter] = None,
    today_trade_count: Optional[int] = None,
) -> Verdict:
    """Gate an order for a workspace before it may be sent to a broker.

    Missing configuration and unavailable providers produce a denial
    (CONFIG_MISSING / SYSTEM_ERROR). Malformed orders raise
    InvalidInputError. The verdict is handed to the emitter after it has
    been computed; auditing can neither delay nor change it.
    """

    fields: Dict[str, Any] = {"workspace_id": workspace_id}
    try:
        limits, account = _fetch_inputs(workspace_id, account_provider, limits_provider)
        ctx = prepare_context(order, account, limits, today_trade_count, workspace_id=workspace_id)
    except ConfigurationError as exc:
        logger.warning(
            "Risk evaluation denied: configuration missing",
            extra={"extra": {**fields, **exc.details, "error": exc.message}},
        )
        return denial_verdict(ConfigurationError.code, exc.message, details=exc.details)
    except UpstreamUnavailableError as exc:
        logger.error(
            "Risk evaluation denied: upstream unavailable",
            extra={"extra": {**fields, **exc.details, "error": exc.message}},
        )
        return denial_verdict(
            UpstreamUnavailableError.code,
            "Risk assessment system unavailable.",
            details=exc.details,
        )

    verdict = evaluate_context(ctx)
    logger.info(
        "Risk evaluation completed",
        extra={
            "extra": {
                **fields,
                "symbol": ctx.symbol,
                "side": ctx.order.side.value,
                "quantity": ctx.order.quantity,
                "allowed": verdict.allowed,
                "risk_level": verdict.risk_level.value,
                "risk_score": verdict.risk_score,
                "violations": verdict.violation_codes,
            }
        },
    )
    if emitter is not None:
        emitter.emit(verdict, ctx)
    return verdict


def _active_controls(limits: RiskLimits) -> List[str]:
    controls: List[str] = []
    if limits.blacklisted_symbols:
        controls.append("Blacklist")
    controls.extend(
        [
            "Minimum Thresholds",
            "Drawdown Protection",
            "Buying Power",
            "Position Limits",
            "Concurrent Positions",
            "Pattern Day Trader",
        ]
    )
    if limits.max_trades_per_day is not None:
        controls.append("Trade Frequency")
    controls.append("Risk Per Trade")
    return controls


def trading_status(
    account: AccountSnapshot,
    limits: RiskLimits,
    *,
    workspace_id: Optional[str] = None,
) -> TradingStatus:
    """Summarise whether the workspace may trade at all right now."""

    limit = float(limits.max_daily_loss_absolute)
    loss = max(0.0, -float(account.daily_pnl))
    allowed = float(account.daily_pnl) > -limit
    return TradingStatus(
        workspace_id=workspace_id,
        trading_allowed=allowed,
        reason=None if allowed else f"Daily loss limit of ${limit:,.0f} reached.",
        active_controls=_active_controls(limits),
        remaining=remaining_capacity(account, limits),
        daily_loss_pct_of_limit=(loss / limit * 100.0) if limit > 0 else None,
    )


def workspace_trading_status(
    workspace_id: str,
    *,
    account_provider: AccountProvider,
    limits_provider: RiskLimitsProvider,
) -> TradingStatus:
    limits, account = _fetch_inputs(workspace_id, account_provider, limits_provider)
    return trading_status(account, limits, workspace_id=workspace_id)


__all__ = [
    "denial_verdict",
    "evaluate_order",
    "trading_status",
    "workspace_trading_status",
]
