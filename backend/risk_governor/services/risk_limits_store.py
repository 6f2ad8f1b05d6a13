from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from risk_governor.models import BlacklistedSymbol, WorkspaceRiskLimits
from risk_governor.schemas.risk import RiskLimits
from risk_governor.schemas.risk_limits import RiskLimitsRead, RiskLimitsUpsert
from risk_governor.services.riskgate.engine import coerce_limits

logger = logging.getLogger(__name__)

_LIMIT_FIELDS = (
    "version",
    "max_daily_loss_absolute",
    "max_position_size_pct_of_equity",
    "max_risk_per_trade_pct",
    "max_concurrent_positions",
    "min_order_price",
    "min_order_value",
    "pattern_day_trader_equity_threshold",
    "pattern_day_trader_limit",
    "max_trades_per_day",
)


def _json_loads(raw: Optional[str], fallback: Any) -> Any:
    try:
        return json.loads(raw or "")
    except ValueError:
        return fallback


def get_limits_row(db: Session, workspace_id: str) -> Optional[WorkspaceRiskLimits]:
    return db.execute(
        select(WorkspaceRiskLimits).where(WorkspaceRiskLimits.workspace_id == workspace_id)
    ).scalar_one_or_none()


def list_blacklist(db: Session, workspace_id: str) -> List[BlacklistedSymbol]:
    return list(
        db.execute(
            select(BlacklistedSymbol)
            .where(BlacklistedSymbol.workspace_id == workspace_id)
            .order_by(BlacklistedSymbol.symbol)
        )
        .scalars()
        .all()
    )


def _row_payload(row: WorkspaceRiskLimits) -> Dict[str, Any]:
    data: Dict[str, Any] = {name: getattr(row, name) for name in _LIMIT_FIELDS}
    data["rule_severity_overrides"] = _json_loads(row.severity_overrides_json, {})
    return data


def limits_from_row(row: WorkspaceRiskLimits, blacklist: List[BlacklistedSymbol]) -> RiskLimits:
    """Build engine limits from stored rows; incomplete rows raise ConfigurationError."""

    data = _row_payload(row)
    # Unset columns must fail validation rather than fall back to defaults.
    data = {k: v for k, v in data.items() if v is not None}
    data["blacklisted_symbols"] = [b.symbol for b in blacklist]
    return coerce_limits(data)


def to_read_model(row: WorkspaceRiskLimits, blacklist: List[BlacklistedSymbol]) -> RiskLimitsRead:
    data = _row_payload(row)
    required = (
        "max_daily_loss_absolute",
        "max_position_size_pct_of_equity",
        "max_risk_per_trade_pct",
        "max_concurrent_positions",
        "min_order_price",
        "min_order_value",
    )
    return RiskLimitsRead(
        workspace_id=row.workspace_id,
        blacklisted_symbols=[b.symbol for b in blacklist],
        complete=all(data.get(name) is not None for name in required),
        updated_at=row.updated_at,
        **data,
    )


def upsert_limits(db: Session, workspace_id: str, payload: RiskLimitsUpsert) -> WorkspaceRiskLimits:
    row = get_limits_row(db, workspace_id)
    if row is None:
        row = WorkspaceRiskLimits(workspace_id=workspace_id)
        db.add(row)

    values = payload.model_dump(mode="json")
    for name in _LIMIT_FIELDS:
        setattr(row, name, values.get(name))
    row.severity_overrides_json = json.dumps(
        values.get("rule_severity_overrides") or {}, sort_keys=True
    )
    db.commit()
    db.refresh(row)
    logger.info(
        "Risk limits updated",
        extra={"extra": {"workspace_id": workspace_id, "version": row.version}},
    )
    return row


def add_to_blacklist(
    db: Session,
    workspace_id: str,
    symbol: str,
    *,
    reason: Optional[str] = None,
) -> BlacklistedSymbol:
    symbol = symbol.strip().upper()
    existing = db.execute(
        select(BlacklistedSymbol).where(
            BlacklistedSymbol.workspace_id == workspace_id,
            BlacklistedSymbol.symbol == symbol,
        )
    ).scalar_one_or_none()
    if existing is not None:
        return existing

    row = BlacklistedSymbol(workspace_id=workspace_id, symbol=symbol, reason=reason)
    db.add(row)
    try:
        db.commit()
    except IntegrityError:
        # Concurrent insert of the same symbol; keep the stored row.
        db.rollback()
        return db.execute(
            select(BlacklistedSymbol).where(
                BlacklistedSymbol.workspace_id == workspace_id,
                BlacklistedSymbol.symbol == symbol,
            )
        ).scalar_one()
    db.refresh(row)
    logger.info(
        "Symbol added to blacklist",
        extra={"extra": {"workspace_id": workspace_id, "symbol": symbol, "reason": reason}},
    )
    return row


def remove_from_blacklist(db: Session, workspace_id: str, symbol: str) -> bool:
    symbol = symbol.strip().upper()
    row = db.execute(
        select(BlacklistedSymbol).where(
            BlacklistedSymbol.workspace_id == workspace_id,
            BlacklistedSymbol.symbol == symbol,
        )
    ).scalar_one_or_none()
    if row is None:
        return False
    db.delete(row)
    db.commit()
    logger.info(
        "Symbol removed from blacklist",
        extra={"extra": {"workspace_id": workspace_id, "symbol": symbol}},
    )
    return True


__all__ = [
    "get_limits_row",
    "list_blacklist",
    "limits_from_row",
    "to_read_model",
    "upsert_limits",
    "add_to_blacklist",
    "remove_from_blacklist",
]
