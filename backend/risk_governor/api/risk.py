from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from risk_governor.core.errors import (
    ConfigurationError,
    InvalidInputError,
    UpstreamUnavailableError,
)
from risk_governor.core.logging import log_with_correlation
from risk_governor.db.session import get_db
from risk_governor.schemas.risk import EvaluateRequest, TradingStatus, Verdict
from risk_governor.services.decision_records import DecisionRecordEmitter, get_decision_emitter
from risk_governor.services.providers import SqlAccountProvider, SqlRiskLimitsProvider
from risk_governor.services.risk_service import evaluate_order, workspace_trading_status

# ruff: noqa: B008  # FastAPI dependency injection pattern

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/evaluate", response_model=Verdict)
def evaluate(
    payload: EvaluateRequest,
    request: Request,
    db: Session = Depends(get_db),
    emitter: Optional[DecisionRecordEmitter] = Depends(get_decision_emitter),
) -> Verdict:
    """Pre-trade gate used by both the preview UI and the execution path."""

    try:
        return evaluate_order(
            payload.order,
            payload.workspace_id,
            account_provider=SqlAccountProvider(db),
            limits_provider=SqlRiskLimitsProvider(db),
            emitter=emitter,
            today_trade_count=payload.today_trade_count,
        )
    except InvalidInputError as exc:
        log_with_correlation(
            logger,
            request,
            logging.INFO,
            "Order rejected as malformed",
            workspace_id=payload.workspace_id,
            error=exc.message,
        )
        raise HTTPException(
            status_code=422,
            detail={"code": exc.code, "message": exc.message, "details": exc.details},
        ) from exc


@router.get("/status/{workspace_id}", response_model=TradingStatus)
def get_trading_status(
    workspace_id: str,
    db: Session = Depends(get_db),
) -> TradingStatus:
    try:
        return workspace_trading_status(
            workspace_id,
            account_provider=SqlAccountProvider(db),
            limits_provider=SqlRiskLimitsProvider(db),
        )
    except ConfigurationError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"code": exc.code, "message": exc.message, "details": exc.details},
        ) from exc
    except UpstreamUnavailableError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"code": exc.code, "message": exc.message, "details": exc.details},
        ) from exc


__all__ = ["router"]
