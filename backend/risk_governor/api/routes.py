from fastapi import APIRouter, Depends

from ..core.config import Settings, get_settings
from ..core.security import require_admin
from . import account_snapshots, decision_records, risk, risk_limits

# ruff: noqa: B008  # FastAPI dependency injection pattern


router = APIRouter()


@router.get("/", tags=["system"])
def read_root(settings: Settings = Depends(get_settings)) -> dict[str, str]:
    """Root endpoint to verify that the API is running."""

    return {
        "message": f"{settings.app_name} is running",
        "environment": settings.environment,
    }


@router.get("/health", tags=["system"])
def health_check(settings: Settings = Depends(get_settings)) -> dict[str, str]:
    """Basic health endpoint used by callers and monitoring."""

    return {
        "status": "ok",
        "service": settings.app_name,
        "environment": settings.environment,
    }


router.include_router(
    risk.router,
    prefix="/risk",
    tags=["risk"],
)

router.include_router(
    risk_limits.router,
    prefix="/api/risk-limits",
    dependencies=[Depends(require_admin)],
    tags=["risk-limits"],
)

router.include_router(
    account_snapshots.router,
    prefix="/api/account-snapshots",
    dependencies=[Depends(require_admin)],
    tags=["account-snapshots"],
)

router.include_router(
    decision_records.router,
    prefix="/api/decision-records",
    dependencies=[Depends(require_admin)],
    tags=["decision-records"],
)


__all__ = ["router"]
