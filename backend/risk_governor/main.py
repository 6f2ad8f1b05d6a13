import logging
import os
import sys
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI

from .api.routes import router as api_router
from .core.config import get_settings
from .core.logging import RequestContextMiddleware, configure_logging
from .services.decision_records import get_decision_emitter

settings = get_settings()

configure_logging(settings.log_level)
logger = logging.getLogger(__name__)


def _run_migrations_if_needed() -> None:
    """Best-effort Alembic migration runner for local/dev usage."""

    if "pytest" in sys.modules or os.getenv("PYTEST_CURRENT_TEST"):
        return

    auto = (os.getenv("RG_AUTO_MIGRATE") or "").strip().lower()
    if auto in {"0", "false", "no", "off"}:
        return

    should_run = auto in {"1", "true", "yes", "on"} or settings.database_url.startswith(
        "sqlite"
    )
    if not should_run:
        return

    try:
        from alembic import command
        from alembic.config import Config

        backend_root = Path(__file__).resolve().parents[1]
        alembic_ini = backend_root / "alembic.ini"
        if not alembic_ini.exists():
            return

        cfg = Config(str(alembic_ini))
        cfg.set_main_option("script_location", str(backend_root / "alembic"))
        cfg.set_main_option("sqlalchemy.url", settings.database_url)
        command.upgrade(cfg, "head")
    except Exception:
        logger.exception("Failed to run Alembic migrations on startup.")


@asynccontextmanager
async def _lifespan(_app: FastAPI):
    """FastAPI lifespan handler for startup/shutdown tasks."""

    _run_migrations_if_needed()
    logger.info("Risk governor starting", extra={"extra": settings.dict_for_logging()})
    yield
    # Shutdown: deliver whatever decision records are still queued.
    emitter = get_decision_emitter()
    if emitter is not None:
        emitter.stop()


app = FastAPI(
    title=settings.app_name,
    version=settings.version,
    debug=settings.debug,
    lifespan=_lifespan,
)

app.add_middleware(RequestContextMiddleware)
app.include_router(api_router)


__all__ = ["app"]
