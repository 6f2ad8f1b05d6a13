from __future__ import annotations

from typing import Any, Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from risk_governor.core.config import get_settings

from .base import Base


def build_engine(database_url: str, *, echo: bool = False) -> Engine:
    """Create the engine shared by request handlers and the decision recorder."""

    connect_args: dict[str, Any] = {}
    if database_url.startswith("sqlite"):
        # Decision records are written from the emitter's worker thread while
        # requests hold their own connections.
        connect_args["check_same_thread"] = False
        connect_args["timeout"] = 15
    return create_engine(database_url, echo=echo, future=True, connect_args=connect_args)


settings = get_settings()
engine = build_engine(settings.database_url, echo=settings.database_echo)

SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    expire_on_commit=False,
    class_=Session,
)


def get_db() -> Iterator[Session]:
    """Yield a request-scoped session."""

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


__all__ = ["engine", "SessionLocal", "build_engine", "get_db", "Base"]
