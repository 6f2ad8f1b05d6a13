from __future__ import annotations

from typing import Any, Dict, Optional


class RiskGovernorError(Exception):
    """Base class for errors raised while evaluating an order."""

    code = "RISK_GOVERNOR_ERROR"

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvalidInputError(RiskGovernorError):
    """The order request is malformed; the caller must fix it before retrying."""

    code = "INVALID_INPUT"


class ConfigurationError(RiskGovernorError):
    """Risk limits for the workspace are missing or invalid (fail-closed)."""

    code = "CONFIG_MISSING"


class UpstreamUnavailableError(RiskGovernorError):
    """The account or limits provider could not supply its data."""

    code = "SYSTEM_ERROR"


__all__ = [
    "RiskGovernorError",
    "InvalidInputError",
    "ConfigurationError",
    "UpstreamUnavailableError",
]
