"""
Application Exceptions.

Taxonomy:
- InputValidationError: insufficient / malformed series, rejected before any oracle call
- OracleCallError: one oracle call failed (network, status, body); isolated to that call
- AllOraclesFailed: zero successful oracle calls; triggers the fallback generator
- PersistenceError: audit write failed; logged, never affects the response
"""

from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorCode(str, Enum):
    """Application error codes."""

    INTERNAL_ERROR = "E1000"
    VALIDATION_ERROR = "E1001"
    ORACLE_CALL_ERROR = "E5000"
    ALL_ORACLES_FAILED = "E5001"
    PERSISTENCE_ERROR = "E6000"


class SkySniperError(Exception):
    """Base exception for the prediction service."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class InputValidationError(SkySniperError):
    """Series too short or containing invalid observations."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            code=ErrorCode.VALIDATION_ERROR,
            status_code=400,
            details=details,
        )


class OracleCallError(SkySniperError):
    """A single oracle call failed or returned a non-conforming body."""

    def __init__(self, message: str, temperature: Optional[float] = None):
        super().__init__(
            message=message,
            code=ErrorCode.ORACLE_CALL_ERROR,
            status_code=502,
            details={"temperature": temperature},
        )
        self.temperature = temperature


class AllOraclesFailed(SkySniperError):
    """Every oracle call in a fan-out failed."""

    def __init__(self, errors: List[BaseException]):
        self.errors = list(errors)
        super().__init__(
            message=f"All AI calls failed ({len(self.errors)} attempted)",
            code=ErrorCode.ALL_ORACLES_FAILED,
            status_code=502,
            details={"errors": [str(e) for e in self.errors]},
        )


class PersistenceError(SkySniperError):
    """Audit log write failed."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            code=ErrorCode.PERSISTENCE_ERROR,
            status_code=500,
        )
