"""
Custom exceptions for RepriseVal.

Provides a hierarchy of exceptions with error codes for consistent error handling.
Only structural problems are raised; data problems inside a well-formed context
surface as alerts, coherence checks or anomalies instead.
"""
from typing import Optional, Dict, Any, List


class RepriseValError(Exception):
    """
    Base exception for all RepriseVal errors.

    Attributes:
        error_code: Unique error code (e.g., RPV-100)
        message: Human-readable error message
        details: Additional error context
    """
    error_code: str = "RPV-000"
    http_status: int = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
    ):
        self.message = message
        self.details = details or {}
        if error_code:
            self.error_code = error_code
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API response."""
        return {
            "error": True,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }


# Input Errors (RPV-1XX)
class InvalidContextError(RepriseValError):
    """The analysis payload does not have the expected shape."""
    error_code = "RPV-100"
    http_status = 422

    def __init__(self, errors: Optional[List[Dict[str, Any]]] = None, **kwargs):
        message = "Analysis context is malformed"
        super().__init__(message, details={"errors": errors or []}, **kwargs)


# Reference Data Errors (RPV-2XX)
class UnknownSectorError(RepriseValError):
    """No benchmark exists for a sector code and strict lookup was requested."""
    error_code = "RPV-200"
    http_status = 404

    def __init__(self, sector_code: str, **kwargs):
        message = f"No sector benchmark for code {sector_code!r}"
        super().__init__(message, details={"sector_code": sector_code}, **kwargs)


# Rule Table Errors (RPV-3XX)
class RuleDefinitionError(RepriseValError):
    """An alert rule references a metric, operator or placeholder that does not exist."""
    error_code = "RPV-300"
    http_status = 500

    def __init__(self, rule_id: str, reason: str, **kwargs):
        message = f"Alert rule {rule_id} is invalid: {reason}"
        super().__init__(message, details={"rule_id": rule_id, "reason": reason}, **kwargs)


# Engine Errors (RPV-9XX)
class EngineError(RepriseValError):
    """Unexpected failure of a pipeline stage."""
    error_code = "RPV-900"
    http_status = 500

    def __init__(self, stage: str, message: str = "Analysis pipeline failed", **kwargs):
        super().__init__(message, details={"stage": stage}, **kwargs)
