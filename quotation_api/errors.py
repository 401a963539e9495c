from __future__ import annotations

from typing import Any, Dict, List, Optional


class QuotationError(Exception):
    """Base class for failures surfaced by the quotation core."""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(QuotationError):
    """Caller data or the requested transition breaks a business rule."""

    status_code = 400
    code = "VALIDATION_ERROR"

    def __init__(self, message: str, reasons: Optional[List[str]] = None) -> None:
        self.reasons = list(reasons or [message])
        super().__init__(message, {"reasons": self.reasons})


class NotFoundError(QuotationError):
    status_code = 404
    code = "NOT_FOUND"


class InvalidStateError(QuotationError):
    """Raised by the state machine when the current status does not permit the operation.

    The service checks transitions before touching the state machine, so this
    reaching a caller means a programming error; it is reported as an internal error.
    """

    code = "INVALID_STATE"


class InternalError(QuotationError):
    """Persistence or other unexpected failure.

    Only the generic message leaves the service; ``tech_info`` is for logs.
    """

    def __init__(self, message: str = "Unexpected server error", tech_info: str = "") -> None:
        super().__init__(message)
        self.tech_info = tech_info
