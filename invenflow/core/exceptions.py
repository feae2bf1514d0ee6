from fastapi import HTTPException
from invenflow.constants.error_codes import ErrorCode


class AppException(HTTPException):
    def __init__(
        self,
        status_code: int,
        message: str,
        error_code: ErrorCode,
        details: dict | None = None,
    ):
        super().__init__(status_code=status_code, detail=message)
        self.error_code = error_code
        self.details = details


# =====================================================
# TAXONOMY
# =====================================================
class ValidationError(AppException):
    """Malformed or out-of-range input. Raised before any write."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.VALIDATION_ERROR,
        details: dict | None = None,
    ):
        super().__init__(400, message, error_code, details)


class NotFoundError(AppException):
    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.NOT_FOUND,
        details: dict | None = None,
    ):
        super().__init__(404, message, error_code, details)


class InvalidStateError(AppException):
    """Operation attempted against a movement not in the required state.

    ``reason`` is one of ``already_confirmed``, ``cancelled``, ``expired``
    on the public surface, and the current status on the sender surface.
    ``hide_reason`` keeps it out of the rendered details.
    """

    def __init__(
        self,
        message: str,
        reason: str,
        error_code: ErrorCode = ErrorCode.BULK_MOVEMENT_INVALID_STATUS,
        details: dict | None = None,
        status_code: int = 409,
        hide_reason: bool = False,
    ):
        super().__init__(
            status_code,
            message,
            error_code,
            details if hide_reason else {"reason": reason, **(details or {})},
        )
        self.reason = reason


class ExpiredError(InvalidStateError):
    """The public token is past its expiry."""

    def __init__(self, message: str = "This bulk movement link has expired", details: dict | None = None):
        super().__init__(
            message,
            reason="expired",
            error_code=ErrorCode.BULK_MOVEMENT_EXPIRED,
            details=details,
            status_code=410,
        )


class InsufficientStockError(AppException):
    def __init__(self, message: str = "Insufficient stock", details: dict | None = None):
        super().__init__(409, message, ErrorCode.INSUFFICIENT_STOCK, details)
