from typing import Any, Dict, Optional

class AppException(Exception):
    def __init__(
        self,
        message: str,
        status_code: int = 400,
        error_code: str = "BUSINESS_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details
        super().__init__(self.message)

class InvalidDateRange(AppException):
    def __init__(self, message: str = "End date must be on or after the start date", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=400,
            error_code="INVALID_DATE_RANGE",
            details=details
        )

class InsufficientBalance(AppException):
    def __init__(self, requested: int, available: int):
        super().__init__(
            message=f"Insufficient balance. Requested: {requested}, Available: {available}",
            status_code=400,
            error_code="INSUFFICIENT_BALANCE",
            details={"requested": requested, "available": available}
        )

class InvalidTransition(AppException):
    """Wrong status or wrong actor for a state transition."""
    def __init__(self, message: str = "This request has already been decided", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=409,
            error_code="INVALID_TRANSITION",
            details=details
        )

class InvalidSteps(AppException):
    def __init__(self, message: str = "Workflow steps must be a non-empty list of positive integers"):
        super().__init__(
            message=message,
            status_code=400,
            error_code="INVALID_STEPS"
        )

class NotFound(AppException):
    def __init__(self, entity: str, entity_id: Any = None):
        message = f"{entity} not found" if entity_id is None else f"{entity} {entity_id} not found"
        super().__init__(
            message=message,
            status_code=404,
            error_code="NOT_FOUND",
            details={"entity": entity, "id": entity_id}
        )

class InvariantViolation(AppException):
    """Ledger arithmetic would break its invariant. Indicates a caller bug, never a user error."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=500,
            error_code="INVARIANT_VIOLATION",
            details=details
        )

class ValidationFailed(AppException):
    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(
            message=message,
            status_code=422,
            error_code="VALIDATION_ERROR",
            details={"field": field} if field else None
        )

class LeaveTypeInUse(AppException):
    def __init__(self, leave_type_id: int):
        super().__init__(
            message="Leave type is referenced by existing balances or requests and cannot be deleted",
            status_code=409,
            error_code="LEAVE_TYPE_IN_USE",
            details={"leave_type_id": leave_type_id}
        )

class AuthenticationError(AppException):
    def __init__(self, message: str = "Could not validate credentials"):
        super().__init__(
            message=message,
            status_code=401,
            error_code="AUTH_FAILED"
        )


# Lookup used by transports that only see the error code of a result value
STATUS_BY_ERROR_CODE = {
    "INVALID_DATE_RANGE": 400,
    "INSUFFICIENT_BALANCE": 400,
    "INVALID_TRANSITION": 409,
    "INVALID_STEPS": 400,
    "NOT_FOUND": 404,
    "INVARIANT_VIOLATION": 500,
    "VALIDATION_ERROR": 422,
    "LEAVE_TYPE_IN_USE": 409,
    "AUTH_FAILED": 401,
    "STORAGE_ERROR": 500,
}
