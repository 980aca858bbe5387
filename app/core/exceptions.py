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

class NotFoundError(AppException):
    def __init__(self, resource: str = "Resource"):
        super().__init__(
            message=f"{resource} not found",
            status_code=404,
            error_code="NOT_FOUND"
        )

class ValidationFailedError(AppException):
    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=400,
            error_code="VALIDATION_FAILED",
            details=details
        )

class ConflictError(AppException):
    def __init__(self, message: str = "Duplicate entry found"):
        super().__init__(
            message=message,
            status_code=409,
            error_code="DUPLICATE_ENTRY"
        )

class AuthenticationError(AppException):
    def __init__(self, message: str = "Could not validate credentials"):
        super().__init__(
            message=message,
            status_code=401,
            error_code="AUTH_FAILED"
        )

class AccessDeniedError(AppException):
    """Custom permission error. Named AccessDeniedError to avoid shadowing Python's built-in PermissionError."""
    def __init__(self, message: str = "Not authorized to access this resource"):
        super().__init__(
            message=message,
            status_code=403,
            error_code="PERMISSION_DENIED"
        )

class ReportNotFoundError(AppException):
    def __init__(self, message: str = "No performance data found for the selected criteria"):
        super().__init__(
            message=message,
            status_code=404,
            error_code="REPORT_NOT_FOUND"
        )

class DatabaseConnectionError(RuntimeError):
    """Raised at startup when the database is unreachable or not configured."""
