from typing import Any, Dict, Optional


class AppException(Exception):
    def __init__(
        self,
        message: str,
        status_code: int = 400,
        error_code: str = "BUSINESS_ERROR",
        details: Optional[Dict[str, Any]] = None,
        retryable: bool = False,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details
        self.retryable = retryable
        super().__init__(self.message)


# --- Validation (4xx, never retried automatically) ---

class ValidationError(AppException):
    def __init__(self, message: str, error_code: str = "VALIDATION_ERROR", details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, status_code=400, error_code=error_code, details=details)


class InvalidPeriodError(ValidationError):
    def __init__(self, message: str = "Invalid month or year", details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, error_code="INVALID_PERIOD", details=details)


class NoSelectionError(ValidationError):
    def __init__(self, message: str = "No employees selected"):
        super().__init__(message=message, error_code="NO_SELECTION")


class NotFoundError(AppException):
    def __init__(self, message: str = "Resource not found"):
        super().__init__(message=message, status_code=404, error_code="NOT_FOUND")


class SequenceViolationError(AppException):
    def __init__(self, expected: str, received: str):
        super().__init__(
            message=f"Expected {expected} but received {received}",
            status_code=409,
            error_code="SEQUENCE_VIOLATION",
            details={"expected": expected, "received": received},
        )


# --- Authorization ---

class AuthenticationError(AppException):
    def __init__(self, message: str = "Could not validate credentials"):
        super().__init__(
            message=message,
            status_code=401,
            error_code="AUTH_FAILED"
        )


class AccessDeniedError(AppException):
    """Custom permission error. Named AccessDeniedError to avoid shadowing Python's built-in PermissionError."""
    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__(
            message=message,
            status_code=403,
            error_code="PERMISSION_DENIED"
        )


class FeatureDisabledError(AccessDeniedError):
    def __init__(self, feature: str):
        super().__init__(message=f"{feature} is disabled for this account")
        self.error_code = "FEATURE_DISABLED"


# --- Document pipeline ---

class RenderingFailure(AppException):
    def __init__(self, message: str = "Payslip rendering failed, please retry"):
        super().__init__(
            message=message,
            status_code=503,
            error_code="RENDERING_FAILED",
            retryable=True,
        )


class StorageFailure(AppException):
    def __init__(self, message: str = "Payslip copy could not be stored, please retry"):
        super().__init__(
            message=message,
            status_code=503,
            error_code="STORAGE_FAILED",
            retryable=True,
        )


class EncryptionFailure(AppException):
    """Raised by PDF encryptors. Callers degrade to unencrypted delivery."""
    def __init__(self, message: str = "PDF encryption failed"):
        super().__init__(message=message, status_code=500, error_code="ENCRYPTION_FAILED")


class DeliveryFailure(AppException):
    def __init__(self, message: str = "Payslip email could not be delivered"):
        super().__init__(
            message=message,
            status_code=502,
            error_code="DELIVERY_FAILED",
            retryable=True,
        )
