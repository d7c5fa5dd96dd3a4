from fastapi import HTTPException, status
from typing import Optional, Dict, Any

class BaseAPIException(HTTPException):
    """Base exception for API errors"""
    def __init__(
        self,
        status_code: int,
        error_code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        self.error_code = error_code
        self.message = message
        self.details = details or {}

        super().__init__(
            status_code=status_code,
            detail={
                "success": False,
                "error": {
                    "code": error_code,
                    "message": message,
                    "details": self.details
                }
            }
        )

    def __str__(self) -> str:  # Ensure str(e) returns the human message
        return self.message

class AuthenticationError(BaseAPIException):
    """Missing or invalid bearer token"""
    def __init__(self, message: str = "Authentication failed", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            error_code="AUTH_001",
            message=message,
            details=details
        )

class UnauthorizedError(BaseAPIException):
    """Caller does not own the booking or lacks the admin role"""
    def __init__(self, message: str = "Access forbidden", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            error_code="AUTH_002",
            message=message,
            details=details
        )

class ValidationError(BaseAPIException):
    """Malformed cart, capacity or request data"""
    def __init__(self, message: str = "Validation failed", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code="VALIDATION_001",
            message=message,
            details=details
        )

class NotFoundError(BaseAPIException):
    """Booking, user, activity, coach or item row missing"""
    def __init__(self, message: str = "Resource not found", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="NOT_FOUND_001",
            message=message,
            details=details
        )

class ConflictError(BaseAPIException):
    """Slot state conflict or lost optimistic lock"""
    def __init__(self, message: str = "Resource conflict", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            error_code="CONFLICT_001",
            message=message,
            details=details
        )

class InsufficientFundsError(BaseAPIException):
    """Wallet or token balance too low"""
    def __init__(self, message: str = "Not enough credits or tokens", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="BALANCE_001",
            message=message,
            details=details
        )

class StoreWriteError(BaseAPIException):
    """Any update or insert rejected by the store"""
    def __init__(self, message: str = "Failed to write to the data store", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="STORE_001",
            message=message,
            details=details
        )

class InternalServerError(BaseAPIException):
    """Internal server errors"""
    def __init__(self, message: str = "Internal server error", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="INTERNAL_001",
            message=message,
            details=details
        )
