"""
Custom exceptions for parcel persistence and lifecycle rules.

Every error carries a stable error code and a details dict so callers can
report failures consistently.
"""

from typing import Any, Dict


class AppException(Exception):
    """Base application exception."""
    
    def __init__(self, message: str, error_code: str, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(message)


class StorageError(AppException):
    """Raised when the backing database fails (unreachable, I/O, constraint violation)."""
    
    def __init__(self, message: str = "Storage operation failed", details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_STORAGE_001",
            details=details
        )


class NotFoundError(AppException):
    """Raised when requested resource is not found."""
    
    def __init__(self, resource: str, resource_id: Any = None):
        message = f"{resource} not found"
        if resource_id is not None:
            message = f"{resource} with ID {resource_id} not found"
        super().__init__(
            message=message,
            error_code="ERR_NOT_FOUND_001",
            details={"resource": resource, "id": resource_id}
        )


class InvalidStateError(AppException):
    """Raised when a parcel's current status forbids the requested mutation."""
    
    def __init__(self, number: int, status: str, action: str):
        super().__init__(
            message=f"Cannot {action} parcel {number} in status '{status}'",
            error_code="ERR_STATE_001",
            details={"number": number, "status": status, "action": action}
        )


class InvalidTransitionError(AppException):
    """Raised when a status change is not a single forward step."""
    
    def __init__(self, number: int, current: str, requested: str):
        super().__init__(
            message=f"Parcel {number} cannot move from '{current}' to '{requested}'",
            error_code="ERR_TRANSITION_001",
            details={"number": number, "current": current, "requested": requested}
        )
