"""
Domain exceptions for the inventory pipeline.

Every error carries a machine-checkable ``error_code`` and the HTTP status the
API layer should answer with. Persistence failures keep a generic public
message; the underlying cause is only logged.
"""

from typing import Any, Dict, List, Optional


class BloodNetError(Exception):
    """Base class for all domain errors"""

    error_code = "error"
    status_code = 500

    def __init__(self, message: str, details: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or []

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            "success": False,
            "error": self.error_code,
            "message": self.message,
        }
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(BloodNetError):
    """Malformed or missing input, rejected before touching storage"""

    error_code = "validation_error"
    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        details = [{"field": field, "message": message}] if field else None
        super().__init__(message, details)
        self.field = field


class InvalidQuantityError(ValidationError):
    error_code = "invalid_quantity"

    def __init__(self, quantity: Any):
        super().__init__(
            f"Quantity must be a non-negative integer, got {quantity!r}",
            field="quantity",
        )
        self.quantity = quantity


class NotFoundError(BloodNetError):
    error_code = "not_found"
    status_code = 404

    def __init__(self, resource: str, identifier: Any = None):
        message = f"{resource} not found"
        if identifier is not None:
            message = f"{resource} '{identifier}' not found"
        super().__init__(message)
        self.resource = resource


class AlreadyExistsError(BloodNetError):
    error_code = "already_exists"
    status_code = 409


class PersistenceError(BloodNetError):
    """Storage unreachable or write failed; never exposes driver details"""

    error_code = "persistence_error"
    status_code = 500

    def __init__(self, operation: str):
        super().__init__(f"Failed to {operation}. Please try again later.")
        self.operation = operation


class AuthenticationError(BloodNetError):
    error_code = "unauthorized"
    status_code = 401


class PermissionDeniedError(BloodNetError):
    error_code = "forbidden"
    status_code = 403
