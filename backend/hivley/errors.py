"""Service-level errors."""
from typing import Dict, Optional


class HivleyError(Exception):
    """Base error."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code


class ValidationError(HivleyError):
    """Input rejected before any persistence call."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = "VALIDATION_ERROR",
        fields: Optional[Dict[str, str]] = None
    ):
        super().__init__(message, code)
        self.fields = fields or {}


class AuthenticationError(HivleyError):
    """No valid session."""
    pass


class AuthorizationError(HivleyError):
    """Actor is not allowed to perform the operation."""
    pass


class NotFoundError(HivleyError):
    pass


class ConflictError(HivleyError):
    """A unique constraint rejected a write."""
    pass


class StorageError(HivleyError):
    """Blob store failure."""
    pass
