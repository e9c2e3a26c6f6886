"""
Custom exceptions for the admin client.

Taxonomy:
- ValidationError: field-scoped, recoverable, shown inline next to fields
- QueryValidationError: list query rejected locally before any request
- AuthorizationError: blocks the action entirely and redirects
- ApiError and subclasses (see api_client): transport failures surfaced
  as a banner by the controllers
"""

from typing import Dict, Optional


class AdminError(Exception):
    """Base exception for admin client errors."""
    pass


class ValidationError(AdminError):
    """Raised when a draft fails its validation schema."""

    def __init__(self, field_errors: Dict[str, str]):
        self.field_errors = dict(field_errors)
        fields = ", ".join(sorted(self.field_errors))
        super().__init__(f"Validation failed for: {fields}")


class QueryValidationError(AdminError):
    """Raised when a list query references an unknown or disallowed field."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.message = message
        self.field = field
        super().__init__(message)


class AuthorizationError(AdminError):
    """Raised when the capability check denies an operation."""

    def __init__(self, service: str, entity: str, operation: str, redirect_to: str = "/"):
        self.service = service
        self.entity = entity
        self.operation = operation
        self.redirect_to = redirect_to
        super().__init__(
            f"Operation {operation} on {service}:{entity} is not authorized"
        )
