"""Custom exceptions for scaffolddb.

Every exception carries a human-readable message, a machine-readable context
dict and the status code the CRUD boundary reports for it.
"""

from __future__ import annotations

from typing import Any


class ScaffoldDBError(Exception):
    """Base exception for all scaffolddb errors."""

    status_code = 500

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def to_dict(self) -> dict[str, Any]:
        """Return the error envelope returned to API callers."""
        return {"error": {"message": self.message, "status": self.status_code}}


class ConnectionError(ScaffoldDBError):
    """Failed to open the datastore."""

    pass


class SchemaError(ScaffoldDBError):
    """Schema text could not be read or parsed."""

    pass


class MigrationError(ScaffoldDBError):
    """A DDL statement failed while migrating the datastore."""

    def __init__(self, table_name: str, reason: str) -> None:
        message = f"Migration of table '{table_name}' failed: {reason}"
        super().__init__(message, {"table_name": table_name, "reason": reason})
        self.table_name = table_name
        self.reason = reason


class NotFoundError(ScaffoldDBError):
    """Referenced record (or entity) does not exist."""

    status_code = 404

    def __init__(self, message: str = "Not found", context: dict[str, Any] | None = None) -> None:
        super().__init__(message, context)


class BadRequestError(ScaffoldDBError):
    """Request body is malformed or carries nothing to write."""

    status_code = 400


class ValidationError(ScaffoldDBError):
    """A field failed validation. Only the first failing field is reported."""

    status_code = 422

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message, {"field": field} if field else {})
        self.field = field
