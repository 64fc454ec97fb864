# school_records/core/exceptions.py
"""Custom exceptions for the school records service."""
from typing import Any, Dict, Optional


class RecordsException(Exception):
    """Base exception for the records core."""
    status_code = 500

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.details = details
        super().__init__(self.message)


class InvalidArgumentError(RecordsException):
    """Missing or malformed input; the caller must fix it and retry."""
    status_code = 400


class PermissionDeniedError(RecordsException):
    """Acting staff member may not record results."""
    status_code = 403

    def __init__(self, message: str = "Permission denied", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class NotFoundError(RecordsException):
    """Referenced class, student, record or subject does not exist."""
    status_code = 404

    def __init__(self, resource: str, id: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        message = f"{resource} not found"
        if id:
            message += f" with id: {id}"
        self.resource = resource
        super().__init__(message, details)


class ConflictError(RecordsException):
    """A term result already exists for the composite key."""
    status_code = 409


class CollaboratorFailureError(RecordsException):
    """Class catalog or student directory unreachable or returned bad data."""
    status_code = 500


class TransactionFailureError(RecordsException):
    """The atomic commit failed; retry the whole operation."""
    status_code = 503
