# app/base/exceptions.py

from typing import Optional


class ServiceError(Exception):
    """Base class for errors that map onto a caller-facing HTTP status."""

    status_code: int = 500
    error_type: str = "service"

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(ServiceError):
    status_code = 400
    error_type = "validation"


class NotFoundError(ServiceError):
    status_code = 404
    error_type = "not_found"


class ConflictError(ServiceError):
    status_code = 409
    error_type = "conflict"
