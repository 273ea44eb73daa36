"""
Utilities module: Exceptions, response envelope, schemas.
"""

from shared.utils.exceptions import (
    NotFoundError,
    ForbiddenError,
    ValidationError,
    ConflictError,
    LockedError,
)
from shared.utils.response import ok, created, paginated, error

__all__ = [
    # exceptions
    "NotFoundError",
    "ForbiddenError",
    "ValidationError",
    "ConflictError",
    "LockedError",
    # response envelope
    "ok",
    "created",
    "paginated",
    "error",
]
