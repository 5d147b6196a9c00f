"""Shared utilities package."""

from packages.shared.exceptions import (
    AppException,
    ConflictError,
    InvalidIdError,
    NotFoundError,
    ValidationError,
    is_object_id,
    validate_object_id,
)
from packages.shared.slugs import slugify

__all__ = [
    "AppException",
    "ConflictError",
    "InvalidIdError",
    "NotFoundError",
    "ValidationError",
    "is_object_id",
    "slugify",
    "validate_object_id",
]
