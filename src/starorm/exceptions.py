"""
starorm Exceptions

Every error raised by the ORM core derives from OrmError so callers only
have one taxonomy to handle. Storage failures from the database layer are
re-raised as StorageError with the original error chained as __cause__.
"""

from typing import Any, Optional


class OrmError(Exception):
    """Base class for all ORM errors."""

    def __init__(self, message: str = "", code: Any = 0):
        super().__init__(message)
        self.message = message
        self.code = code


class ModelStateError(OrmError):
    """Raised on an illegal lifecycle transition (e.g. find() on a loaded model)."""
    pass


class UnknownPropertyError(OrmError, AttributeError):
    """Raised when reading or writing an undeclared column or relationship alias."""

    def __init__(self, prop: str, model_class: str, message: Optional[str] = None):
        super().__init__(message or f"The {prop} property does not exist in the {model_class} class")
        self.property = prop
        self.model_class = model_class


class StorageError(OrmError):
    """Wraps a database layer failure, keeping its message and code."""
    pass


class AuthError(OrmError):
    """Raised when the auth layer is misconfigured."""
    pass
