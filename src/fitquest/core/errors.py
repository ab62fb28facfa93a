"""
Exception hierarchy and typed operation results.

Core modules raise FitquestError subclasses. The service layer converts
them into Success / Failure values so callers can tell a rejected
request from a storage outage, and partial success from total failure.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, Literal, TypeVar, Union

logger = logging.getLogger(__name__)

T = TypeVar("T")

ErrorCategory = Literal["validation", "persistence", "catalog", "unknown"]


class FitquestError(Exception):
    """Base class for engine errors."""

    category: ErrorCategory = "unknown"


class ValidationFailure(FitquestError):
    """Input that violates an operation's precondition (e.g. missing id)."""

    category: ErrorCategory = "validation"


class PersistenceError(FitquestError):
    """A read or write against the progression store failed."""

    category: ErrorCategory = "persistence"


class CatalogError(FitquestError):
    """The achievement catalog could not be loaded or is inconsistent."""

    category: ErrorCategory = "catalog"


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Failure:
    category: ErrorCategory
    message: str
    operation: str

    @property
    def ok(self) -> bool:
        return False

    def __str__(self) -> str:
        return f"{self.operation} failed ({self.category}): {self.message}"


Result = Union[Success[T], Failure]


def run_operation(operation: str, fn: Callable[[], T]) -> "Result[T]":
    """
    Run fn and wrap its outcome.

    FitquestError subclasses keep their category; any other exception is
    reported as "unknown". Failures are logged, never dropped.
    """
    try:
        return Success(fn())
    except FitquestError as e:
        logger.warning("%s failed (%s): %s", operation, e.category, e)
        return Failure(category=e.category, message=str(e), operation=operation)
    except Exception as e:
        logger.exception("%s failed unexpectedly", operation)
        return Failure(category="unknown", message=str(e), operation=operation)


def require_id(value: str | None, name: str) -> str:
    """Return value or raise ValidationFailure when it is missing/blank."""
    if value is None or not str(value).strip():
        raise ValidationFailure(f"{name} is required")
    return str(value)
