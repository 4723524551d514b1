from __future__ import annotations

import enum
import functools
import logging
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar

from django.db import DatabaseError, transaction

log = logging.getLogger(__name__)

T = TypeVar("T")

# =========================
# Error kinds
# =========================

class ErrorKind(str, enum.Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    STORE = "store"

class ScheduleError(Exception):
    """Base class for failures raised inside scheduling operations."""
    kind: ErrorKind = ErrorKind.VALIDATION

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

class ScheduleValidationError(ScheduleError):
    """Malformed input: bad date/time, start >= end, duplicates, missing fields."""
    kind = ErrorKind.VALIDATION

class ScheduleNotFoundError(ScheduleError):
    """The referenced assignment, day, project or conflict does not exist."""
    kind = ErrorKind.NOT_FOUND

class ScheduleStoreError(ScheduleError):
    """The data store rejected or failed to complete an operation."""
    kind = ErrorKind.STORE

# =========================
# Result
# =========================

@dataclass
class ActionResult(Generic[T]):
    """Uniform outcome of a mutation: branch on ``success``."""
    success: bool
    data: Optional[T] = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None

    @classmethod
    def ok(cls, data: Optional[T] = None) -> "ActionResult[T]":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str, kind: ErrorKind) -> "ActionResult[T]":
        return cls(success=False, error=error, error_kind=kind)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"success": self.success}
        if self.success:
            out["data"] = self.data
        else:
            out["error"] = self.error
            out["error_kind"] = self.error_kind.value if self.error_kind else None
        return out

def scheduling_action(func: Callable[..., Any]) -> Callable[..., ActionResult]:
    """Runs an operation atomically and folds its failures into an ActionResult.

    The wrapped function returns the success payload; ``ScheduleError`` and
    database errors become failed results and roll the transaction back.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs) -> ActionResult:
        try:
            with transaction.atomic():
                data = func(*args, **kwargs)
        except ScheduleError as exc:
            log.info("%s rejected (%s): %s", func.__name__, exc.kind.value, exc.message)
            return ActionResult.fail(exc.message, exc.kind)
        except DatabaseError as exc:
            log.exception("%s failed in the data store", func.__name__)
            return ActionResult.fail(str(exc) or "Data store error", ErrorKind.STORE)
        return ActionResult.ok(data)
    return wrapper
