from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import wraps
from typing import Any, Callable, Generic, Optional, TypeVar

from .enums import ErrorKind
from .exceptions import DomainError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    """Discriminated outcome of an exposed operation.

    ``success`` tells which branch applies: ``data`` on success, ``error`` and
    ``error_kind`` on failure. A failure may still carry ``data`` (e.g. the
    existing run on a duplicate generation).
    """

    success: bool
    data: Optional[T] = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None

    @classmethod
    def ok(cls, data: Optional[T] = None) -> "Result[T]":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, kind: ErrorKind, error: str, *, data: Any = None) -> "Result[Any]":
        return cls(success=False, data=data, error=error, error_kind=kind)

    def to_dict(self) -> dict:
        if self.success:
            return {"success": True, "data": self.data}
        return {
            "success": False,
            "error": self.error,
            "errorKind": self.error_kind.value if self.error_kind else None,
            "data": self.data,
        }


def returns_result(func: Callable[..., T]) -> Callable[..., Result[T]]:
    """Wrap a service method so domain errors come back as failed results.

    Anything that is not a DomainError (bugs, tenant scoping violations,
    database outages) propagates unchanged.
    """

    @wraps(func)
    def wrapper(*args, **kwargs) -> Result[T]:
        try:
            return Result.ok(func(*args, **kwargs))
        except DomainError as e:
            logger.info("%s rejected: %s (%s)", func.__qualname__, e, e.kind.value)
            return Result.fail(e.kind, str(e), data=e.data)

    return wrapper
