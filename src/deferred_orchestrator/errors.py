"""Failure types carried on the rejection channel.

Failures never cross an asynchronous boundary as raised exceptions. They are
settled as the rejection reason of the nearest enclosing Deferred, unchanged,
and only re-raised when a caller explicitly asks for the outcome
(``result()``, ``run_until_complete`` or ``await``).
"""

from __future__ import annotations

from enum import Enum


class FailureKind(str, Enum):
    """Where a rejection entered the core. Reported in logs, never wrapped."""

    OPERATION = "operation"
    HANDLER = "handler"
    AGGREGATE = "aggregate"


class DeferredError(Exception):
    """Base class for failures produced by the orchestration core.

    ``reason`` is the underlying cause. It may be any object: the original
    scripts rejected with plain strings, and that stays legal.
    """

    def __init__(self, message: str, *, reason: object = None) -> None:
        super().__init__(message)
        self.reason = reason


class RejectionError(DeferredError):
    """Raised in place of a rejection reason that is not an exception."""

    def __init__(self, reason: object) -> None:
        super().__init__(f"Rejected: {reason!r}", reason=reason)


class UnhandledRejectionError(DeferredError):
    """A rejection nobody observed, raised under the strict policy."""

    def __init__(self, reason: object, *, label: str | None = None) -> None:
        where = f" ({label})" if label else ""
        super().__init__(f"Unhandled rejection{where}: {reason!r}", reason=reason)
        self.label = label


class IllegalTransitionError(ValueError):
    pass


def as_exception(reason: object) -> BaseException:
    """Return ``reason`` if it can be raised, else wrap it in RejectionError."""

    if isinstance(reason, BaseException):
        return reason
    return RejectionError(reason)
