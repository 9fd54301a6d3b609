"""Deferred unit of work: a value standing for one eventual outcome.

A Deferred is created around an executor that receives ``resolve`` and
``reject``. It settles at most once, from PENDING to FULFILLED or REJECTED,
and stays there. Observers registered with ``on_settle`` run on a later loop
turn and receive the outcome; what they return (or raise) settles the derived
Deferred that ``on_settle`` hands back, which is how chains are built.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Generator
from enum import Enum
from typing import Any, Generic, TypeVar

from deferred_orchestrator.core.loop import EventLoop, get_event_loop
from deferred_orchestrator.core.notification import Operation, start
from deferred_orchestrator.errors import FailureKind, IllegalTransitionError, as_exception

logger = logging.getLogger(__name__)

T = TypeVar("T")

Resolve = Callable[[Any], None]
Reject = Callable[[object], None]
Executor = Callable[[Resolve, Reject], None]


class DeferredState(str, Enum):
    PENDING = "pending"
    FULFILLED = "fulfilled"
    REJECTED = "rejected"


ALLOWED_TRANSITIONS: dict[DeferredState, set[DeferredState]] = {
    DeferredState.PENDING: {DeferredState.FULFILLED, DeferredState.REJECTED},
    DeferredState.FULFILLED: set(),
    DeferredState.REJECTED: set(),
}


def transition(*, current: DeferredState, to: DeferredState) -> DeferredState:
    allowed = ALLOWED_TRANSITIONS.get(current, set())
    if to not in allowed:
        raise IllegalTransitionError(f"Illegal transition: {current.value} -> {to.value}")
    return to


class Deferred(Generic[T]):
    """An asynchronous operation's single eventual outcome.

    Args:
        executor: Called synchronously with ``resolve`` and ``reject``. It may
            settle immediately or arrange for settlement on a later turn. If it
            raises before settling, the Deferred rejects with the exception.
        loop: Loop that runs observers. Defaults to the current loop.
        label: Name used in logs and reprs.

    ``resolve`` and ``reject`` are no-ops once the Deferred has settled or has
    been resolved with another Deferred whose outcome it is waiting to adopt.
    """

    def __init__(
        self,
        executor: Executor | None = None,
        *,
        loop: EventLoop | None = None,
        label: str | None = None,
    ) -> None:
        self._loop = loop or get_event_loop()
        self._state = DeferredState.PENDING
        self._value: Any = None
        self._reason: object = None
        self._locked = False
        self._observed = False
        self._observers: list[tuple[Callable[[Any], None], Callable[[object], None]]] = []
        self.label = label

        if executor is not None:
            try:
                executor(self._resolve, self._reject)
            except Exception as e:
                self._reject(e)

    # Constructors -------------------------------------------------------------------

    @classmethod
    def resolved(cls, value: Any, *, loop: EventLoop | None = None) -> Deferred[Any]:
        return cls(lambda resolve, _reject: resolve(value), loop=loop)

    @classmethod
    def rejected(cls, reason: object, *, loop: EventLoop | None = None) -> Deferred[Any]:
        return cls(lambda _resolve, reject: reject(reason), loop=loop)

    @classmethod
    def from_operation(
        cls, operation: Operation, *, loop: EventLoop | None = None
    ) -> Deferred[Any]:
        """Wrap a callback-style operation.

        An error payload rejects with that payload unchanged; anything else
        resolves with the result payload.
        """

        loop = loop or get_event_loop()

        def _executor(resolve: Resolve, reject: Reject) -> None:
            def _on_done(error: object | None, result: object | None) -> None:
                if error is not None:
                    logger.debug(
                        "Operation failed",
                        extra={"failure": FailureKind.OPERATION.value, "error": repr(error)},
                    )
                    reject(error)
                else:
                    resolve(result)

            start(operation, _on_done, loop=loop)

        describe = getattr(operation, "describe", None)
        label = describe() if callable(describe) else type(operation).__name__
        return cls(_executor, loop=loop, label=label)

    # State --------------------------------------------------------------------------

    @property
    def loop(self) -> EventLoop:
        return self._loop

    @property
    def state(self) -> DeferredState:
        return self._state

    @property
    def is_pending(self) -> bool:
        return self._state is DeferredState.PENDING

    @property
    def is_settled(self) -> bool:
        return self._state is not DeferredState.PENDING

    @property
    def is_fulfilled(self) -> bool:
        return self._state is DeferredState.FULFILLED

    @property
    def is_rejected(self) -> bool:
        return self._state is DeferredState.REJECTED

    @property
    def value(self) -> Any:
        """Fulfilment value, or None unless fulfilled."""
        return self._value

    @property
    def reason(self) -> object:
        """Rejection reason, or None unless rejected."""
        return self._reason

    @property
    def observed(self) -> bool:
        return self._observed

    def mark_observed(self) -> None:
        """Take responsibility for the outcome without registering an observer."""
        self._observed = True

    def result(self) -> T:
        """Return the value, raise the rejection reason, or fail if still pending."""

        if self.is_pending:
            raise RuntimeError(f"{self!r} is still pending")
        self._observed = True
        if self.is_rejected:
            raise as_exception(self._reason)
        return self._value

    # Settlement ---------------------------------------------------------------------

    def _resolve(self, value: Any) -> None:
        if self._locked or self.is_settled:
            logger.debug("Ignoring resolve on settled deferred", extra={"deferred": self.label})
            return
        if value is self:
            self._settle(DeferredState.REJECTED, TypeError("A Deferred cannot resolve to itself"))
            return
        if isinstance(value, Deferred):
            self._locked = True
            value._subscribe(self._fulfil, self._fail)
            return
        self._settle(DeferredState.FULFILLED, value)

    def _reject(self, reason: object) -> None:
        if self._locked or self.is_settled:
            logger.debug("Ignoring reject on settled deferred", extra={"deferred": self.label})
            return
        self._settle(DeferredState.REJECTED, reason)

    def _fulfil(self, value: Any) -> None:
        self._settle(DeferredState.FULFILLED, value)

    def _fail(self, reason: object) -> None:
        self._settle(DeferredState.REJECTED, reason)

    def _settle(self, to: DeferredState, payload: object) -> None:
        self._state = transition(current=self._state, to=to)
        if to is DeferredState.FULFILLED:
            self._value = payload
        else:
            self._reason = payload

        logger.debug(
            "Deferred settled",
            extra={"deferred": self.label, "state": to.value},
        )

        observers, self._observers = self._observers, []
        for on_fulfilled, on_rejected in observers:
            self._schedule(on_fulfilled, on_rejected)

        if to is DeferredState.REJECTED and not self._observed:
            self._loop.track_rejection(self)

    def _schedule(
        self, on_fulfilled: Callable[[Any], None], on_rejected: Callable[[object], None]
    ) -> None:
        if self._state is DeferredState.FULFILLED:
            self._loop.call_soon(on_fulfilled, self._value)
        else:
            self._loop.call_soon(on_rejected, self._reason)

    def _subscribe(
        self, on_fulfilled: Callable[[Any], None], on_rejected: Callable[[object], None]
    ) -> None:
        """Register raw continuations. They always run as microtasks."""

        self._observed = True
        if self.is_pending:
            self._observers.append((on_fulfilled, on_rejected))
        else:
            self._schedule(on_fulfilled, on_rejected)

    # Observation --------------------------------------------------------------------

    def on_settle(
        self,
        on_fulfilled: Callable[[T], Any] | None = None,
        on_rejected: Callable[[object], Any] | None = None,
    ) -> Deferred[Any]:
        """Register observers and return the Deferred of their outcome.

        A missing observer passes the outcome through unchanged. An observer's
        return value resolves the derived Deferred (a returned Deferred is
        adopted); an observer that raises rejects it with the raised exception.
        """

        derived: Deferred[Any] = Deferred(
            loop=self._loop, label=f"{self.label}>" if self.label else None
        )

        def _run(handler: Callable[[Any], Any], payload: object) -> None:
            try:
                out = handler(payload)
            except Exception as e:
                logger.debug(
                    "Observer raised",
                    extra={"failure": FailureKind.HANDLER.value, "error": repr(e)},
                )
                derived._reject(e)
                return
            derived._resolve(out)

        def _fulfilled(value: Any) -> None:
            if on_fulfilled is None:
                derived._resolve(value)
            else:
                _run(on_fulfilled, value)

        def _rejected(reason: object) -> None:
            if on_rejected is None:
                derived._reject(reason)
            else:
                _run(on_rejected, reason)

        self._subscribe(_fulfilled, _rejected)
        return derived

    then = on_settle

    def catch(self, on_rejected: Callable[[object], Any]) -> Deferred[Any]:
        return self.on_settle(None, on_rejected)

    def finally_(self, callback: Callable[[], Any]) -> Deferred[T]:
        """Run ``callback`` on either outcome, then pass the original outcome on.

        If ``callback`` raises or returns a Deferred that rejects, that failure
        replaces the original outcome.
        """

        loop = self._loop

        def _after(out: Any, replay: Callable[[], Any]) -> Any:
            if isinstance(out, Deferred):
                return out.then(lambda _ignored: replay())
            return replay()

        def _on_fulfilled(value: T) -> Any:
            return _after(callback(), lambda: value)

        def _on_rejected(reason: object) -> Any:
            return _after(callback(), lambda: Deferred.rejected(reason, loop=loop))

        return self.on_settle(_on_fulfilled, _on_rejected)

    def __await__(self) -> Generator[Deferred[T], Any, T]:
        value = yield self
        return value

    def __repr__(self) -> str:
        name = f" {self.label}" if self.label else ""
        if self.is_fulfilled:
            detail = f" value={self._value!r}"
        elif self.is_rejected:
            detail = f" reason={self._reason!r}"
        else:
            detail = ""
        return f"<Deferred{name} {self._state.value}{detail}>"
