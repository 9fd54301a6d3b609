"""Notification primitive: call back exactly once when raw work concludes.

This is the callback style of the library. Everything above it (Deferred,
sequencing, aggregation) is built by wrapping an ``Operation`` with ``start``.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Protocol

from deferred_orchestrator.core.loop import EventLoop, get_event_loop

logger = logging.getLogger(__name__)

OnDone = Callable[[object | None, object | None], None]


class Operation(Protocol):
    """Opaque external work.

    ``start`` begins the work out-of-band and must eventually invoke
    ``on_done(error, result)``. Exactly one of the two payloads is meaningful:
    a non-None ``error`` means failure.
    """

    def start(self, on_done: OnDone) -> None: ...


class NotifyOnce:
    """Single-assignment guard around an ``on_done`` callback.

    The first call wins and is delivered to ``on_done`` on a later loop turn.
    Every later call is ignored. Safe to fire from any thread.
    """

    def __init__(self, on_done: OnDone, *, loop: EventLoop, label: str | None = None) -> None:
        self._on_done = on_done
        self._loop = loop
        self._lock = threading.Lock()
        self._fired = False
        self.label = label

    @property
    def fired(self) -> bool:
        return self._fired

    def __call__(self, error: object | None = None, result: object | None = None) -> None:
        with self._lock:
            if self._fired:
                duplicate = True
            else:
                self._fired = True
                duplicate = False
        if duplicate:
            logger.warning(
                "Ignoring duplicate completion",
                extra={"operation": self.label, "error": repr(error)},
            )
            return
        self._loop.call_soon_threadsafe(self._on_done, error, result)


def start(
    operation: Operation,
    on_done: OnDone,
    *,
    loop: EventLoop | None = None,
) -> NotifyOnce:
    """Start ``operation`` and route its completion to ``on_done`` exactly once.

    Returns the guard handed to the operation, mostly useful in tests.
    """

    loop = loop or get_event_loop()
    guard = NotifyOnce(on_done, loop=loop, label=_describe(operation))
    logger.debug("Starting operation", extra={"operation": guard.label})
    try:
        operation.start(guard)
    except Exception as e:
        guard(e, None)
    return guard


def _describe(operation: object) -> str:
    describe = getattr(operation, "describe", None)
    if callable(describe):
        return str(describe())
    return type(operation).__name__
