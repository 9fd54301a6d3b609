"""Await style: drive ``async def`` coroutines that await Deferreds.

The coroutine runs synchronously up to its first ``await``; after that each
resumption happens on a later loop turn, once the awaited Deferred settles.
"""

from __future__ import annotations

import functools
import inspect
import logging
from collections.abc import Callable, Coroutine
from typing import Any, ParamSpec, TypeVar

from deferred_orchestrator.core.deferred import Deferred
from deferred_orchestrator.core.loop import EventLoop
from deferred_orchestrator.errors import as_exception

logger = logging.getLogger(__name__)

T = TypeVar("T")
P = ParamSpec("P")


def spawn(
    coro: Coroutine[Any, Any, T],
    *,
    loop: EventLoop | None = None,
    label: str | None = None,
) -> Deferred[T]:
    """Run ``coro`` on the loop and return the Deferred of its outcome.

    Awaiting a rejected Deferred raises its reason inside the coroutine
    (``RejectionError`` wraps reasons that are not exceptions). Awaiting
    anything other than a Deferred raises ``TypeError`` inside the coroutine.
    """

    if not inspect.iscoroutine(coro):
        raise TypeError(f"spawn() expects a coroutine, got {type(coro).__name__}")

    result: Deferred[T] = Deferred(loop=loop, label=label or coro.__qualname__)

    def _step(send_value: Any = None, error: BaseException | None = None) -> None:
        try:
            if error is not None:
                awaited = coro.throw(error)
            else:
                awaited = coro.send(send_value)
        except StopIteration as stop:
            result._resolve(stop.value)
            return
        except Exception as e:
            result._reject(e)
            return

        if not isinstance(awaited, Deferred):
            wrong = TypeError(f"Coroutine awaited {awaited!r}; only Deferred is supported")
            result.loop.call_soon(_step, None, wrong)
            return
        awaited._subscribe(_on_fulfilled, _on_rejected)

    def _on_fulfilled(value: Any) -> None:
        _step(value)

    def _on_rejected(reason: object) -> None:
        _step(None, as_exception(reason))

    _step()
    return result


def deferred_function(fn: Callable[P, Coroutine[Any, Any, T]]) -> Callable[P, Deferred[T]]:
    """Decorate an ``async def`` so calling it returns a running Deferred."""

    @functools.wraps(fn)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> Deferred[T]:
        return spawn(fn(*args, **kwargs), label=fn.__qualname__)

    return wrapper
