"""Single-threaded cooperative event loop.

The loop owns three sources of work:

- a FIFO microtask queue (``call_soon``), drained completely on every turn
- timers (``call_later``), fired one per turn in deadline order
- a thread-safe inbox (``call_soon_threadsafe``) through which out-of-band work
  running on the thread pool hands its completion back to the loop thread

Continuations registered on a Deferred always run as microtasks, so nothing a
caller registers can run synchronously inside the call that registered it.

The loop is deliberately independent of ``asyncio``: it is small enough to
reason about and makes the ordering rules explicit.
"""

from __future__ import annotations

import heapq
import itertools
import logging
import threading
import time
from collections import deque
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from typing import TYPE_CHECKING, Any, Literal

from deferred_orchestrator.errors import UnhandledRejectionError

if TYPE_CHECKING:
    from deferred_orchestrator.core.config import LoopConfig
    from deferred_orchestrator.core.deferred import Deferred

logger = logging.getLogger(__name__)

UnhandledPolicy = Literal["warn", "strict", "ignore"]
DoneCallback = Callable[[object | None, object | None], None]


class TimerHandle:
    """A scheduled timer callback."""

    __slots__ = ("deadline", "seq", "callback", "args", "cancelled")

    def __init__(
        self, deadline: float, seq: int, callback: Callable[..., Any], args: tuple[Any, ...]
    ) -> None:
        self.deadline = deadline
        self.seq = seq
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True

    def __lt__(self, other: TimerHandle) -> bool:
        return (self.deadline, self.seq) < (other.deadline, other.seq)

    def __repr__(self) -> str:
        state = " cancelled" if self.cancelled else ""
        return f"<TimerHandle at={self.deadline:.3f}{state} {self.callback!r}>"


class EventLoop:
    """Cooperative scheduler driving Deferred continuations, timers and pool work.

    Args:
        virtual_time: Timers fire as soon as the loop is otherwise idle and
            ``time()`` jumps to each deadline. Deadline order is preserved, so
            ordering behaves exactly as with real time, minus the waiting.
            Virtual time does not advance while thread pool work is in flight.
        max_workers: Size of the lazily created thread pool.
        unhandled_rejections: ``warn`` logs rejections nobody observed,
            ``strict`` raises ``UnhandledRejectionError`` out of ``run()``,
            ``ignore`` drops them.
    """

    def __init__(
        self,
        *,
        virtual_time: bool = False,
        max_workers: int | None = None,
        unhandled_rejections: UnhandledPolicy = "warn",
    ) -> None:
        self.virtual_time = virtual_time
        self.unhandled_rejections: UnhandledPolicy = unhandled_rejections

        self._microtasks: deque[tuple[Callable[..., Any], tuple[Any, ...]]] = deque()
        self._timers: list[TimerHandle] = []
        self._inbox: deque[tuple[Callable[..., Any], tuple[Any, ...]]] = deque()
        self._cond = threading.Condition()
        self._in_flight = 0
        self._seq = itertools.count()

        self._max_workers = max_workers
        self._executor: ThreadPoolExecutor | None = None

        self._epoch = time.monotonic()
        self._virtual_now = 0.0

        self._maybe_unhandled: list[Deferred[Any]] = []
        self._closed = False

    @classmethod
    def from_config(cls, config: LoopConfig) -> EventLoop:
        return cls(
            virtual_time=config.virtual_time,
            max_workers=config.max_workers,
            unhandled_rejections=config.unhandled_rejections,
        )

    def time(self) -> float:
        """Seconds since the loop was created (virtual or monotonic)."""

        if self.virtual_time:
            return self._virtual_now
        return time.monotonic() - self._epoch

    # Scheduling -----------------------------------------------------------------

    def call_soon(self, callback: Callable[..., Any], *args: Any) -> None:
        """Queue a microtask. Must be called from the loop thread."""

        self._microtasks.append((callback, args))

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        if delay < 0:
            raise ValueError(f"delay must be >= 0, got {delay}")
        handle = TimerHandle(self.time() + delay, next(self._seq), callback, args)
        heapq.heappush(self._timers, handle)
        return handle

    def call_soon_threadsafe(self, callback: Callable[..., Any], *args: Any) -> None:
        """Queue a callback from any thread; it runs on a later loop turn."""

        with self._cond:
            self._inbox.append((callback, args))
            self._cond.notify()

    def run_in_executor(
        self, fn: Callable[..., Any], *args: Any, on_done: DoneCallback
    ) -> Future[Any]:
        """Run blocking ``fn`` on the thread pool.

        ``on_done(error, result)`` is called on the loop thread once ``fn``
        returns or raises.
        """

        if self._closed:
            raise RuntimeError("Event loop is closed")
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self._max_workers, thread_name_prefix="deferred-worker"
            )

        with self._cond:
            self._in_flight += 1

        def _deliver(future: Future[Any]) -> None:
            error = future.exception()
            result = None if error is not None else future.result()
            with self._cond:
                self._inbox.append((on_done, (error, result)))
                self._in_flight -= 1
                self._cond.notify()

        future = self._executor.submit(fn, *args)
        future.add_done_callback(_deliver)
        return future

    # Running ------------------------------------------------------------------------

    def run(self) -> None:
        """Run until there is no queued, scheduled or in-flight work left."""

        while self._run_once():
            pass

    def run_until_complete(self, deferred: Deferred[Any]) -> Any:
        """Run until ``deferred`` settles and return its value (or raise its reason)."""

        deferred.mark_observed()
        while deferred.is_pending and self._run_once():
            pass
        if deferred.is_pending:
            raise RuntimeError(f"Event loop ran out of work before {deferred!r} settled")
        return deferred.result()

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
        self._closed = True

    def _run_once(self) -> bool:
        """Process one turn. Returns False once the loop is out of work."""

        self._drain_inbox()
        if self._microtasks:
            self._drain_microtasks()
            return True

        while self._timers and self._timers[0].cancelled:
            heapq.heappop(self._timers)

        if self._timers and self._timers[0].deadline <= self.time():
            handle = heapq.heappop(self._timers)
            self._invoke(handle.callback, handle.args)
            self._drain_microtasks()
            return True

        with self._cond:
            if self._inbox:
                return True
            if self._in_flight == 0 and not self._timers:
                return False
            if self.virtual_time:
                if self._in_flight == 0:
                    self._virtual_now = max(self._virtual_now, self._timers[0].deadline)
                    return True
                self._cond.wait()
                return True
            timeout = self._timers[0].deadline - self.time() if self._timers else None
            if timeout is None or timeout > 0:
                self._cond.wait(timeout)
        return True

    def _drain_inbox(self) -> None:
        with self._cond:
            items = list(self._inbox)
            self._inbox.clear()
        self._microtasks.extend(items)

    def _drain_microtasks(self) -> None:
        while self._microtasks:
            callback, args = self._microtasks.popleft()
            self._invoke(callback, args)
        self._report_unhandled()

    def _invoke(self, callback: Callable[..., Any], args: tuple[Any, ...]) -> None:
        try:
            callback(*args)
        except Exception:
            logger.exception("Loop callback raised", extra={"callback": repr(callback)})

    # Unhandled rejections -------------------------------------------------------------

    def track_rejection(self, deferred: Deferred[Any]) -> None:
        """Remember a rejection that had no observer when it settled."""

        self._maybe_unhandled.append(deferred)

    def _report_unhandled(self) -> None:
        if not self._maybe_unhandled:
            return
        candidates, self._maybe_unhandled = self._maybe_unhandled, []
        for deferred in candidates:
            if deferred.observed:
                continue
            if self.unhandled_rejections == "ignore":
                continue
            if self.unhandled_rejections == "strict":
                raise UnhandledRejectionError(deferred.reason, label=deferred.label)
            logger.warning(
                "Unhandled rejection",
                extra={"deferred": deferred.label, "reason": repr(deferred.reason)},
            )


_current_loop: EventLoop | None = None


def get_event_loop() -> EventLoop:
    """Return the current loop, creating a default one on first use."""

    global _current_loop
    if _current_loop is None:
        _current_loop = EventLoop()
    return _current_loop


def set_event_loop(loop: EventLoop | None) -> None:
    global _current_loop
    _current_loop = loop
