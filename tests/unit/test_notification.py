"""Unit tests for the notify-once primitive."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field

from deferred_orchestrator.core.loop import EventLoop
from deferred_orchestrator.core.notification import OnDone, start


@dataclass
class ImmediateOperation:
    """Completes inside ``start``, possibly more than once."""

    outcomes: list[tuple[object | None, object | None]]
    started: int = 0

    def start(self, on_done: OnDone) -> None:
        self.started += 1
        for error, result in self.outcomes:
            on_done(error, result)


@dataclass
class BrokenOperation:
    def start(self, on_done: OnDone) -> None:
        raise RuntimeError("cannot start")


@dataclass
class ThreadedOperation:
    done: threading.Event = field(default_factory=threading.Event)

    def start(self, on_done: OnDone) -> None:
        def _work() -> None:
            on_done(None, "from thread")
            self.done.set()

        threading.Thread(target=_work).start()


def test_callback_never_runs_synchronously(loop: EventLoop) -> None:
    seen: list[tuple[object | None, object | None]] = []
    op = ImmediateOperation(outcomes=[(None, "payload")])

    start(op, lambda error, result: seen.append((error, result)))
    assert op.started == 1
    assert seen == []

    loop.run()
    assert seen == [(None, "payload")]


def test_only_first_completion_is_delivered(loop: EventLoop) -> None:
    seen: list[tuple[object | None, object | None]] = []
    op = ImmediateOperation(
        outcomes=[("first error", None), (None, "then success"), (None, "again")]
    )

    guard = start(op, lambda error, result: seen.append((error, result)))
    loop.run()

    assert guard.fired
    assert seen == [("first error", None)]


def test_start_failure_is_delivered_as_error(loop: EventLoop) -> None:
    seen: list[object | None] = []

    start(BrokenOperation(), lambda error, _result: seen.append(error))
    assert seen == []

    loop.run()
    assert len(seen) == 1
    assert isinstance(seen[0], RuntimeError)


def test_completion_from_another_thread_runs_on_loop_thread(loop: EventLoop) -> None:
    loop_thread = threading.get_ident()
    seen: list[tuple[int, object | None]] = []
    op = ThreadedOperation()

    start(op, lambda _error, result: seen.append((threading.get_ident(), result)))
    assert op.done.wait(timeout=5)

    loop.run()
    assert seen == [(loop_thread, "from thread")]
