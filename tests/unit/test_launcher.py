"""Unit tests for concurrent launching."""

from __future__ import annotations

from typing import Any

from deferred_orchestrator.core.deferred import Deferred
from deferred_orchestrator.core.launcher import launch, launch_factories
from deferred_orchestrator.core.loop import EventLoop
from deferred_orchestrator.core.operations import Delay


def test_settlement_follows_delay_not_launch_order(loop: EventLoop, settle: Any) -> None:
    settled: list[tuple[str, float]] = []
    slow, fast = launch([Delay(2, value="slow"), Delay(1, value="fast")])
    slow.then(lambda v: settled.append((v, loop.time())))
    fast.then(lambda v: settled.append((v, loop.time())))

    settle(slow, fast)

    assert settled == [("fast", 1.0), ("slow", 2.0)]


def test_launched_work_overlaps(loop: EventLoop, settle: Any) -> None:
    launched = launch([Delay(3), Delay(3), Delay(3)])
    settle(*launched)

    assert all(d.is_fulfilled for d in launched)
    assert loop.time() == 3.0


def test_launch_factories_calls_every_factory_now(loop: EventLoop) -> None:
    called: list[int] = []

    def _factory(i: int) -> Any:
        def _start() -> Deferred[Any]:
            called.append(i)
            return Deferred.resolved(i)

        return _start

    launched = launch_factories([_factory(1), _factory(2)])

    assert called == [1, 2]
    assert [d.value for d in launched] == [1, 2]
