"""Sequencing: start a step only after its predecessor has fulfilled."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Any

from deferred_orchestrator.core.deferred import Deferred
from deferred_orchestrator.core.loop import EventLoop

logger = logging.getLogger(__name__)

Step = Callable[[Any], Any]


def sequence(first: Deferred[Any], step: Step) -> Deferred[Any]:
    """Run ``step(value)`` once ``first`` fulfils and adopt what it returns.

    If ``first`` rejects, ``step`` is never called and the chain rejects with
    the same reason. If ``step`` raises, the chain rejects with the
    raised exception; if the Deferred it returns rejects, the chain rejects
    with that reason.
    """

    return first.on_settle(step)


def chain(first: Deferred[Any], *steps: Step) -> Deferred[Any]:
    """Fold ``sequence`` over ``steps``. The first failure skips the rest."""

    current = first
    for step in steps:
        current = sequence(current, step)
    return current


def run_in_order(
    factories: Sequence[Callable[[], Deferred[Any]]],
    *,
    loop: EventLoop | None = None,
) -> Deferred[list[Any]]:
    """Start each factory only after the previous Deferred fulfilled.

    Resolves with the values in order, or rejects with the first failure.
    Factories after the failing one are never called.
    """

    values: list[Any] = []
    current: Deferred[Any] = Deferred.resolved(None, loop=loop)

    for index, factory in enumerate(factories):

        def _step(
            previous: Any,
            index: int = index,
            factory: Callable[[], Deferred[Any]] = factory,
        ) -> Any:
            if index > 0:
                values.append(previous)
            logger.debug("Starting step", extra={"step": index})
            return factory()

        current = sequence(current, _step)

    def _collect(last: Any) -> list[Any]:
        if factories:
            values.append(last)
        return values

    return sequence(current, _collect)
