"""Aggregate waiting (all-of) with fail-fast semantics."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from deferred_orchestrator.core.deferred import Deferred
from deferred_orchestrator.core.loop import EventLoop, get_event_loop
from deferred_orchestrator.errors import FailureKind

logger = logging.getLogger(__name__)


def wait_all(members: Iterable[Any], *, loop: EventLoop | None = None) -> Deferred[list[Any]]:
    """Resolve with every member's value, in input order, once all fulfilled.

    Rejects with the first failing member's reason, unchanged, as soon as it
    rejects, without waiting for the others. Members that are still running
    keep running; their outcomes are discarded. Plain values count as already fulfilled members.
    An empty input is fulfilled with ``[]`` on return.
    """

    items = list(members)
    if loop is None:
        loop = next(
            (item.loop for item in items if isinstance(item, Deferred)), None
        ) or get_event_loop()

    aggregate: Deferred[list[Any]] = Deferred(loop=loop, label=f"wait_all[{len(items)}]")
    if not items:
        aggregate._resolve([])
        return aggregate

    results: list[Any] = [None] * len(items)
    remaining = len(items)

    def _on_fulfilled(index: int, value: Any) -> None:
        nonlocal remaining
        if aggregate.is_settled:
            return
        results[index] = value
        remaining -= 1
        if remaining == 0:
            aggregate._resolve(results)

    def _on_rejected(index: int, reason: object) -> None:
        if aggregate.is_settled:
            logger.debug(
                "Discarding late rejection",
                extra={"deferred": aggregate.label, "index": index},
            )
            return
        logger.debug(
            "Member rejected",
            extra={
                "deferred": aggregate.label,
                "failure": FailureKind.AGGREGATE.value,
                "index": index,
            },
        )
        aggregate._reject(reason)

    for index, item in enumerate(items):
        member = item if isinstance(item, Deferred) else Deferred.resolved(item, loop=loop)
        member._subscribe(
            lambda value, index=index: _on_fulfilled(index, value),
            lambda reason, index=index: _on_rejected(index, reason),
        )

    return aggregate
