"""Concurrent launching: start every operation now, read the outcomes later.

Nothing here waits. Each operation's work proceeds independently, so the
returned Deferreds settle in the order the work completes, which is not
necessarily the order of launch.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Any

from deferred_orchestrator.core.deferred import Deferred
from deferred_orchestrator.core.loop import EventLoop
from deferred_orchestrator.core.notification import Operation

logger = logging.getLogger(__name__)


def launch(
    operations: Iterable[Operation], *, loop: EventLoop | None = None
) -> list[Deferred[Any]]:
    """Start all ``operations`` immediately; one Deferred per operation."""

    launched = [Deferred.from_operation(op, loop=loop) for op in operations]
    logger.debug("Launched operations", extra={"count": len(launched)})
    return launched


def launch_factories(factories: Iterable[Callable[[], Deferred[Any]]]) -> list[Deferred[Any]]:
    """Call every factory now, without waiting on any of them."""

    launched = [factory() for factory in factories]
    logger.debug("Launched factories", extra={"count": len(launched)})
    return launched
