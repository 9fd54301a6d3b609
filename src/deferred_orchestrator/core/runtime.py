"""Runtime wiring configuration, logging and the event loop together."""

import inspect
import logging
from collections.abc import Callable, Coroutine
from typing import Any

from deferred_orchestrator.core.config import OrchestratorConfig
from deferred_orchestrator.core.coroutine import spawn
from deferred_orchestrator.core.deferred import Deferred
from deferred_orchestrator.core.loop import EventLoop, set_event_loop
from deferred_orchestrator.core.operations import Compute, Delay, ReadResource

logger = logging.getLogger(__name__)


class Runtime:
    """Host for running orchestration code.

    The runtime creates an event loop from configuration, installs it as the
    current loop, and offers shortcuts that turn the bundled operations into
    Deferreds.
    """

    def __init__(self, config: OrchestratorConfig | None = None) -> None:
        """Initialize the runtime.

        Args:
            config: Configuration object. If None, loads from environment.
        """
        self.config = config or OrchestratorConfig()
        self.config.setup_logging()

        self.loop = EventLoop.from_config(self.config.loop)
        set_event_loop(self.loop)

        logger.info(
            "Runtime initialized",
            extra={
                "virtual_time": self.config.loop.virtual_time,
                "base_dir": str(self.config.resources.base_dir),
            },
        )

    def resource(self, name: str) -> ReadResource:
        """Build a read operation for a resource under the configured base directory."""
        return ReadResource(
            name,
            encoding=self.config.resources.encoding,
            base_dir=self.config.resources.base_dir,
            loop=self.loop,
        )

    def read(self, name: str) -> Deferred[str]:
        return Deferred.from_operation(self.resource(name), loop=self.loop)

    def delay(self, seconds: float, value: object = None) -> Deferred[Any]:
        return Deferred.from_operation(Delay(seconds, value, loop=self.loop), loop=self.loop)

    def compute(self, fn: Callable[..., Any], *args: Any) -> Deferred[Any]:
        return Deferred.from_operation(Compute(fn, args, loop=self.loop), loop=self.loop)

    def run(self, target: Deferred[Any] | Coroutine[Any, Any, Any]) -> Any:
        """Run the loop until ``target`` settles and return its value.

        Coroutines are spawned first. A rejection is raised to the caller.
        Work that is still in flight afterwards (fire-and-forget timers, the
        losers of a fail-fast wait) keeps running until ``drain`` or ``close``.
        """
        if inspect.iscoroutine(target):
            target = spawn(target, loop=self.loop)
        return self.loop.run_until_complete(target)

    def drain(self) -> None:
        """Run until no work is left."""
        self.loop.run()

    def close(self) -> None:
        self.loop.close()
        set_event_loop(None)
        logger.info("Runtime closed")

    def __enter__(self) -> "Runtime":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
