"""Deferred Orchestrator.

Asynchronous sequencing expressed three equivalent ways:
- callbacks via the notify-once primitive
- Deferreds with sequencing and fail-fast aggregation
- ``async def`` coroutines awaiting Deferreds on the same event loop
"""

__version__ = "0.1.0"

from deferred_orchestrator.core import (
    Deferred,
    EventLoop,
    OrchestratorConfig,
    Runtime,
    launch,
    sequence,
    spawn,
    wait_all,
)

__all__ = [
    "__version__",
    "Deferred",
    "EventLoop",
    "OrchestratorConfig",
    "Runtime",
    "launch",
    "sequence",
    "spawn",
    "wait_all",
]
