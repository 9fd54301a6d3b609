"""Core package initialization."""

from deferred_orchestrator.core.aggregator import wait_all
from deferred_orchestrator.core.config import LoopConfig, OrchestratorConfig, ResourceConfig
from deferred_orchestrator.core.coroutine import deferred_function, spawn
from deferred_orchestrator.core.deferred import Deferred, DeferredState
from deferred_orchestrator.core.launcher import launch, launch_factories
from deferred_orchestrator.core.loop import EventLoop, get_event_loop, set_event_loop
from deferred_orchestrator.core.notification import NotifyOnce, Operation, start
from deferred_orchestrator.core.operations import Compute, Delay, ReadResource
from deferred_orchestrator.core.runtime import Runtime
from deferred_orchestrator.core.sequencer import chain, run_in_order, sequence

__all__ = [
    "Compute",
    "Deferred",
    "DeferredState",
    "Delay",
    "EventLoop",
    "LoopConfig",
    "NotifyOnce",
    "Operation",
    "OrchestratorConfig",
    "ReadResource",
    "ResourceConfig",
    "Runtime",
    "chain",
    "deferred_function",
    "get_event_loop",
    "launch",
    "launch_factories",
    "run_in_order",
    "sequence",
    "set_event_loop",
    "spawn",
    "start",
    "wait_all",
]
