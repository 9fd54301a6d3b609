"""Test configuration and fixtures."""

import logging
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest

from deferred_orchestrator.core.config import LoopConfig, OrchestratorConfig, ResourceConfig
from deferred_orchestrator.core.deferred import Deferred
from deferred_orchestrator.core.loop import EventLoop, set_event_loop
from deferred_orchestrator.core.runtime import Runtime


@pytest.fixture(autouse=True)
def restore_root_logging() -> Iterator[None]:
    """Undo handler changes made by runtimes configuring logging."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in list(root.handlers):
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


@pytest.fixture
def loop() -> Iterator[EventLoop]:
    """Provide a fresh virtual-time loop installed as the current loop."""
    loop = EventLoop(virtual_time=True)
    set_event_loop(loop)
    yield loop
    loop.close()
    set_event_loop(None)


@pytest.fixture
def settle(loop: EventLoop) -> Callable[..., None]:
    """Run the loop dry after taking responsibility for the given outcomes."""

    def _settle(*deferreds: Deferred[Any]) -> None:
        for deferred in deferreds:
            deferred.mark_observed()
        loop.run()

    return _settle


@pytest.fixture
def resource_dir(tmp_path: Path) -> Path:
    """Provide a directory holding the two files the demos read."""
    resource_dir = tmp_path / "resources"
    resource_dir.mkdir()
    (resource_dir / "file.txt").write_text("Hello,", encoding="utf-8")
    (resource_dir / "file2.txt").write_text("world!", encoding="utf-8")
    return resource_dir


@pytest.fixture
def loop_config() -> LoopConfig:
    """Provide a test loop configuration."""
    return LoopConfig(virtual_time=True, max_workers=2)


@pytest.fixture
def resource_config(resource_dir: Path) -> ResourceConfig:
    """Provide a test resource configuration."""
    return ResourceConfig(base_dir=resource_dir)


@pytest.fixture
def orchestrator_config(
    loop_config: LoopConfig,
    resource_config: ResourceConfig,
) -> OrchestratorConfig:
    """Provide a test orchestrator configuration."""
    return OrchestratorConfig(
        log_level="DEBUG",
        debug=True,
        loop=loop_config,
        resources=resource_config,
    )


@pytest.fixture
def runtime(orchestrator_config: OrchestratorConfig) -> Iterator[Runtime]:
    """Provide a runtime on a virtual-time loop."""
    with Runtime(orchestrator_config) as runtime:
        yield runtime
