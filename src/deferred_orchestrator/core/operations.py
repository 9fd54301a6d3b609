"""Concrete operations: the external collaborators the core wraps.

Each operation starts its work out-of-band (thread pool or timer) and reports
through the ``on_done(error, result)`` callback it is given.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from deferred_orchestrator.core.loop import EventLoop, get_event_loop
from deferred_orchestrator.core.notification import OnDone


@dataclass(frozen=True, slots=True)
class ReadResource:
    """Read a text resource by name on the loop's thread pool."""

    name: str | Path
    encoding: str = "utf-8"
    base_dir: Path | None = None
    loop: EventLoop | None = field(default=None, compare=False, repr=False)

    @property
    def path(self) -> Path:
        path = Path(self.name)
        if self.base_dir is not None and not path.is_absolute():
            return self.base_dir / path
        return path

    def describe(self) -> str:
        return f"read:{self.path}"

    def start(self, on_done: OnDone) -> None:
        loop = self.loop or get_event_loop()
        loop.run_in_executor(self._read, on_done=on_done)

    def _read(self) -> str:
        return self.path.read_text(encoding=self.encoding)


@dataclass(frozen=True, slots=True)
class Delay:
    """Notify after ``seconds``, with ``error`` if given, otherwise ``value``."""

    seconds: float
    value: object = None
    error: object = None
    loop: EventLoop | None = field(default=None, compare=False, repr=False)

    def __post_init__(self) -> None:
        if self.seconds < 0:
            raise ValueError(f"seconds must be >= 0, got {self.seconds}")

    def describe(self) -> str:
        return f"delay:{self.seconds}s"

    def start(self, on_done: OnDone) -> None:
        loop = self.loop or get_event_loop()
        if self.error is not None:
            loop.call_later(self.seconds, on_done, self.error, None)
        else:
            loop.call_later(self.seconds, on_done, None, self.value)


@dataclass(frozen=True, slots=True)
class Compute:
    """Run a blocking, CPU-bound callable on the thread pool."""

    fn: Callable[..., Any]
    args: tuple[Any, ...] = ()
    loop: EventLoop | None = field(default=None, compare=False, repr=False)

    def describe(self) -> str:
        return f"compute:{getattr(self.fn, '__name__', repr(self.fn))}"

    def start(self, on_done: OnDone) -> None:
        loop = self.loop or get_event_loop()
        loop.run_in_executor(self.fn, *self.args, on_done=on_done)
