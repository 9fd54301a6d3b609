"""Host programs showing the same work in callback, Deferred and await styles.

Reading two files in a fixed order, fire-and-forget timers, and a Deferred
around a slow computation. Each demo writes its lines through ``emit`` so
callers decide where output goes.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Any

from deferred_orchestrator.core.aggregator import wait_all
from deferred_orchestrator.core.coroutine import spawn
from deferred_orchestrator.core.deferred import Deferred
from deferred_orchestrator.core.launcher import launch
from deferred_orchestrator.core.notification import OnDone, start
from deferred_orchestrator.core.operations import Delay
from deferred_orchestrator.core.runtime import Runtime
from deferred_orchestrator.core.sequencer import chain
from deferred_orchestrator.errors import RejectionError

logger = logging.getLogger(__name__)

Emit = Callable[[str], None]

READ_STYLES: tuple[str, ...] = ("callback", "deferred", "await", "concurrent", "all-of")


# Reading two files in order --------------------------------------------------------------


def read_with_callbacks(
    runtime: Runtime, first: str, second: str, *, emit: Emit, on_finished: OnDone
) -> None:
    """Nested notify-once callbacks; ``on_finished(error, (first, second))``."""

    def _on_first(error: object | None, first_text: object | None) -> None:
        if error is not None:
            on_finished(error, None)
            return

        def _on_second(error: object | None, second_text: object | None) -> None:
            if error is not None:
                on_finished(error, None)
                return
            emit(f"Using callback: {first_text} {second_text}")
            on_finished(None, (first_text, second_text))

        start(runtime.resource(second), _on_second, loop=runtime.loop)

    start(runtime.resource(first), _on_first, loop=runtime.loop)


def read_with_deferreds(
    runtime: Runtime, first: str, second: str, *, emit: Emit
) -> Deferred[Any]:
    """The same reads as a chain: the second starts once the first fulfilled."""

    sentences: list[str] = []

    def _after_first(text: str) -> Deferred[str]:
        sentences.append(text)
        return runtime.read(second)

    def _after_second(text: str) -> tuple[str, str]:
        sentences.append(text)
        emit(f"Using deferreds: {sentences[0]} {sentences[1]}")
        return sentences[0], sentences[1]

    return chain(runtime.read(first), _after_first, _after_second)


async def read_with_await(
    runtime: Runtime, first: str, second: str, *, emit: Emit
) -> tuple[str, str]:
    first_text = await runtime.read(first)
    second_text = await runtime.read(second)
    emit(f"Using await: {first_text} {second_text}")
    return first_text, second_text


async def read_concurrently(
    runtime: Runtime, first: str, second: str, *, emit: Emit
) -> tuple[str, str]:
    """Start both reads before awaiting either."""

    pending_first, pending_second = launch(
        [runtime.resource(first), runtime.resource(second)], loop=runtime.loop
    )
    logger.debug(
        "Reads launched",
        extra={"first": repr(pending_first), "second": repr(pending_second)},
    )

    first_text = await pending_first
    second_text = await pending_second
    emit(f"Using await concurrently: {first_text} {second_text}")
    return first_text, second_text


async def read_all(runtime: Runtime, names: Sequence[str], *, emit: Emit) -> list[str]:
    texts = await wait_all(launch([runtime.resource(name) for name in names], loop=runtime.loop))
    for text in texts:
        emit(f"Using wait_all: {text}")
    return texts


def start_read_demo(
    runtime: Runtime, style: str, first: str, second: str, *, emit: Emit
) -> Deferred[Any]:
    """Start one reading style and return a Deferred of its outcome."""

    if style == "callback":

        def _executor(resolve: Callable[[Any], None], reject: Callable[[object], None]) -> None:
            def _on_finished(error: object | None, result: object | None) -> None:
                if error is not None:
                    reject(error)
                else:
                    resolve(result)

            read_with_callbacks(runtime, first, second, emit=emit, on_finished=_on_finished)

        return Deferred(_executor, loop=runtime.loop, label="callback")
    elif style == "deferred":
        return read_with_deferreds(runtime, first, second, emit=emit)
    elif style == "await":
        return spawn(read_with_await(runtime, first, second, emit=emit), loop=runtime.loop)
    elif style == "concurrent":
        return spawn(read_concurrently(runtime, first, second, emit=emit), loop=runtime.loop)
    elif style == "all-of":
        return spawn(read_all(runtime, [first, second], emit=emit), loop=runtime.loop)
    else:
        raise ValueError(f"Unsupported read style: {style}")


def run_read_files(
    runtime: Runtime,
    first: str,
    second: str,
    *,
    styles: Sequence[str] = READ_STYLES,
    emit: Emit = print,
) -> bool:
    """Run every requested style side by side. Returns False if any failed."""

    outcomes = [start_read_demo(runtime, style, first, second, emit=emit) for style in styles]
    try:
        runtime.run(wait_all(outcomes, loop=runtime.loop))
    except Exception as e:
        reason = e.reason if isinstance(e, RejectionError) else e
        emit(f"Reading failed: {reason}")
        return False
    finally:
        runtime.drain()
    return True


# Fire-and-forget timers ------------------------------------------------------------------


def notify_when_finished(seconds: float, *, emit: Emit) -> None:
    unit = "seconds" if seconds > 1 else "second"
    emit(f"{seconds:g} {unit} is over.")


def do_stuff_for(runtime: Runtime, seconds: float, *, emit: Emit) -> None:
    """Start a timer and return at once; the notification arrives later."""

    def _on_done(_error: object | None, _result: object | None) -> None:
        notify_when_finished(seconds, emit=emit)

    start(Delay(seconds, loop=runtime.loop), _on_done, loop=runtime.loop)


def run_multitask(
    runtime: Runtime, durations: Sequence[float] = (10, 1, 5), *, emit: Emit = print
) -> None:
    """Launch every timer, announce the start, then wait for all notifications.

    Notifications arrive in order of duration, not launch.
    """

    for seconds in durations:
        do_stuff_for(runtime, seconds, emit=emit)
    emit("Starting to do stuff...")
    runtime.drain()


# A Deferred around slow work --------------------------------------------------------------


def fibonacci(n: int) -> int:
    """Deliberately slow recursive fibonacci."""
    if n < 0:
        raise ValueError(f"fibonacci is undefined for {n}")
    if n < 2:
        return n
    return fibonacci(n - 2) + fibonacci(n - 1)


def run_compute(runtime: Runtime, n: int = 25, *, emit: Emit = print) -> bool:
    def _handle_success(value: int) -> bool:
        emit(f"fibonacci returned: {value}")
        return True

    def _handle_failure(reason: object) -> bool:
        emit(f"fibonacci failed: {reason}")
        return False

    outcome = runtime.compute(fibonacci, n).then(_handle_success).catch(_handle_failure)
    return bool(runtime.run(outcome))
