"""Unit tests for the Deferred state machine and its observers."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from deferred_orchestrator.core.deferred import Deferred, DeferredState, transition
from deferred_orchestrator.core.loop import EventLoop
from deferred_orchestrator.core.operations import Delay
from deferred_orchestrator.errors import IllegalTransitionError, RejectionError


def test_transition_rejects_leaving_a_terminal_state() -> None:
    assert transition(current=DeferredState.PENDING, to=DeferredState.FULFILLED) is (
        DeferredState.FULFILLED
    )
    with pytest.raises(IllegalTransitionError):
        transition(current=DeferredState.FULFILLED, to=DeferredState.REJECTED)
    with pytest.raises(IllegalTransitionError):
        transition(current=DeferredState.REJECTED, to=DeferredState.REJECTED)


def test_first_settlement_wins(loop: EventLoop) -> None:
    d = Deferred(lambda resolve, reject: (resolve(1), resolve(2), reject("late")))

    assert d.state == DeferredState.FULFILLED
    assert d.value == 1
    assert d.reason is None


def test_reject_then_resolve_is_ignored(loop: EventLoop) -> None:
    calls: dict[str, Callable[..., None]] = {}
    d: Deferred[Any] = Deferred(
        lambda resolve, reject: calls.update(resolve=resolve, reject=reject)
    )
    d.catch(lambda _reason: None)

    calls["reject"]("boom")
    calls["resolve"]("ignored")
    calls["reject"]("also ignored")

    assert d.is_rejected
    assert d.reason == "boom"


def test_executor_that_raises_rejects(loop: EventLoop) -> None:
    def _executor(_resolve: Any, _reject: Any) -> None:
        raise ValueError("bad executor")

    d: Deferred[Any] = Deferred(_executor)
    d.mark_observed()

    assert d.is_rejected
    assert isinstance(d.reason, ValueError)


def test_executor_raising_after_resolve_keeps_value(loop: EventLoop) -> None:
    def _executor(resolve: Any, _reject: Any) -> None:
        resolve("done")
        raise ValueError("too late")

    d: Deferred[Any] = Deferred(_executor)

    assert d.is_fulfilled
    assert d.value == "done"


def test_observer_on_settled_deferred_runs_later_and_once(loop: EventLoop) -> None:
    d = Deferred.resolved("v")
    seen: list[str] = []

    d.on_settle(seen.append)
    assert seen == []

    loop.run()
    assert seen == ["v"]

    loop.run()
    assert seen == ["v"]


def test_observers_run_in_registration_order(loop: EventLoop, settle: Any) -> None:
    d: Deferred[Any] = Deferred(lambda resolve, _reject: loop.call_later(1, resolve, "x"))
    seen: list[str] = []

    d.then(lambda v: seen.append(f"a:{v}"))
    d.then(lambda v: seen.append(f"b:{v}"))
    settle()

    assert seen == ["a:x", "b:x"]


def test_raising_handler_rejects_with_its_exception(loop: EventLoop, settle: Any) -> None:
    error = KeyError("missing")

    def _explode(_value: object) -> None:
        raise error

    derived = Deferred.resolved(1).on_settle(_explode)
    settle(derived)

    assert derived.is_rejected
    assert derived.reason is error


def test_missing_handlers_pass_outcome_through(loop: EventLoop, settle: Any) -> None:
    fulfilled = Deferred.resolved(5).on_settle(None, lambda _r: "unused")
    rejected = Deferred.rejected("nope").on_settle(lambda _v: "unused")
    settle(fulfilled, rejected)

    assert fulfilled.value == 5
    assert rejected.reason == "nope"


def test_catch_recovers(loop: EventLoop, settle: Any) -> None:
    recovered = Deferred.rejected("disk error").catch(lambda reason: f"recovered from {reason}")
    settle(recovered)

    assert recovered.is_fulfilled
    assert recovered.value == "recovered from disk error"


def test_resolving_with_a_deferred_adopts_its_outcome(loop: EventLoop, settle: Any) -> None:
    inner: Deferred[Any] = Deferred(lambda resolve, _reject: loop.call_later(2, resolve, "inner"))
    outer: Deferred[Any] = Deferred(lambda resolve, _reject: resolve(inner))

    assert outer.is_pending
    settle(outer)

    assert outer.value == "inner"


def test_locked_in_deferred_ignores_later_calls(loop: EventLoop, settle: Any) -> None:
    inner: Deferred[Any] = Deferred(lambda resolve, _reject: loop.call_later(1, resolve, "inner"))
    outer: Deferred[Any] = Deferred(lambda resolve, reject: (resolve(inner), reject("ignored")))
    settle(outer)

    assert outer.value == "inner"


def test_resolving_with_itself_rejects(loop: EventLoop, settle: Any) -> None:
    holder: dict[str, Any] = {}
    d: Deferred[Any] = Deferred(lambda resolve, _reject: holder.update(resolve=resolve))
    holder["resolve"](d)
    settle(d)

    assert d.is_rejected
    assert isinstance(d.reason, TypeError)


def test_finally_runs_and_preserves_outcome(loop: EventLoop, settle: Any) -> None:
    calls: list[str] = []
    ok = Deferred.resolved("v").finally_(lambda: calls.append("ok"))
    failed = Deferred.rejected("r").finally_(lambda: calls.append("failed"))
    settle(ok, failed)

    assert sorted(calls) == ["failed", "ok"]
    assert ok.value == "v"
    assert failed.reason == "r"


def test_result_reports_pending_and_rejections(loop: EventLoop) -> None:
    pending: Deferred[Any] = Deferred()
    with pytest.raises(RuntimeError):
        pending.result()

    rejected = Deferred.rejected("plain reason")
    with pytest.raises(RejectionError) as exc_info:
        rejected.result()
    assert exc_info.value.reason == "plain reason"

    error = ValueError("real exception")
    with pytest.raises(ValueError) as raised:
        Deferred.rejected(error).result()
    assert raised.value is error


def test_from_operation_rejects_with_error_payload(loop: EventLoop, settle: Any) -> None:
    ok = Deferred.from_operation(Delay(1, value="tick"))
    failed = Deferred.from_operation(Delay(2, error="disk error"))
    settle(ok, failed)

    assert ok.value == "tick"
    assert failed.reason == "disk error"


def test_repr_shows_state(loop: EventLoop) -> None:
    assert "pending" in repr(Deferred(label="job"))
    assert "value=3" in repr(Deferred.resolved(3))
