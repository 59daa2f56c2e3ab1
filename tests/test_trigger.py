from __future__ import annotations

import asyncio
import json
import logging

import pytest

from harness.errors import EngineFailure, SerializationFailure
from harness.lib.state import InputState, ResultRenderer
from harness.modules.engine import CallableEngine
from harness.trigger import EvaluationTrigger


def _trigger(fn, **kw):
    state = InputState()
    out = ResultRenderer()
    return state, out, EvaluationTrigger(state, out, CallableEngine(fn), **kw)


class CannedEngine:
    """Returns canned results per input; raises for anything else."""

    def __init__(self, results):
        self.results = results
        self.calls = []

    def evaluate(self, text):
        self.calls.append(text)
        if text not in self.results:
            raise ValueError(f"cannot evaluate {text!r}")
        return self.results[text]


# ---------------------------------------------------------------------------
# success path
# ---------------------------------------------------------------------------

def test_empty_input_empty_object():
    state, out, trigger = _trigger(lambda text: {})
    outcome = trigger.run_sync()
    assert out.get_output() == "{}"
    assert outcome.ok and outcome.applied
    assert outcome.snapshot == ""


def test_number_result():
    engine = CannedEngine({"2+2": 4})
    state, out = InputState(), ResultRenderer()
    trigger = EvaluationTrigger(state, out, engine)
    state.set_input("2+2")
    trigger.run_sync()
    assert out.get_output() == "4"
    assert engine.calls == ["2+2"]


def test_input_passed_verbatim():
    seen = []
    state, out, trigger = _trigger(lambda text: seen.append(text) or text)
    state.set_input("  spaced\n")
    trigger.run_sync()
    assert seen == ["  spaced\n"]
    assert json.loads(out.get_output()) == "  spaced\n"


def test_same_input_twice_is_idempotent():
    state, out, trigger = _trigger(lambda text: {"len": len(text), "items": list(text)})
    state.set_input("abc")
    trigger.run_sync()
    first = out.get_output()
    trigger.run_sync()
    assert out.get_output() == first


def test_each_run_reads_input_fresh():
    state, out, trigger = _trigger(lambda text: text.upper())
    state.set_input("a")
    trigger.run_sync()
    state.set_input("b")
    trigger.run_sync()
    assert out.get_output() == '"B"'


def test_async_engine_is_awaited():
    async def engine(text):
        await asyncio.sleep(0)
        return [text, text]

    state, out, trigger = _trigger(engine)
    state.set_input("x")
    trigger.run_sync()
    assert json.loads(out.get_output()) == ["x", "x"]


def test_success_clears_last_error():
    engine = CannedEngine({"ok": 1})
    state, out = InputState(), ResultRenderer()
    trigger = EvaluationTrigger(state, out, engine)
    state.set_input("bad")
    trigger.run_sync()
    assert trigger.last_error is not None
    state.set_input("ok")
    trigger.run_sync()
    assert trigger.last_error is None
    assert out.get_output() == "1"


# ---------------------------------------------------------------------------
# failure path
# ---------------------------------------------------------------------------

def test_engine_failure_marker_policy():
    engine = CannedEngine({"good": {"a": 1}})
    state, out = InputState(), ResultRenderer()
    trigger = EvaluationTrigger(state, out, engine, on_error="marker")

    state.set_input("good")
    trigger.run_sync()
    state.set_input("bad")
    outcome = trigger.run_sync()

    assert not outcome.ok
    assert isinstance(outcome.error, EngineFailure)
    assert isinstance(outcome.error.__cause__, ValueError)
    assert out.get_output() == "Error: cannot evaluate 'bad'"
    assert trigger.last_error is outcome.error


def test_engine_failure_keep_policy_leaves_output():
    engine = CannedEngine({"good": {"a": 1}})
    state, out = InputState(), ResultRenderer()
    trigger = EvaluationTrigger(state, out, engine, on_error="keep")

    state.set_input("good")
    trigger.run_sync()
    before = out.get_output()
    state.set_input("bad")
    outcome = trigger.run_sync()

    assert out.get_output() == before
    assert outcome.display() == "Error: cannot evaluate 'bad'"
    assert trigger.last_error is outcome.error


def test_failure_is_logged(caplog):
    state, out, trigger = _trigger(lambda text: 1 / 0)
    with caplog.at_level(logging.WARNING, logger="harness.trigger"):
        trigger.run_sync()
    assert any("failed" in r.getMessage() for r in caplog.records)


def test_engine_raising_harness_error_is_not_rewrapped():
    def engine(text):
        raise EngineFailure("upstream said no")

    state, out, trigger = _trigger(engine)
    outcome = trigger.run_sync()
    assert str(outcome.error) == "upstream said no"
    assert outcome.error.__cause__ is None


def test_exception_without_message_uses_type_name():
    def engine(text):
        raise KeyError

    state, out, trigger = _trigger(engine)
    outcome = trigger.run_sync()
    assert out.get_output() == "Error: KeyError"


def test_rejected_awaitable_is_engine_failure():
    async def engine(text):
        raise RuntimeError("async boom")

    state, out, trigger = _trigger(engine)
    outcome = trigger.run_sync()
    assert isinstance(outcome.error, EngineFailure)
    assert out.get_output() == "Error: async boom"


def test_unserializable_result_is_surfaced():
    state, out, trigger = _trigger(lambda text: {"s": {1, 2}}, on_error="keep")
    out.set_output("previous")
    outcome = trigger.run_sync()
    assert isinstance(outcome.error, SerializationFailure)
    assert out.get_output() == "previous"
    assert outcome.display().startswith("Error: result not serializable at $.s")


def test_overlong_int_result_is_surfaced_not_raised(small_int_limit, caplog):
    state, out, trigger = _trigger(lambda text: [10 ** (small_int_limit + 10)])
    with caplog.at_level(logging.WARNING, logger="harness.trigger"):
        outcome = trigger.run_sync()

    assert isinstance(outcome.error, SerializationFailure)
    assert trigger.last_error is outcome.error
    assert trigger.in_flight == 0
    assert out.get_output().startswith("Error: result not serializable at $")
    assert any("failed" in r.getMessage() for r in caplog.records)


def test_failure_is_non_fatal_and_retryable():
    calls = {"n": 0}

    def flaky(text):
        calls["n"] += 1
        if calls["n"] < 3:
            raise ValueError("not yet")
        return "done"

    state, out, trigger = _trigger(flaky)
    for _ in range(3):
        trigger.run_sync()
    assert out.get_output() == '"done"'


def test_unknown_policies_rejected():
    with pytest.raises(ValueError):
        _trigger(lambda t: t, on_error="ignore")
    with pytest.raises(ValueError):
        _trigger(lambda t: t, ordering="random")


# ---------------------------------------------------------------------------
# concurrency: snapshots and overlapping runs
# ---------------------------------------------------------------------------

def test_edit_during_flight_does_not_change_snapshot():
    async def scenario():
        release = asyncio.Event()
        received = []

        async def engine(text):
            received.append(text)
            await release.wait()
            return text

        state, out, trigger = _trigger(engine)
        state.set_input("before")
        task = asyncio.create_task(trigger.run())
        await asyncio.sleep(0)
        state.set_input("after")
        release.set()
        outcome = await task
        return state, out, outcome, received

    state, out, outcome, received = asyncio.run(scenario())
    assert received == ["before"]
    assert outcome.snapshot == "before"
    assert out.get_output() == '"before"'
    assert state.get_input() == "after"


def test_begin_fixes_snapshot_before_evaluation_starts():
    async def scenario():
        state, out, trigger = _trigger(lambda text: text)
        state.set_input("at trigger time")
        pending = trigger.begin()
        state.set_input("edited later")
        return await pending, out

    outcome, out = asyncio.run(scenario())
    assert outcome.snapshot == "at trigger time"
    assert out.get_output() == '"at trigger time"'


def _overlap(ordering):
    """First trigger is slower than the second; return the final output."""

    async def scenario():
        slow_gate = asyncio.Event()

        async def engine(text):
            if text == "slow":
                await slow_gate.wait()
            else:
                await asyncio.sleep(0)
            return {"input": text}

        state, out, trigger = _trigger(engine, ordering=ordering)
        state.set_input("slow")
        first = asyncio.create_task(trigger.run())
        await asyncio.sleep(0)
        state.set_input("fast")
        second = asyncio.create_task(trigger.run())
        await asyncio.sleep(0)
        assert trigger.in_flight == 2

        fast_outcome = await second
        slow_gate.set()
        slow_outcome = await first
        return out.get_output(), slow_outcome, fast_outcome, trigger

    return asyncio.run(scenario())


def test_overlap_last_submitted_wins(caplog):
    with caplog.at_level(logging.INFO, logger="harness.trigger"):
        output, slow, fast, trigger = _overlap("submitted")
    assert any(
        r.levelno == logging.INFO and "discarding stale evaluation #1" in r.getMessage()
        for r in caplog.records
    )
    assert json.loads(output) == {"input": "fast"}
    assert fast.applied
    assert not slow.applied
    assert slow.ok
    assert trigger.in_flight == 0


def test_overlap_last_completed_wins():
    output, slow, fast, trigger = _overlap("completed")
    assert json.loads(output) == {"input": "slow"}
    assert fast.applied and slow.applied


def test_earlier_run_finishing_first_is_applied_then_replaced():
    async def scenario():
        state, out, trigger = _trigger(lambda text: text, ordering="submitted")
        state.set_input("one")
        first = await trigger.run()
        state.set_input("two")
        second = await trigger.run()
        return out.get_output(), first, second

    output, first, second = asyncio.run(scenario())
    assert output == '"two"'
    assert first.applied and second.applied
    assert (first.seq, second.seq) == (1, 2)


def test_stale_failure_does_not_overwrite_newer_output():
    async def scenario():
        slow_gate = asyncio.Event()

        async def engine(text):
            if text == "slow-bad":
                await slow_gate.wait()
                raise ValueError("late failure")
            return text

        state, out, trigger = _trigger(engine, ordering="submitted", on_error="marker")
        state.set_input("slow-bad")
        first = asyncio.create_task(trigger.run())
        await asyncio.sleep(0)
        state.set_input("fresh")
        await trigger.run()
        slow_gate.set()
        stale = await first
        return out.get_output(), stale, trigger

    output, stale, trigger = asyncio.run(scenario())
    assert output == '"fresh"'
    assert not stale.applied
    assert isinstance(stale.error, EngineFailure)
    assert trigger.last_error is None
