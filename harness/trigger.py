"""harness/trigger.py

One evaluation cycle: snapshot input -> engine -> render -> output.

Failures never escape run(); they are returned on the Outcome, kept as
last_error, logged, and shown according to the on_error policy:
  marker  output becomes "Error: <message>"
  keep    output is left as it was

Overlapping runs (async engines) follow the ordering policy:
  submitted  a result is written only if no later-submitted run has
             already written (last-submitted-wins)
  completed  every result is written when it arrives (last-completed-wins)
"""

from __future__ import annotations

import asyncio
import inspect
import itertools
import logging
import threading
from dataclasses import dataclass, replace
from typing import Awaitable, Optional

from harness.errors import EngineFailure, HarnessError
from harness.lib.render import render
from harness.lib.state import InputState, ResultRenderer
from harness.model.schema import (
    ERROR_PREFIX,
    ON_ERROR_MARKER,
    ON_ERROR_POLICIES,
    ORDER_SUBMITTED,
    ORDERING_POLICIES,
)
from harness.modules.engine import ComputationEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Outcome:
    seq: int
    snapshot: str
    output: Optional[str] = None     # rendered text on success
    error: Optional[HarnessError] = None
    applied: bool = False            # False when discarded as stale

    @property
    def ok(self) -> bool:
        return self.error is None

    def display(self) -> str:
        """Text to show the user for this outcome alone."""
        if self.error is not None:
            return ERROR_PREFIX + str(self.error)
        return self.output or ""


class EvaluationTrigger:
    def __init__(
        self,
        input_state: InputState,
        renderer: ResultRenderer,
        engine: ComputationEngine,
        *,
        on_error: str = ON_ERROR_MARKER,
        ordering: str = ORDER_SUBMITTED,
    ):
        if on_error not in ON_ERROR_POLICIES:
            raise ValueError(f"Unknown on_error policy: {on_error}")
        if ordering not in ORDERING_POLICIES:
            raise ValueError(f"Unknown ordering policy: {ordering}")

        self.input_state = input_state
        self.renderer = renderer
        self.engine = engine
        self.on_error = on_error
        self.ordering = ordering

        # begin() runs on the caller thread, _finish() on the event loop
        self._lock = threading.Lock()
        self._seq = itertools.count(1)
        self._applied_seq = 0
        self.last_seq = 0
        self.in_flight = 0
        self.last_outcome: Optional[Outcome] = None
        self.last_error: Optional[HarnessError] = None

    async def _evaluate(self, snapshot: str):
        try:
            result = self.engine.evaluate(snapshot)
            if inspect.isawaitable(result):
                result = await result
        except HarnessError:
            raise
        except Exception as e:
            raise EngineFailure(str(e) or type(e).__name__) from e
        return result

    def _is_stale(self, seq: int) -> bool:
        return self.ordering == ORDER_SUBMITTED and seq < self._applied_seq

    def _apply(self, seq: int, text: Optional[str]) -> None:
        if text is None:
            return
        self.renderer.set_output(text)
        self._applied_seq = max(self._applied_seq, seq)

    def begin(self) -> Awaitable[Outcome]:
        """Take the sequence number and input snapshot now; evaluate later.

        Lets a caller on another thread fix the snapshot at trigger time
        even though the evaluation itself runs on the event loop.
        """
        with self._lock:
            seq = self.last_seq = next(self._seq)
            snapshot = self.input_state.get_input()
            self.in_flight += 1
        return self._finish(seq, snapshot)

    async def run(self) -> Outcome:
        return await self.begin()

    async def _finish(self, seq: int, snapshot: str) -> Outcome:
        try:
            try:
                text = render(await self._evaluate(snapshot))
            except HarnessError as e:
                return self._settle(Outcome(seq=seq, snapshot=snapshot, error=e))
            return self._settle(Outcome(seq=seq, snapshot=snapshot, output=text))
        finally:
            with self._lock:
                self.in_flight -= 1

    def _settle(self, outcome: Outcome) -> Outcome:
        with self._lock:
            return self._settle_locked(outcome)

    def _settle_locked(self, outcome: Outcome) -> Outcome:
        if self._is_stale(outcome.seq):
            if outcome.error is not None:
                logger.warning("stale evaluation #%d failed: %s", outcome.seq, outcome.error)
            logger.info(
                "discarding stale evaluation #%d (already showing #%d)",
                outcome.seq,
                self._applied_seq,
            )
            self.last_outcome = outcome
            return outcome

        if outcome.error is None:
            self._apply(outcome.seq, outcome.output)
            self.last_error = None
        else:
            logger.warning("evaluation #%d failed: %s", outcome.seq, outcome.error)
            marker = outcome.display() if self.on_error == ON_ERROR_MARKER else None
            self._apply(outcome.seq, marker)
            self.last_error = outcome.error

        outcome = replace(outcome, applied=True)
        self.last_outcome = outcome
        return outcome

    def run_sync(self) -> Outcome:
        """Bridge for callers without a running loop."""
        return asyncio.run(self.run())
