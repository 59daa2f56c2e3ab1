# harness/topics/evaluate.py
#
# Evaluation primitives.
#
# Two run modes:
#   run      (blocking; returns the outcome: output or "Error: ...")
#   run.bg   (background; returns "OK #<seq>", see status / wait)
#
# Outcomes never raise: engine and serialization failures come back as the
# outcome's error and are added to the transcript as {"error": ...}. A stale
# background run (superseded under the "submitted" ordering) reports itself
# as such instead of its text.
#
# Finished background runs are pruned on run.bg / status, so wait only
# reports the ones still pending at that point.

from __future__ import annotations


def _describe(outcome):
    if not outcome.applied:
        return f"#{outcome.seq} stale ({'error' if outcome.error else 'ok'}, discarded)"
    return f"#{outcome.seq} {'ok' if outcome.ok else 'error'}"


def _log_error(core, outcome):
    if outcome.error is not None:
        core.log.append({"error": str(outcome.error)})


def run(core, _arg=""):
    outcome = core.evaluate()
    _log_error(core, outcome)
    return outcome.display()


def run_bg(core, _arg=""):
    core.prune_pending()
    fut = core.submit()
    core.pending.append(fut)
    return f"OK #{core.trigger.last_seq}"


def wait(core, _arg=""):
    outcomes = core.wait_pending()
    for o in outcomes:
        _log_error(core, o)
    if not outcomes:
        return core.output.get_output()
    lines = [_describe(o) for o in outcomes]
    lines.append(core.output.get_output())
    return "\n".join(lines)


def status(core, _arg=""):
    core.prune_pending()
    t = core.trigger
    last = _describe(t.last_outcome) if t.last_outcome else "none"
    err = str(t.last_error) if t.last_error else ""
    return f"in_flight={t.in_flight} last={last} err={err}"


COMMANDS = {
    "sys.run":    (run,    "Evaluate input and show the outcome",   "sys.run"),
    "sys.run.bg": (run_bg, "Evaluate input in the background",      "sys.run.bg"),
    "sys.wait":   (wait,   "Wait for background runs; show output", "sys.wait"),
    "sys.status": (status, "In-flight count, last outcome, error",  "sys.status"),
}
