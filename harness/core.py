"""harness/core.py

Core runtime + init_harness() wiring.

The Harness owns the evaluation pair (InputState, ResultRenderer), the
trigger between them, and the event loop evaluations run on. Lines typed
by the user reach it through execute().
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import threading
from pathlib import Path
from typing import Optional

from harness.aliases import ALIASES, AliasManager
from harness.config import HarnessConfig, load_config
from harness.lib.state import InputState, ResultRenderer
from harness.model.schema import DEFAULT_CONFIG_PATH, ERROR_PREFIX
from harness.modules.engine import ComputationEngine, load_engine
from harness.topics import ALL_COMMANDS
from harness.trigger import EvaluationTrigger, Outcome


class Harness:
    def __init__(self, config: Optional[HarnessConfig] = None, engine: Optional[ComputationEngine] = None):
        self.config = config or HarnessConfig()
        self.engine = engine if engine is not None else load_engine(self.config.engine, self.config)

        # The evaluation pair: edited buffer in, rendered text out.
        self.input = InputState()
        self.output = ResultRenderer()
        self.trigger = EvaluationTrigger(
            self.input,
            self.output,
            self.engine,
            on_error=self.config.on_error,
            ordering=self.config.ordering,
        )

        self.commands = {}   # cmd -> {handler, help, usage}
        self.log = []
        self.alias_mgr = None  # set in init_harness()

        # ---- runtime gates ----
        # Serialize execute() between the REPL and any other caller thread
        self.exec_lock = threading.RLock()

        # ---- evaluation loop ----
        # All evaluations run on one asyncio loop in a daemon thread.
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._loop_thread: Optional[threading.Thread] = None
        self.pending = []  # concurrent futures of background runs

    def register(self, name, handler, help_text="", usage=""):
        self.commands[name] = {"handler": handler, "help": help_text, "usage": usage}

    # ---- evaluation loop ----
    def _ensure_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            loop = asyncio.new_event_loop()
            t = threading.Thread(target=loop.run_forever, name="harness:loop", daemon=True)
            t.start()
            self._loop, self._loop_thread = loop, t
        return self._loop

    def submit(self) -> concurrent.futures.Future:
        """Trigger one evaluation; the snapshot is taken before returning."""
        coro = self.trigger.begin()
        return asyncio.run_coroutine_threadsafe(coro, self._ensure_loop())

    def evaluate(self) -> Outcome:
        return self.submit().result()

    def prune_pending(self):
        """Drop finished background runs; returns how many are still running."""
        self.pending = [f for f in self.pending if not f.done()]
        return len(self.pending)

    def wait_pending(self):
        done = []
        while self.pending:
            fut = self.pending.pop(0)
            done.append(fut.result())
        return done

    def close(self):
        loop, t = self._loop, self._loop_thread
        if loop is None:
            return
        self.wait_pending()
        loop.call_soon_threadsafe(loop.stop)
        t.join(timeout=5.0)
        loop.close()
        self._loop, self._loop_thread = None, None

    # ---- line execution ----
    def dispatch_internal(self, cmd, arg=""):
        """Dispatch an internal sys.* primitive directly."""
        entry = self.commands.get(cmd)
        if not entry:
            raise ValueError(f"Unknown command: {cmd}")
        return entry["handler"](self, arg)

    def execute(self, raw):
        with self.exec_lock:
            self.log.append({"in": raw})

            # command word, then everything after ONE space verbatim
            head, _, arg = raw.lstrip().partition(" ")
            head = head.rstrip()
            if not head:
                return None

            # --- EXPOSED SURFACE GATE: only aliases + help ---
            if head != "help":
                if not self.alias_mgr or not self.alias_mgr.has_alias(head):
                    return "Unknown command"
            # ----------------------------------------------

            cmd = self.alias_mgr.expand(head) if self.alias_mgr else head
            entry = self.commands.get(cmd)
            if not entry:
                return f"Unknown command: {cmd}"

            try:
                out = entry["handler"](self, arg)
            except Exception as e:
                out = ERROR_PREFIX + str(e)
                self.log.append({"error": str(e)})

            self.log.append({"out": out})
            return out


# ---------- exposed help: only aliases ----------
def help_cmd(core, name=""):
    am = core.alias_mgr
    surface = am.list_aliases() if am else []
    name = name.strip()

    if name:
        exp = am.get_alias(name) if am else None
        if exp is None:
            return "Alias not found"
        entry = core.commands.get(exp, {})
        return (
            "Command: " + name + "\n"
            "Usage:   " + (entry.get("usage") or name) + "\n"
            "Does:    " + (entry.get("help") or "") + "\n"
            "Expands: " + exp
        )

    lines = []
    lines.append("Evaluation Harness")
    lines.append("----------------------------------------")
    lines.append("")
    lines.append("Surface commands:")
    for cmd in surface:
        entry = core.commands.get(am.get_alias(cmd), {})
        lines.append(f"  {cmd:<10} {entry.get('help', '')}")
    lines.append("")
    lines.append("Input is taken verbatim after the command word and one space.")
    lines.append("")
    lines.append("Examples:")
    lines.append('  in {"a": [1, 2]}')
    lines.append("  run")
    lines.append("  in.load program.json")
    lines.append("  run.bg")
    lines.append("  wait")
    return "\n".join(lines)


def init_harness(
    config: Optional[HarnessConfig] = None,
    engine: Optional[ComputationEngine] = None,
    config_path: str | Path = DEFAULT_CONFIG_PATH,
):
    if config is None:
        config = load_config(config_path)

    core = Harness(config, engine=engine)

    # register internal primitives
    for name, (handler, help_text, usage) in ALL_COMMANDS.items():
        core.register(name, handler, help_text, usage)

    # attach aliases
    core.alias_mgr = AliasManager(ALIASES)

    # exposed help
    core.register(
        "help",
        help_cmd,
        "Show available commands (aliases)",
        "help [alias]"
    )

    return core
