# harness/topics/output.py

from __future__ import annotations

from harness.modules.engine import describe_engine


def out_show(core, _arg=""):
    return core.output.get_output()


def engine_show(core, _arg=""):
    cfg = core.config
    return (
        f"engine={describe_engine(core.engine)} "
        f"on_error={cfg.on_error} ordering={cfg.ordering}"
    )


COMMANDS = {
    "sys.out.show":    (out_show,    "Show last rendered output", "sys.out.show"),
    "sys.engine.show": (engine_show, "Describe engine + policies", "sys.engine.show"),
}
