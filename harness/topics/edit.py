# harness/topics/edit.py
#
# Input buffer primitives. Text arrives verbatim (no trimming), so
#   in   two  spaces
# stores "  two  spaces".

from __future__ import annotations

from pathlib import Path


def in_set(core, text=""):
    core.input.set_input(text)
    return "OK"


def in_add(core, text=""):
    """Append one line, the way a multi-line text box would."""
    cur = core.input.get_input()
    core.input.set_input(cur + "\n" + text if cur else text)
    return "OK"


def in_clear(core, _arg=""):
    core.input.set_input("")
    return "OK"


def in_show(core, _arg=""):
    return core.input.get_input()


def in_load(core, path=""):
    path = path.strip()
    if not path:
        raise ValueError("in.load expects <file>")
    p = Path(path)
    if not p.is_file():
        raise ValueError(f"File not found: {p}")
    text = p.read_text(encoding="utf-8")
    core.input.set_input(text)
    return f"OK ({len(text)} chars)"


COMMANDS = {
    "sys.in.set":   (in_set,   "Replace input with the rest of the line", "sys.in.set <text>"),
    "sys.in.add":   (in_add,   "Append a line to input",                  "sys.in.add <text>"),
    "sys.in.clear": (in_clear, "Clear input",                             "sys.in.clear"),
    "sys.in.show":  (in_show,  "Show input",                              "sys.in.show"),
    "sys.in.load":  (in_load,  "Replace input with a file's contents",    "sys.in.load <file>"),
}
