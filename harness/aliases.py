# harness/aliases.py
#
# User never invokes sys.* directly.
# Alias expansion is command-word replacement to internal sys.* primitives;
# the rest of the line is handed over untouched.

ALIASES = {
    # input buffer
    "in":       "sys.in.set",
    "in.add":   "sys.in.add",
    "in.clear": "sys.in.clear",
    "in.show":  "sys.in.show",
    "in.load":  "sys.in.load",

    # evaluation
    #   run      (blocking, shows the outcome)
    #   run.bg   (background, see status / wait)
    "run":      "sys.run",
    "run.bg":   "sys.run.bg",
    "wait":     "sys.wait",
    "status":   "sys.status",

    # output + engine
    "out":      "sys.out.show",
    "engine":   "sys.engine.show",
}


class AliasManager:
    def __init__(self, aliases):
        self.aliases = dict(aliases)

    def has_alias(self, name: str) -> bool:
        return name in self.aliases

    def expand(self, head: str) -> str:
        return self.aliases.get(head, head)

    def list_aliases(self):
        return sorted(self.aliases.keys())

    def get_alias(self, name):
        return self.aliases.get(name)
