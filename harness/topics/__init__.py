# harness/topics/__init__.py
# Internal sys.* primitives, merged into one registry.

from harness.topics import edit, evaluate, output

ALL_COMMANDS = {}
for _mod in (edit, evaluate, output):
    ALL_COMMANDS.update(_mod.COMMANDS)
