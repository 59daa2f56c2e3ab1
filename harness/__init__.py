# harness/__init__.py
#
# Interactive evaluation harness: input buffer -> engine -> rendered output.

from harness.errors import EngineFailure, HarnessError, SerializationFailure

__all__ = ["EngineFailure", "HarnessError", "SerializationFailure"]
