# harness/errors.py
from __future__ import annotations


class HarnessError(RuntimeError):
    pass


class EngineFailure(HarnessError):
    """The computation engine raised or rejected the input."""


class EngineTimeout(EngineFailure):
    pass


class SerializationFailure(HarnessError):
    """The engine result has no canonical text form."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"result not serializable at {path}: {reason}")
        self.path = path
        self.reason = reason
