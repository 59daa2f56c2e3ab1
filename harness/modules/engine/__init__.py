from harness.modules.engine.base import (
    CallableEngine,
    ComputationEngine,
    JsonEngine,
    as_engine,
    describe_engine,
    load_engine,
)
from harness.modules.engine.client import RemoteEngine

__all__ = [
    "CallableEngine",
    "ComputationEngine",
    "JsonEngine",
    "RemoteEngine",
    "as_engine",
    "describe_engine",
    "load_engine",
]
