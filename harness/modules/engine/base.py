# harness/modules/engine/base.py
#
# Engine boundary: string in, JSON value (or awaitable of one) out.
#
# Any object with evaluate(text) fits; plain functions are wrapped.
# Engine specs accepted by load_engine():
#   json                  built-in JSON document engine
#   remote                job-service engine (needs config.remote)
#   package.module:attr   importable engine object, class or callable

from __future__ import annotations

import importlib
import inspect
import json
from typing import Any, Awaitable, Callable, Optional, Protocol, Union, runtime_checkable

from harness.config import HarnessConfig
from harness.model.schema import JsonValue
from harness.modules.engine.client import RemoteEngine

EngineReturn = Union[JsonValue, Awaitable[JsonValue]]


@runtime_checkable
class ComputationEngine(Protocol):
    def evaluate(self, text: str) -> EngineReturn:
        """
        Evaluate one input string.
        Returns a JSON value, or an awaitable resolving to one.
        Raises on malformed or semantically invalid input.
        """
        ...


class CallableEngine:
    """Adapt fn(text) (sync or async) to ComputationEngine."""

    def __init__(self, fn: Callable[[str], EngineReturn], name: Optional[str] = None):
        if not callable(fn):
            raise TypeError("engine function must be callable")
        self.fn = fn
        self.name = name or getattr(fn, "__qualname__", repr(fn))

    def evaluate(self, text: str) -> EngineReturn:
        return self.fn(text)

    def __repr__(self):
        return f"CallableEngine({self.name})"


class JsonEngine:
    """Parses the input as one JSON document."""

    name = "json"

    def evaluate(self, text: str) -> JsonValue:
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise ValueError(f"invalid JSON at line {e.lineno} column {e.colno}: {e.msg}") from e

    def __repr__(self):
        return "JsonEngine()"


def _import_attr(spec: str) -> Any:
    mod_name, _, attr_path = spec.partition(":")
    if not mod_name or not attr_path:
        raise ValueError(f"Engine spec must be 'package.module:attr' (got {spec!r})")
    try:
        obj = importlib.import_module(mod_name)
    except ImportError as e:
        raise ValueError(f"Engine module not importable: {mod_name} ({e})") from e
    for part in attr_path.split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError as e:
            raise ValueError(f"Engine attribute not found: {spec}") from e
    return obj


def as_engine(obj: Any, name: Optional[str] = None) -> ComputationEngine:
    if inspect.isclass(obj):
        obj = obj()
    if isinstance(obj, ComputationEngine):
        return obj
    if callable(obj):
        return CallableEngine(obj, name=name)
    raise ValueError(f"Not an engine: {obj!r} (needs evaluate(text) or to be callable)")


def load_engine(spec: str, config: Optional[HarnessConfig] = None) -> ComputationEngine:
    spec = (spec or "").strip()
    if not spec:
        raise ValueError("Engine spec missing/empty")

    if spec == "json":
        return JsonEngine()

    if spec == "remote":
        remote = config.remote if config is not None else None
        if remote is None:
            raise ValueError("Engine 'remote' needs config.remote (base_url, ...)")
        return RemoteEngine(remote)

    return as_engine(_import_attr(spec), name=spec)


def describe_engine(engine: ComputationEngine) -> str:
    return getattr(engine, "name", None) or type(engine).__name__
