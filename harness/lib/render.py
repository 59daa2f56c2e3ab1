# harness/lib/render.py
#
# Canonical pretty-printer for engine results.
#
#   render({"a": [1, 2]}) ->
#   {
#       "a": [
#           1,
#           2
#       ]
#   }
#
# Keys keep the engine's order. Non-ASCII text is emitted as-is.

from __future__ import annotations

import json
import math
from typing import Any

from harness.errors import SerializationFailure
from harness.model.schema import INDENT


def _type_name(value: Any) -> str:
    return type(value).__name__


def check_value(value: Any, path: str = "$") -> None:
    """Walk a result and raise SerializationFailure at the first value
    outside the JSON union.

    json.dumps alone is too lenient here: it coerces int/None/bool mapping
    keys to strings and would lose the original key on a round-trip.
    """
    if value is None or isinstance(value, (bool, int, str)):
        return

    if isinstance(value, float):
        if not math.isfinite(value):
            raise SerializationFailure(path, f"non-finite number {value!r}")
        return

    if isinstance(value, (list, tuple)):
        for i, item in enumerate(value):
            check_value(item, f"{path}[{i}]")
        return

    if isinstance(value, dict):
        for key, item in value.items():
            if not isinstance(key, str):
                raise SerializationFailure(path, f"mapping key {key!r} is not a string")
            check_value(item, f"{path}.{key}")
        return

    raise SerializationFailure(path, f"unsupported type {_type_name(value)}")


def render(value: Any) -> str:
    try:
        check_value(value)
    except RecursionError as e:
        raise SerializationFailure("$", "nesting too deep") from e
    try:
        return json.dumps(value, indent=INDENT, ensure_ascii=False, allow_nan=False)
    except (ValueError, RecursionError) as e:
        # e.g. ints past sys.get_int_max_str_digits()
        raise SerializationFailure("$", str(e)) from e
