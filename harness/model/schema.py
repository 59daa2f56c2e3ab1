# harness/model/schema.py
#
# Harness constants and the result value shape.
#
# EvaluationResult is the JSON value union, carried as native Python values:
#   null -> None, boolean -> bool, number -> int | float (finite),
#   string -> str, sequence -> list | tuple, mapping -> dict[str, ...]
#
# Keep names stable: config loading and the REPL surface both refer to them.

from __future__ import annotations

from typing import Any, Dict, List, Tuple, Union

JsonScalar = Union[None, bool, int, float, str]
JsonValue = Union[JsonScalar, List[Any], Tuple[Any, ...], Dict[str, Any]]

INDENT = 4

# on failure: replace output with "Error: ..." or leave it untouched
ON_ERROR_MARKER = "marker"
ON_ERROR_KEEP = "keep"
ON_ERROR_POLICIES = (ON_ERROR_MARKER, ON_ERROR_KEEP)

# overlapping triggers: last-submitted-wins or last-completed-wins
ORDER_SUBMITTED = "submitted"
ORDER_COMPLETED = "completed"
ORDERING_POLICIES = (ORDER_SUBMITTED, ORDER_COMPLETED)

ERROR_PREFIX = "Error: "

DEFAULT_CONFIG_PATH = "config/harness.json"
DEFAULT_ENGINE = "json"
