# harness/config.py
#
# config/harness.json -> HarnessConfig
#
# The file is optional; a missing file yields the defaults below.
# A present but malformed file is an error (never silently ignored).

from __future__ import annotations

import json
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Optional

from harness.model.schema import (
    DEFAULT_ENGINE,
    ON_ERROR_MARKER,
    ON_ERROR_POLICIES,
    ORDER_SUBMITTED,
    ORDERING_POLICIES,
)


@dataclass(frozen=True)
class RemoteConfig:
    base_url: str
    timeout_ms: int = 8000
    poll_interval_ms: int = 200
    op: str = "engine.evaluate"


@dataclass(frozen=True)
class HarnessConfig:
    engine: str = DEFAULT_ENGINE
    on_error: str = ON_ERROR_MARKER
    ordering: str = ORDER_SUBMITTED
    remote: Optional[RemoteConfig] = None

    def with_overrides(self, **overrides: Optional[str]) -> "HarnessConfig":
        """Return a copy with non-None overrides applied and re-validated."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        if not changes:
            return self
        cfg = replace(self, **changes)
        _validate(cfg)
        return cfg


def _choice(raw: Dict[str, Any], key: str, default: str, allowed) -> str:
    value = raw.get(key, default)
    if not isinstance(value, str) or value.strip() not in allowed:
        raise ValueError(f"config.{key} must be one of {', '.join(allowed)} (got {value!r})")
    return value.strip()


def _int_ms(raw: Dict[str, Any], key: str, default: int) -> int:
    try:
        value = int(raw.get(key, default))
    except (TypeError, ValueError) as e:
        raise ValueError(f"config.remote.{key} must be an integer") from e
    return max(value, 0)


def parse_remote(raw: Any) -> RemoteConfig:
    if not isinstance(raw, dict):
        raise ValueError("config.remote must be an object")

    base_url = (raw.get("base_url") or "").strip()
    if not base_url:
        raise ValueError("config.remote.base_url missing/empty")

    op = (raw.get("op") or "engine.evaluate").strip()

    return RemoteConfig(
        base_url=base_url.rstrip("/"),
        timeout_ms=_int_ms(raw, "timeout_ms", 8000),
        poll_interval_ms=_int_ms(raw, "poll_interval_ms", 200),
        op=op,
    )


def _validate(cfg: HarnessConfig) -> None:
    if not cfg.engine.strip():
        raise ValueError("config.engine missing/empty")
    if cfg.on_error not in ON_ERROR_POLICIES:
        raise ValueError(f"config.on_error must be one of {', '.join(ON_ERROR_POLICIES)} (got {cfg.on_error!r})")
    if cfg.ordering not in ORDERING_POLICIES:
        raise ValueError(f"config.ordering must be one of {', '.join(ORDERING_POLICIES)} (got {cfg.ordering!r})")


def parse_config(raw: Any) -> HarnessConfig:
    if not isinstance(raw, dict):
        raise ValueError("config root must be an object")

    engine = raw.get("engine", DEFAULT_ENGINE)
    if not isinstance(engine, str) or not engine.strip():
        raise ValueError("config.engine missing/empty")

    remote = raw.get("remote")
    cfg = HarnessConfig(
        engine=engine.strip(),
        on_error=_choice(raw, "on_error", ON_ERROR_MARKER, ON_ERROR_POLICIES),
        ordering=_choice(raw, "ordering", ORDER_SUBMITTED, ORDERING_POLICIES),
        remote=None if remote is None else parse_remote(remote),
    )
    _validate(cfg)
    return cfg


def load_config(path: str | Path) -> HarnessConfig:
    p = Path(path)
    if not p.exists():
        return HarnessConfig()
    try:
        raw = json.loads(p.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"config {p} is not valid JSON: {e}") from e
    return parse_config(raw)
