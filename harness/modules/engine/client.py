# harness/modules/engine/client.py
from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Dict, Optional

import httpx

from harness.config import RemoteConfig
from harness.errors import EngineFailure, EngineTimeout
from harness.model.schema import JsonValue

logger = logging.getLogger(__name__)


class RemoteEngine:
    """
    Engine living behind a job service.

    Submits {op, args: {input}, timeout_ms} to /v1/jobs, then polls
    /v1/jobs/<id> until the job settles. Returns ONLY result.value.

    Usage:
        engine = RemoteEngine(RemoteConfig(base_url="http://127.0.0.1:8800"))
        value = await engine.evaluate("2+2")
    """

    def __init__(self, config: RemoteConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.cfg = config
        self._transport = transport

    @property
    def name(self) -> str:
        return f"remote ({self.cfg.base_url}, op={self.cfg.op})"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.cfg.base_url, transport=self._transport)

    async def evaluate(self, text: str, *, timeout_ms: Optional[int] = None) -> JsonValue:
        cfg = self.cfg
        overall_timeout_ms = cfg.timeout_ms if timeout_ms is None else int(timeout_ms)
        poll_ms = cfg.poll_interval_ms

        if not isinstance(text, str):
            raise TypeError("input must be a string")

        payload: Dict[str, Any] = {
            "op": cfg.op,
            "args": {"input": text},
            "timeout_ms": overall_timeout_ms,
        }

        t0 = time.monotonic()
        deadline = t0 + (overall_timeout_ms / 1000.0 if overall_timeout_ms > 0 else 0.0)

        async with self._client() as client:
            job_id = await self._submit(client, payload)
            logger.debug("submitted job %s (op=%s)", job_id, cfg.op)

            try:
                while True:
                    status = await self._get_status(client, job_id)
                    state = status.get("state")

                    if state == "ok":
                        result = status.get("result")
                        if not isinstance(result, dict) or "value" not in result:
                            raise EngineFailure("Malformed response: result.value missing")
                        return result["value"]

                    if state in ("fail", "timeout", "cancelled"):
                        err = status.get("error") or {}
                        if isinstance(err, dict):
                            code = err.get("code", "ERROR")
                            msg = err.get("message", "unknown error")
                        else:
                            code, msg = "ERROR", str(err)
                        raise EngineFailure(f"{code}: {msg}")

                    # queued / running / unknown -> keep polling
                    if overall_timeout_ms > 0 and time.monotonic() >= deadline:
                        raise EngineTimeout(f"engine timeout after {overall_timeout_ms}ms")

                    logger.debug("job %s state=%s", job_id, state)
                    await asyncio.sleep(poll_ms / 1000.0 if poll_ms > 0 else 0)

            except Exception:
                # best-effort cancel; the original error still propagates
                await self._cancel_silent(client, job_id)
                raise

    async def _submit(self, client: httpx.AsyncClient, payload: Dict[str, Any]) -> str:
        try:
            r = await client.post("/v1/jobs", json=payload, timeout=10.0)
        except httpx.HTTPError as e:
            raise EngineFailure(f"submit failed: {e}") from e

        if r.status_code not in (200, 201):
            raise EngineFailure(f"submit failed: HTTP {r.status_code} :: {r.text}")

        data = _json_body(r, "submit")
        job_id = data.get("id")
        if not isinstance(job_id, str) or not job_id:
            raise EngineFailure("submit failed: missing job id")
        return job_id

    async def _get_status(self, client: httpx.AsyncClient, job_id: str) -> Dict[str, Any]:
        try:
            r = await client.get(f"/v1/jobs/{job_id}", timeout=10.0)
        except httpx.HTTPError as e:
            raise EngineFailure(f"poll failed: {e}") from e

        if r.status_code != 200:
            raise EngineFailure(f"poll failed: HTTP {r.status_code} :: {r.text}")

        return _json_body(r, "poll")

    async def _cancel_silent(self, client: httpx.AsyncClient, job_id: str) -> None:
        try:
            await client.post(f"/v1/jobs/{job_id}/cancel", timeout=5.0)
        except httpx.HTTPError as e:
            logger.debug("cancel of job %s failed: %s", job_id, e)

    def __repr__(self):
        return f"RemoteEngine({self.cfg.base_url!r})"


def _json_body(r: httpx.Response, stage: str) -> Dict[str, Any]:
    try:
        data = r.json()
    except ValueError as e:
        raise EngineFailure(f"{stage} failed: invalid json") from e
    if not isinstance(data, dict):
        raise EngineFailure(f"{stage} failed: non-object json")
    return data
