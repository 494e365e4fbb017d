"""Generic HTTP engine adapter used for Rasa and custom webhook engines."""

from __future__ import annotations

from typing import Any

import httpx

from ..models import ProviderConfig
from .base import AITask, BaseEngine, EngineError, EngineInput, EngineNotConfiguredError, truncate

MIN_TIMEOUT_MS = 1_000


class HttpEngine(BaseEngine):
    """POSTs the task payload to a configured endpoint and maps the reply."""

    def __init__(self, client: httpx.AsyncClient, name: str = "http-engine") -> None:
        super().__init__()
        self._client = client
        self.name = name

    async def invoke(
        self, task: AITask, engine_input: EngineInput, config: ProviderConfig
    ) -> dict[str, Any]:
        label = config.provider_label or "HTTP adapter"
        endpoint = str(config.endpoint or "").strip()
        if not endpoint:
            raise EngineNotConfiguredError(f"{label} endpoint is not configured.")

        timeout = max(MIN_TIMEOUT_MS, config.timeout_ms) / 1000
        body = {
            "task": task.value,
            "payload": engine_input.raw_payload,
            "model": config.model,
            "metadata": config.metadata,
        }

        try:
            response = await self._client.post(
                endpoint,
                json=body,
                headers=_headers(config),
                timeout=timeout,
            )
        except httpx.TimeoutException as exc:
            raise EngineError(f"{label} request timed out: {exc}", status_code=504) from exc
        except httpx.RequestError as exc:
            raise EngineError(f"{label} request failed: {exc}", status_code=502) from exc

        if response.status_code >= 400:
            raise EngineError(
                f"{label} request failed ({response.status_code}): {truncate(response.text or '')}",
                status_code=response.status_code,
            )

        return normalize_http_result(task, response.json())


def normalize_http_result(task: AITask, body: Any) -> dict[str, Any]:
    payload = body if isinstance(body, dict) else {}
    payload = payload.get("result") or payload
    if not isinstance(payload, dict):
        payload = {}

    if task is AITask.CALL_SCRIPT:
        return {"script": payload.get("script") or payload.get("reply") or payload.get("text") or ""}

    if task is AITask.CALL_SUMMARY:
        return {
            "summary": payload.get("summary") or "Transcript processed.",
            "intent": payload.get("intent") or "UNKNOWN",
            "next_action": payload.get("next_action")
            or payload.get("nextAction")
            or "Review manually.",
        }

    return {
        "reply": payload.get("reply") or payload.get("text") or "Please continue.",
        "should_end": bool(payload.get("should_end") or payload.get("shouldEnd")),
    }


def _headers(config: ProviderConfig) -> dict[str, str]:
    headers = {"Content-Type": "application/json"}
    if config.api_key:
        headers["Authorization"] = f"Bearer {config.api_key}"
        headers["x-api-key"] = config.api_key
    return headers
