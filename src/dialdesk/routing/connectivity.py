"""Admin connectivity checks; failures are reported in the result, never raised."""

from __future__ import annotations

import time

import structlog

from ..engines.base import AITask, EngineInput
from ..models import ConnectivityResult, ProviderConfig
from .ai import AIRouter
from .telephony import TelephonyRouter

logger = structlog.get_logger(__name__)

DISABLED_MESSAGE = "Provider is disabled. Enable it before testing connectivity."
PREVIEW_CHARS = 120


async def check_ai_provider(router: AIRouter, provider: ProviderConfig) -> ConnectivityResult:
    if not provider.enabled:
        return ConnectivityResult(ok=False, provider=provider.sanitized(), error=DISABLED_MESSAGE)

    start = time.perf_counter()
    try:
        engine = router.resolve_engine(provider.type)
        if hasattr(engine, "ping"):
            text = await engine.ping(provider)
            message = f"{provider.type} request succeeded."
            preview = text.strip()[:PREVIEW_CHARS] or "(empty response)"
        else:
            engine_input = EngineInput.from_payload(
                AITask.CALL_SUMMARY,
                {
                    "transcript": "Connectivity check transcript.",
                    "metadata": {"source": "admin-connectivity-check"},
                },
            )
            output = await engine.run(AITask.CALL_SUMMARY, engine_input, provider)
            summary = str(output.result.get("summary") or "").strip()
            message = f"{provider.type} request succeeded."
            preview = summary[:PREVIEW_CHARS] or "(no summary preview)"
    except Exception as exc:  # noqa: BLE001
        logger.warning("ai.connectivity.failed", provider_id=provider.id, error=str(exc))
        return ConnectivityResult(
            ok=False,
            provider=provider.sanitized(),
            latency_ms=_elapsed_ms(start),
            error=str(exc) or "Connectivity check failed.",
        )

    return ConnectivityResult(
        ok=True,
        provider=provider.sanitized(),
        latency_ms=_elapsed_ms(start),
        message=message,
        preview=preview,
    )


async def check_telephony_provider(
    router: TelephonyRouter, provider: ProviderConfig
) -> ConnectivityResult:
    if not provider.enabled:
        return ConnectivityResult(ok=False, provider=provider.sanitized(), error=DISABLED_MESSAGE)

    start = time.perf_counter()
    try:
        result = await router.check_connection(provider)
    except Exception as exc:  # noqa: BLE001
        logger.warning("telephony.connectivity.failed", provider_id=provider.id, error=str(exc))
        return ConnectivityResult(
            ok=False,
            provider=provider.sanitized(),
            latency_ms=_elapsed_ms(start),
            error=str(exc) or "Connectivity check failed.",
        )

    message = (result or {}).get("message") or f"{provider.type} connectivity verified."
    return ConnectivityResult(
        ok=True,
        provider=provider.sanitized(),
        latency_ms=_elapsed_ms(start),
        message=message,
        preview=(result or {}).get("message") or "OK",
    )


def _elapsed_ms(start: float) -> int:
    return round((time.perf_counter() - start) * 1000)
