"""Priority ordering and failover shared by the AI and telephony routers."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable, Sequence
from typing import Any, TypeVar

import structlog
from pydantic import BaseModel, Field

from ..logging import bind_trace
from ..models import ProviderAttemptError, ProviderConfig

logger = structlog.get_logger(__name__)

R = TypeVar("R")


class RoutingError(RuntimeError):
    """Raised when every provider in the failover order failed."""

    def __init__(self, message: str, details: list[ProviderAttemptError]) -> None:
        super().__init__(message)
        self.details = details


class RoutingResult(BaseModel):
    provider: ProviderConfig
    result: Any
    trace_id: str
    attempted: list[str] = Field(default_factory=list)
    errors: list[ProviderAttemptError] = Field(default_factory=list)


def sort_providers(providers: Iterable[ProviderConfig]) -> list[ProviderConfig]:
    """Enabled providers, active first, then by ascending priority and name."""

    enabled = [provider for provider in providers if provider.enabled]
    return sorted(enabled, key=lambda p: (not p.is_active, p.priority, p.name))


async def attempt_in_order(
    domain: str,
    label: str,
    providers: Sequence[ProviderConfig],
    call: Callable[[ProviderConfig], Awaitable[R]],
    *,
    trace_id: str,
    **log_context: Any,
) -> tuple[ProviderConfig, R, list[ProviderAttemptError]]:
    """Call providers in order until one succeeds.

    ``domain`` prefixes log events (``ai.provider.attempt``); ``label`` is the
    human readable domain name used in the ``RoutingError`` message.
    ``trace_id`` and ``log_context`` are bound to the structlog context for
    every event emitted while the providers run.
    """

    errors: list[ProviderAttemptError] = []
    bind_trace(trace_id=trace_id, routing=domain, **log_context)
    logger.info(
        f"{domain}.failover.start",
        providers=[provider.sanitized() for provider in providers],
        **log_context,
    )

    for provider in providers:
        provider_fields = {
            "provider_id": provider.id,
            "provider_name": provider.name,
            "provider_type": provider.type,
        }
        logger.info(f"{domain}.provider.attempt", **provider_fields, **log_context)
        try:
            result = await call(provider)
        except Exception as exc:  # noqa: BLE001
            reason = str(exc) or f"Unknown {label} provider error"
            logger.warning(f"{domain}.provider.failure", **provider_fields, error=reason)
            errors.append(ProviderAttemptError(**provider_fields, message=reason))
            continue

        logger.info(f"{domain}.provider.success", **provider_fields)
        return provider, result, errors

    reason = errors[0].message if errors else f"No {label} providers are available."
    logger.error(
        f"{domain}.failover.exhausted",
        error=reason,
        errors=[error.model_dump() for error in errors],
        **log_context,
    )
    raise RoutingError(f"{label} routing failed. {reason}", details=errors)
