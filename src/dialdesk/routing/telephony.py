"""Telephony routing with priority failover and preferred-provider ordering."""

from __future__ import annotations

import uuid
from collections.abc import Hashable, Iterable, Mapping
from typing import Any

from ..logging import redacted_phone
from ..models import ProviderConfig, TelephonyProviderType
from ..registry import NotRegisteredError, ProviderRegistry
from ..settings import Settings
from ..telephony.base import (
    CallRequest,
    CallResult,
    CallStatus,
    TelephonyAdapter,
    TelephonyOperation,
    build_status_table,
)
from .base import RoutingResult, attempt_in_order, sort_providers

# Used when a status arrives for a provider type with no registered adapter.
GENERIC_STATUS_TABLE = build_status_table(
    COMPLETED=("completed",),
    FAILED=("failed",),
    NO_ANSWER=("busy", "no-answer", "no_answer", "cancelled", "canceled"),
    ANSWERED=("answered", "in-progress", "in_progress"),
)


class TelephonyRoutingResult(RoutingResult):
    result: CallResult


def prioritize_providers(
    providers: list[ProviderConfig], preferred_type: str | None
) -> list[ProviderConfig]:
    """Move providers of ``preferred_type`` (case-insensitive) to the front."""

    preferred = str(preferred_type or "").strip().upper()
    if not preferred:
        return providers

    first = [p for p in providers if str(p.type or "").upper() == preferred]
    rest = [p for p in providers if str(p.type or "").upper() != preferred]
    return first + rest


class TelephonyRouter:
    """Places calls through configured telephony providers with failover."""

    def __init__(self, registry: ProviderRegistry[TelephonyAdapter], settings: Settings) -> None:
        self.registry = registry
        self._settings = settings

    def implicit_provider(self) -> ProviderConfig:
        settings = self._settings
        return ProviderConfig(
            id="implicit-twilio",
            name="Implicit Twilio",
            type=TelephonyProviderType.TWILIO.value,
            api_key=settings.twilio_auth_token,
            priority=1,
            enabled=True,
            is_active=True,
            metadata={
                "accountSid": settings.twilio_account_sid,
                "fromNumber": settings.twilio_from_number,
            },
        )

    def failover_order(self, providers: Iterable[ProviderConfig] = ()) -> list[ProviderConfig]:
        return sort_providers(providers) or [self.implicit_provider()]

    def resolve_adapter(self, provider_type: Hashable) -> TelephonyAdapter:
        return self.registry.resolve(provider_type)

    async def call_provider(self, provider: ProviderConfig, request: CallRequest) -> CallResult:
        adapter = self.resolve_adapter(provider.type)
        return await adapter.run(TelephonyOperation.INITIATE_CALL, request, provider)

    async def check_connection(self, provider: ProviderConfig) -> dict[str, Any]:
        adapter = self.resolve_adapter(provider.type)
        return await adapter.run(TelephonyOperation.CHECK_CONNECTION, {}, provider)

    async def initiate_call_with_failover(
        self,
        request: CallRequest | Mapping[str, Any],
        providers: Iterable[ProviderConfig] = (),
        trace_id: str | None = None,
    ) -> TelephonyRoutingResult:
        if not isinstance(request, CallRequest):
            request = CallRequest.model_validate(dict(request))
        trace_id = trace_id or uuid.uuid4().hex

        ordered = prioritize_providers(
            self.failover_order(providers), request.preferred_provider_type
        )

        async def call(provider: ProviderConfig) -> CallResult:
            return await self.call_provider(provider, request)

        provider, result, errors = await attempt_in_order(
            "telephony",
            "Telephony",
            ordered,
            call,
            trace_id=trace_id,
            to=redacted_phone(request.to),
        )
        return TelephonyRoutingResult(
            provider=provider,
            result=result,
            trace_id=trace_id,
            attempted=[candidate.name for candidate in ordered],
            errors=errors,
        )

    def map_status(self, provider_type: Hashable | None, provider_status: str | None) -> CallStatus:
        try:
            adapter = self.resolve_adapter(provider_type or TelephonyProviderType.TWILIO)
        except NotRegisteredError:
            status = str(provider_status or "").strip().lower()
            return GENERIC_STATUS_TABLE.get(status, CallStatus.INITIATED)
        return adapter.map_status(provider_status)
