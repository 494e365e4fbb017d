"""AI engine routing with priority failover."""

from __future__ import annotations

import uuid
from collections.abc import Hashable, Iterable
from typing import Any

from ..engines.base import AITask, Engine, EngineInput, coerce_task
from ..models import AIProviderType, ProviderConfig
from ..registry import ProviderRegistry
from ..settings import Settings
from .base import RoutingResult, attempt_in_order, sort_providers

PROVIDER_LABELS: dict[str, str] = {
    AIProviderType.OPENAI.value: "OpenAI adapter",
    AIProviderType.DIALOGFLOW.value: "Dialogflow adapter",
    AIProviderType.RASA.value: "Rasa adapter",
    AIProviderType.GENERIC_HTTP.value: "Generic HTTP adapter",
}


class AIRoutingResult(RoutingResult):
    result: dict[str, Any]


class AIRouter:
    """Runs AI tasks against configured providers, falling over in priority order."""

    def __init__(self, registry: ProviderRegistry[Engine], settings: Settings) -> None:
        self.registry = registry
        self._settings = settings

    def implicit_provider(self) -> ProviderConfig:
        return ProviderConfig(
            id="implicit-openai",
            name="Implicit OpenAI",
            type=AIProviderType.OPENAI.value,
            api_key=self._settings.openai_api_key,
            model=self._settings.openai_model,
            priority=1,
            enabled=True,
            is_active=True,
        )

    def failover_order(self, providers: Iterable[ProviderConfig] = ()) -> list[ProviderConfig]:
        return sort_providers(providers) or [self.implicit_provider()]

    def resolve_engine(self, provider_type: Hashable) -> Engine:
        return self.registry.resolve(provider_type)

    async def call_provider(
        self,
        provider: ProviderConfig,
        task: AITask | str,
        payload: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        engine = self.resolve_engine(provider.type)
        engine_input = EngineInput.from_payload(task, payload)
        if not provider.provider_label:
            provider = provider.model_copy(
                update={"provider_label": PROVIDER_LABELS.get(provider.type, "OpenAI adapter")}
            )
        output = await engine.run(engine_input.task, engine_input, provider)
        return output.result

    async def run_with_failover(
        self,
        task: AITask | str,
        payload: dict[str, Any] | None = None,
        providers: Iterable[ProviderConfig] = (),
        trace_id: str | None = None,
    ) -> AIRoutingResult:
        task = coerce_task(task)
        trace_id = trace_id or uuid.uuid4().hex
        ordered = self.failover_order(providers)

        async def call(provider: ProviderConfig) -> dict[str, Any]:
            return await self.call_provider(provider, task, payload)

        provider, result, errors = await attempt_in_order(
            "ai", "AI", ordered, call, trace_id=trace_id, task=task.value
        )
        return AIRoutingResult(
            provider=provider,
            result=result,
            trace_id=trace_id,
            attempted=[candidate.name for candidate in ordered],
            errors=errors,
        )
