"""Provider hub wiring engine and telephony registries to their routers."""

from __future__ import annotations

import httpx

from ..engines import DialogflowEngine, Engine, HttpEngine, OpenAIEngine
from ..models import AIProviderType, ConnectivityResult, ProviderConfig, TelephonyProviderType
from ..registry import ProviderRegistry
from ..routing import AIRouter, TelephonyRouter, check_ai_provider, check_telephony_provider
from ..settings import Settings
from ..telephony import PlivoAdapter, TelephonyAdapter, TwilioAdapter, VonageAdapter


class ProviderHub:
    """Owns the shared HTTP client and the two independent provider registries."""

    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None) -> None:
        self._settings = settings
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=settings.provider_timeout_seconds)
        self.engines = self._build_engine_registry(settings)
        self.telephony_adapters = self._build_telephony_registry(settings)
        self.ai = AIRouter(self.engines, settings)
        self.telephony = TelephonyRouter(self.telephony_adapters, settings)

    def _build_engine_registry(self, settings: Settings) -> ProviderRegistry[Engine]:
        registry: ProviderRegistry[Engine] = ProviderRegistry(kind="engine")
        registry.register(AIProviderType.OPENAI, OpenAIEngine(client=self._client, settings=settings))
        registry.register(
            AIProviderType.DIALOGFLOW, DialogflowEngine(client=self._client, settings=settings)
        )
        registry.register(AIProviderType.RASA, HttpEngine(self._client, name="rasa-engine"))
        registry.register(
            AIProviderType.GENERIC_HTTP, HttpEngine(self._client, name="generic-http-engine")
        )
        return registry

    def _build_telephony_registry(self, settings: Settings) -> ProviderRegistry[TelephonyAdapter]:
        registry: ProviderRegistry[TelephonyAdapter] = ProviderRegistry(kind="telephony adapter")
        registry.register(
            TelephonyProviderType.TWILIO, TwilioAdapter(client=self._client, settings=settings)
        )
        registry.register(
            TelephonyProviderType.VONAGE, VonageAdapter(client=self._client, settings=settings)
        )
        registry.register(
            TelephonyProviderType.PLIVO, PlivoAdapter(client=self._client, settings=settings)
        )
        return registry

    async def check_ai_provider(self, provider: ProviderConfig) -> ConnectivityResult:
        return await check_ai_provider(self.ai, provider)

    async def check_telephony_provider(self, provider: ProviderConfig) -> ConnectivityResult:
        return await check_telephony_provider(self.telephony, provider)

    async def shutdown(self) -> None:
        """Close the HTTP client if the hub created it."""

        if self._owns_client:
            await self._client.aclose()
