import asyncio

import httpx

from dialdesk.engines import DialogflowEngine, HttpEngine, OpenAIEngine
from dialdesk.services.hub import ProviderHub
from dialdesk.settings import Settings
from dialdesk.telephony import CallStatus, PlivoAdapter, TwilioAdapter, VonageAdapter


def _settings() -> Settings:
    return Settings(
        openai_api_key=None,
        twilio_account_sid=None,
        twilio_auth_token=None,
        twilio_from_number=None,
    )


def test_hub_registers_every_engine_and_adapter():
    client = httpx.AsyncClient()
    hub = ProviderHub(_settings(), client=client)

    assert hub.engines.available_providers() == ["DIALOGFLOW", "GENERIC_HTTP", "OPENAI", "RASA"]
    assert hub.telephony_adapters.available_providers() == ["PLIVO", "TWILIO", "VONAGE"]
    assert isinstance(hub.engines.resolve("OPENAI"), OpenAIEngine)
    assert isinstance(hub.engines.resolve("DIALOGFLOW"), DialogflowEngine)
    assert hub.engines.resolve("RASA").name == "rasa-engine"
    assert isinstance(hub.engines.resolve("GENERIC_HTTP"), HttpEngine)
    assert isinstance(hub.telephony_adapters.resolve("TWILIO"), TwilioAdapter)
    assert isinstance(hub.telephony_adapters.resolve("VONAGE"), VonageAdapter)
    assert isinstance(hub.telephony_adapters.resolve("PLIVO"), PlivoAdapter)

    asyncio.run(hub.shutdown())

    assert client.is_closed is False
    asyncio.run(client.aclose())


def test_hub_places_mock_call_and_script_without_credentials():
    async def _run():
        hub = ProviderHub(_settings())
        try:
            call = await hub.telephony.initiate_call_with_failover({"to": "+15550001111"})
            script = await hub.ai.run_with_failover(
                "CALL_SCRIPT", {"customer": {"first_name": "Meera"}}
            )
            status = hub.telephony.map_status("TWILIO", "in-progress")
        finally:
            await hub.shutdown()
        return call, script, status, hub._client.is_closed

    call, script, status, client_closed = asyncio.run(_run())

    assert client_closed is True
    assert call.provider.id == "implicit-twilio"
    assert call.result.provider_label == "twilio-mock"
    assert call.result.provider_call_id.startswith("mock-")
    assert script.provider.id == "implicit-openai"
    assert script.result["script"].startswith("Hello Meera")
    assert status is CallStatus.ANSWERED
