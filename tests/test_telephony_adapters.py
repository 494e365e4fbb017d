import asyncio
import json
from urllib.parse import parse_qs

import httpx
import jwt
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from dialdesk.models import ProviderConfig
from dialdesk.settings import Settings
from dialdesk.telephony import (
    CallStatus,
    PlivoAdapter,
    TelephonyError,
    TelephonyNotConfiguredError,
    TelephonyOperation,
    TwilioAdapter,
    UnsupportedOperationError,
    VonageAdapter,
    normalize_call_result,
)
from dialdesk.telephony.utils import escape_xml, normalize_e164_digits, normalize_phone_number

NO_CREDENTIALS = {
    "twilio_account_sid": None,
    "twilio_auth_token": None,
    "twilio_from_number": None,
    "plivo_auth_id": None,
    "plivo_auth_token": None,
    "plivo_from_number": None,
    "vonage_application_id": None,
    "vonage_private_key": None,
    "vonage_from_number": None,
}


def _settings(**overrides) -> Settings:
    return Settings(**{**NO_CREDENTIALS, "default_country_code": "+91", **overrides})


def _run_with_transport(handler, build_adapter, operation, payload, config):
    async def _run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            adapter = build_adapter(client)
            return await adapter.run(operation, payload, config)

    return asyncio.run(_run())


def test_normalize_phone_number():
    assert normalize_phone_number("+1 (415) 555-0100") == "+14155550100"
    assert normalize_phone_number("98765 43210", "+91") == "+919876543210"
    assert normalize_phone_number("0044 20 7946 0958") == "+00442079460958"
    assert normalize_phone_number("12345") == "12345"
    assert normalize_phone_number("") == ""
    assert normalize_e164_digits("+1 415 555 0100") == "14155550100"


def test_escape_xml():
    assert escape_xml("<Tom & \"Jerry's\">") == "&lt;Tom &amp; &quot;Jerry&apos;s&quot;&gt;"


def test_normalize_call_result_prefers_provider_call_id_then_sid():
    assert normalize_call_result({"sid": "CA1", "status": "answered"}).provider_call_id == "CA1"
    result = normalize_call_result({"provider_call_id": " x ", "status": CallStatus.COMPLETED})
    assert result.provider_call_id == "x"
    assert result.status == "COMPLETED"
    assert normalize_call_result(None).status == "INITIATED"


@pytest.mark.parametrize(
    ("adapter_cls", "vendor_status", "expected"),
    [
        (TwilioAdapter, "in-progress", CallStatus.ANSWERED),
        (TwilioAdapter, "Canceled", CallStatus.NO_ANSWER),
        (PlivoAdapter, "cancelled", CallStatus.NO_ANSWER),
        (VonageAdapter, "rejected", CallStatus.NO_ANSWER),
        (VonageAdapter, "started", CallStatus.INITIATED),
        (VonageAdapter, "failed", CallStatus.FAILED),
        (TwilioAdapter, "something-new", CallStatus.INITIATED),
        (PlivoAdapter, None, CallStatus.INITIATED),
    ],
)
def test_status_mapping(adapter_cls, vendor_status, expected):
    adapter = adapter_cls(client=httpx.AsyncClient(), settings=_settings())
    assert adapter.map_status(vendor_status) is expected


def test_twilio_mock_mode_without_credentials():
    adapter = TwilioAdapter(client=httpx.AsyncClient(), settings=_settings())
    config = ProviderConfig(id="t", name="Twilio", type="TWILIO")

    result = asyncio.run(adapter.run(TelephonyOperation.INITIATE_CALL, {"to": "+15550001111"}, config))

    assert result.provider_call_id.startswith("mock-")
    assert result.status == "INITIATED"
    assert result.provider_label == "twilio-mock"
    assert "mock mode" in result.metadata["reason"]


def test_twilio_places_call_with_inline_twiml():
    captured: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["auth"] = request.headers["authorization"]
        captured["form"] = parse_qs(request.content.decode())
        return httpx.Response(201, json={"sid": "CA123", "status": "queued"})

    config = ProviderConfig(
        id="t",
        name="Twilio",
        type="TWILIO",
        api_key="token",
        metadata={"accountSid": "AC1", "fromNumber": "+15550002222"},
    )
    payload = {
        "to": "9876543210",
        "script": "Hi <there>",
        "status_callback_url": "https://crm.example/status",
    }

    result = _run_with_transport(
        handler,
        lambda client: TwilioAdapter(client=client, settings=_settings()),
        TelephonyOperation.INITIATE_CALL,
        payload,
        config,
    )

    assert captured["url"] == "https://api.twilio.com/2010-04-01/Accounts/AC1/Calls.json"
    assert captured["auth"].startswith("Basic ")
    form = captured["form"]
    assert form["To"] == ["+919876543210"]
    assert form["Twiml"] == ['<Response><Say voice="Polly.Joanna">Hi &lt;there&gt;</Say></Response>']
    assert form["StatusCallbackEvent"] == ["initiated", "ringing", "answered", "completed"]
    assert result.provider_call_id == "CA123"
    assert result.status == "INITIATED"
    assert result.provider_label == "twilio"


def test_twilio_rejects_non_e164_numbers():
    config = ProviderConfig(
        id="t",
        name="Twilio",
        type="TWILIO",
        api_key="token",
        metadata={"accountSid": "AC1", "fromNumber": "+15550002222"},
    )
    adapter = TwilioAdapter(client=httpx.AsyncClient(), settings=_settings())

    with pytest.raises(TelephonyError, match="E.164"):
        asyncio.run(adapter.run(TelephonyOperation.INITIATE_CALL, {"to": "12345"}, config))


def test_speech_to_text_and_unknown_operation_unsupported():
    adapter = PlivoAdapter(client=httpx.AsyncClient(), settings=_settings())
    config = ProviderConfig(id="p", name="Plivo", type="PLIVO")

    with pytest.raises(UnsupportedOperationError, match="speech-to-text"):
        asyncio.run(adapter.run(TelephonyOperation.SPEECH_TO_TEXT, {}, config))
    with pytest.raises(UnsupportedOperationError, match="Unsupported telephony operation: DIAL"):
        asyncio.run(adapter.run("DIAL", {}, config))


def test_text_to_speech_markup():
    config = ProviderConfig(id="x", name="X", type="X")
    settings = _settings()

    async def _run():
        client = httpx.AsyncClient()
        twilio = await TwilioAdapter(client, settings).run("TEXT_TO_SPEECH", {"text": "Hi"}, config)
        plivo = await PlivoAdapter(client, settings).run("TEXT_TO_SPEECH", {"text": "Hi"}, config)
        vonage = await VonageAdapter(client, settings).run("TEXT_TO_SPEECH", {"text": " Hi "}, config)
        await client.aclose()
        return twilio, plivo, vonage

    twilio, plivo, vonage = asyncio.run(_run())

    assert twilio == {"ssml": '<Response><Say voice="Polly.Joanna">Hi</Say></Response>'}
    assert plivo["xml"].endswith("<Response><Speak>Hi</Speak></Response>")
    assert vonage == {"ncco": [{"action": "talk", "text": "Hi"}]}


def test_plivo_requires_callback_url():
    config = ProviderConfig(
        id="p",
        name="Plivo",
        type="PLIVO",
        api_key=json.dumps({"authId": "MA1", "authToken": "tok"}),
        metadata={"fromNumber": "+15550003333"},
    )
    adapter = PlivoAdapter(client=httpx.AsyncClient(), settings=_settings())

    with pytest.raises(TelephonyError, match="callback_url"):
        asyncio.run(adapter.run(TelephonyOperation.INITIATE_CALL, {"to": "+15550004444"}, config))


def test_plivo_missing_credentials():
    adapter = PlivoAdapter(client=httpx.AsyncClient(), settings=_settings())
    config = ProviderConfig(id="p", name="Plivo", type="PLIVO")

    with pytest.raises(TelephonyNotConfiguredError, match="Plivo requires authId"):
        asyncio.run(adapter.run(TelephonyOperation.INITIATE_CALL, {"to": "+15550004444"}, config))


def test_plivo_places_call():
    captured: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["body"] = json.loads(request.content)
        return httpx.Response(201, json={"request_uuid": "req-9", "message": "call fired"})

    config = ProviderConfig(
        id="p",
        name="Plivo",
        type="PLIVO",
        metadata={"authId": "MA1", "authToken": "tok", "fromNumber": "+15550003333"},
    )
    payload = {"to": "+15550004444", "callback_url": "https://crm.example/answer"}

    result = _run_with_transport(
        handler,
        lambda client: PlivoAdapter(client=client, settings=_settings()),
        TelephonyOperation.INITIATE_CALL,
        payload,
        config,
    )

    assert captured["url"] == "https://api.plivo.com/v1/Account/MA1/Call/"
    assert captured["body"]["answer_url"] == "https://crm.example/answer"
    assert "hangup_url" not in captured["body"]
    assert result.provider_call_id == "req-9"
    assert result.provider_label == "plivo"


def test_vonage_lists_missing_config():
    adapter = VonageAdapter(client=httpx.AsyncClient(), settings=_settings())
    config = ProviderConfig(id="v", name="Vonage", type="VONAGE", metadata={"fromNumber": "+15550001"})

    with pytest.raises(TelephonyNotConfiguredError) as excinfo:
        asyncio.run(adapter.run(TelephonyOperation.INITIATE_CALL, {"to": "+15550004444"}, config))

    assert "applicationId, privateKey" in str(excinfo.value)


def test_vonage_places_call_with_signed_jwt():
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.TraditionalOpenSSL,
        serialization.NoEncryption(),
    ).decode()
    captured: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["token"] = request.headers["authorization"].removeprefix("Bearer ")
        captured["body"] = json.loads(request.content)
        return httpx.Response(201, json={"uuid": "call-uuid", "status": "started"})

    config = ProviderConfig(
        id="v",
        name="Vonage",
        type="VONAGE",
        metadata={"application_id": "app-1", "from": "+15550001111"},
    )
    payload = {"to": "+15550004444", "script": "Hello there"}

    result = _run_with_transport(
        handler,
        lambda client: VonageAdapter(
            client=client, settings=_settings(vonage_private_key=private_pem)
        ),
        TelephonyOperation.INITIATE_CALL,
        payload,
        config,
    )

    claims = jwt.decode(captured["token"], key.public_key(), algorithms=["RS256"])
    assert claims["application_id"] == "app-1"
    assert claims["exp"] - claims["iat"] == 300
    assert claims["jti"]
    assert captured["url"] == "https://api.nexmo.com/v1/calls"
    assert captured["body"]["to"] == [{"type": "phone", "number": "15550004444"}]
    assert captured["body"]["answer_url"] == ["https://example.invalid/ncco?text=Hello%20there"]
    assert "event_url" not in captured["body"]
    assert result.provider_call_id == "call-uuid"
    assert result.provider_label == "vonage"


def test_vonage_invalid_private_key():
    adapter = VonageAdapter(client=httpx.AsyncClient(), settings=_settings())
    config = ProviderConfig(
        id="v",
        name="Vonage",
        type="VONAGE",
        metadata={"applicationId": "app-1", "privateKey": "not-a-key"},
    )

    with pytest.raises(TelephonyNotConfiguredError, match="private key format is invalid"):
        asyncio.run(adapter.run(TelephonyOperation.CHECK_CONNECTION, {}, config))


def test_check_connection_reports_upstream_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, text="bad creds")

    config = ProviderConfig(
        id="t", name="Twilio", type="TWILIO", api_key="tok", metadata={"accountSid": "AC1"}
    )

    with pytest.raises(TelephonyError) as excinfo:
        _run_with_transport(
            handler,
            lambda client: TwilioAdapter(client=client, settings=_settings()),
            TelephonyOperation.CHECK_CONNECTION,
            {},
            config,
        )

    assert excinfo.value.status_code == 401
    assert "bad creds" in str(excinfo.value)
