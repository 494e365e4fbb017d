"""Twilio adapter using the Programmable Voice REST API."""

from __future__ import annotations

import time
from typing import Any

import httpx

from ..credentials import first_non_empty
from ..engines.base import truncate
from ..models import ProviderConfig
from ..settings import Settings
from .base import (
    BaseTelephonyAdapter,
    CallRequest,
    CallStatus,
    TelephonyError,
    TelephonyNotConfiguredError,
    build_status_table,
)
from .utils import escape_xml, is_e164, normalize_phone_number, response_json

TWILIO_API_BASE = "https://api.twilio.com/2010-04-01"
STATUS_CALLBACK_EVENTS = ("initiated", "ringing", "answered", "completed")
DEFAULT_SCRIPT = "Hello from CRM telephony adapter."


class TwilioAdapter(BaseTelephonyAdapter):
    name = "twilio-telephony-adapter"
    status_table = build_status_table(
        INITIATED=("queued", "ringing", "initiated"),
        ANSWERED=("in-progress", "answered"),
        COMPLETED=("completed",),
        NO_ANSWER=("no-answer", "busy", "canceled"),
        FAILED=("failed",),
    )

    def __init__(self, client: httpx.AsyncClient, settings: Settings) -> None:
        self._client = client
        self._settings = settings

    def credentials(self, config: ProviderConfig) -> dict[str, str]:
        settings = self._settings
        return {
            "account_sid": first_non_empty(config.meta("accountSid"), settings.twilio_account_sid),
            "auth_token": first_non_empty(
                config.meta("authToken"), config.api_key, settings.twilio_auth_token
            ),
            "from_number": first_non_empty(config.meta("fromNumber"), settings.twilio_from_number),
        }

    async def initiate_call(self, request: CallRequest, config: ProviderConfig) -> dict[str, Any]:
        creds = self.credentials(config)
        if not all(creds.values()):
            return {
                "provider_call_id": f"mock-{int(time.time() * 1000)}",
                "status": CallStatus.INITIATED,
                "provider_label": "twilio-mock",
                "metadata": {"reason": "Twilio credentials missing. Running in mock mode."},
            }

        country_code = self._settings.default_country_code
        to_number = normalize_phone_number(request.to, country_code)
        from_number = normalize_phone_number(creds["from_number"], country_code)
        if not is_e164(to_number) or not is_e164(from_number):
            raise TelephonyError("Twilio requires E.164 phone format. Use +<countrycode><number>.")

        form: dict[str, Any] = {"To": to_number, "From": from_number}
        if request.callback_url:
            form["Url"] = request.callback_url
            form["Method"] = "POST"
        else:
            form["Twiml"] = say_twiml(request.script or DEFAULT_SCRIPT)

        if request.status_callback_url:
            form["StatusCallback"] = request.status_callback_url
            form["StatusCallbackEvent"] = list(STATUS_CALLBACK_EVENTS)
            form["StatusCallbackMethod"] = "POST"

        response = await self._client.post(
            f"{TWILIO_API_BASE}/Accounts/{creds['account_sid']}/Calls.json",
            data=form,
            auth=(creds["account_sid"], creds["auth_token"]),
            timeout=config.timeout_ms / 1000,
        )
        data = response_json(response)
        if response.status_code >= 400:
            raise TelephonyError(
                f"Twilio call initiation failed ({response.status_code}): "
                f"{data.get('message') or truncate(response.text or '')}",
                status_code=response.status_code,
            )

        return {
            "provider_call_id": data.get("sid", ""),
            "status": self.map_status(data.get("status")),
            "provider_label": "twilio",
        }

    async def text_to_speech(self, payload: dict[str, Any], config: ProviderConfig) -> dict[str, Any]:
        return {"ssml": say_twiml(payload.get("text") or "")}

    async def check_connection(self, config: ProviderConfig) -> dict[str, Any]:
        creds = self.credentials(config)
        if not creds["account_sid"] or not creds["auth_token"]:
            raise TelephonyNotConfiguredError("Twilio accountSid/authToken missing.")

        response = await self._client.get(
            f"{TWILIO_API_BASE}/Accounts/{creds['account_sid']}.json",
            auth=(creds["account_sid"], creds["auth_token"]),
            timeout=config.timeout_ms / 1000,
        )
        if response.status_code >= 400:
            raise TelephonyError(
                f"Twilio auth check failed ({response.status_code}): {truncate(response.text or '')}",
                status_code=response.status_code,
            )
        return {"ok": True, "message": "Twilio credentials verified."}


def say_twiml(text: str) -> str:
    return f'<Response><Say voice="Polly.Joanna">{escape_xml(text)}</Say></Response>'

