"""Plivo adapter."""

from __future__ import annotations

from typing import Any

import httpx

from ..credentials import first_non_empty, parse_json_safe
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

PLIVO_API_BASE = "https://api.plivo.com"


class PlivoAdapter(BaseTelephonyAdapter):
    name = "plivo-telephony-adapter"
    status_table = build_status_table(
        INITIATED=("queued", "ringing", "initiated"),
        ANSWERED=("in-progress", "answered"),
        COMPLETED=("completed",),
        NO_ANSWER=("busy", "no-answer", "cancelled"),
        FAILED=("failed",),
    )

    def __init__(self, client: httpx.AsyncClient, settings: Settings) -> None:
        self._client = client
        self._settings = settings

    def credentials(self, config: ProviderConfig) -> dict[str, str]:
        settings = self._settings
        # api_key may carry {"authId": ..., "authToken": ...} as JSON
        key_json = parse_json_safe(config.api_key) or {}
        return {
            "auth_id": first_non_empty(
                config.meta("authId"), key_json.get("authId"), settings.plivo_auth_id
            ),
            "auth_token": first_non_empty(
                config.meta("authToken"), key_json.get("authToken"), settings.plivo_auth_token
            ),
            "from_number": first_non_empty(config.meta("fromNumber"), settings.plivo_from_number),
            "api_base": first_non_empty(config.meta("apiBase"), config.endpoint, PLIVO_API_BASE),
        }

    async def initiate_call(self, request: CallRequest, config: ProviderConfig) -> dict[str, Any]:
        creds = self.credentials(config)
        if not creds["auth_id"] or not creds["auth_token"] or not creds["from_number"]:
            raise TelephonyNotConfiguredError(
                "Plivo requires authId, authToken, and fromNumber. Configure provider metadata "
                "or env vars."
            )

        country_code = self._settings.default_country_code
        to_number = normalize_phone_number(request.to, country_code)
        from_number = normalize_phone_number(creds["from_number"], country_code)
        if not is_e164(to_number) or not is_e164(from_number):
            raise TelephonyError("Plivo requires E.164 phone format. Use +<countrycode><number>.")

        if not request.callback_url:
            raise TelephonyError("Plivo requires callback_url (answer_url) for call flow control.")

        body: dict[str, Any] = {
            "from": from_number,
            "to": to_number,
            "answer_url": request.callback_url,
            "answer_method": "POST",
        }
        if request.status_callback_url:
            body.update(
                {
                    "hangup_url": request.status_callback_url,
                    "hangup_method": "POST",
                    "callback_url": request.status_callback_url,
                    "callback_method": "POST",
                }
            )

        response = await self._client.post(
            f"{creds['api_base']}/v1/Account/{creds['auth_id']}/Call/",
            json=body,
            auth=(creds["auth_id"], creds["auth_token"]),
            timeout=config.timeout_ms / 1000,
        )
        data = response_json(response)
        if response.status_code >= 400:
            raise TelephonyError(
                str(data.get("error") or data.get("message") or "Plivo call initiation failed."),
                status_code=response.status_code,
            )

        return {
            "provider_call_id": str(data.get("request_uuid") or data.get("message_uuid") or ""),
            "status": CallStatus.INITIATED,
            "provider_label": "plivo",
            "metadata": {"response": data},
        }

    async def text_to_speech(self, payload: dict[str, Any], config: ProviderConfig) -> dict[str, Any]:
        text = escape_xml(payload.get("text") or "")
        return {
            "xml": f'<?xml version="1.0" encoding="UTF-8"?><Response><Speak>{text}</Speak></Response>'
        }

    async def check_connection(self, config: ProviderConfig) -> dict[str, Any]:
        creds = self.credentials(config)
        if not creds["auth_id"] or not creds["auth_token"]:
            raise TelephonyNotConfiguredError("Plivo authId/authToken missing.")

        response = await self._client.get(
            f"{creds['api_base']}/v1/Account/{creds['auth_id']}/",
            auth=(creds["auth_id"], creds["auth_token"]),
            timeout=config.timeout_ms / 1000,
        )
        if response.status_code >= 400:
            raise TelephonyError(
                f"Plivo auth check failed ({response.status_code}): {truncate(response.text or '')}",
                status_code=response.status_code,
            )
        return {"ok": True, "message": "Plivo credentials verified."}
