"""Vonage Voice API adapter authenticated with application JWTs."""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

import httpx
import jwt

from ..credentials import first_non_empty, parse_json_safe, sign_rs256_jwt
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
from .utils import normalize_e164_digits, response_json

VONAGE_API_BASE = "https://api.nexmo.com"
VONAGE_JWT_TTL_SECONDS = 300
DEFAULT_SCRIPT = "Hello from CRM telephony adapter."


class VonageAdapter(BaseTelephonyAdapter):
    name = "vonage-telephony-adapter"
    status_table = build_status_table(
        INITIATED=("started", "ringing", "initiated"),
        ANSWERED=("answered", "in-progress"),
        COMPLETED=("completed",),
        NO_ANSWER=("timeout", "busy", "unanswered", "rejected"),
        FAILED=("failed",),
    )

    def __init__(self, client: httpx.AsyncClient, settings: Settings) -> None:
        self._client = client
        self._settings = settings

    def credentials(self, config: ProviderConfig) -> dict[str, str]:
        settings = self._settings
        metadata = config.metadata or {}
        key_json = parse_json_safe(config.api_key) or {}

        def pick(*keys: str, fallback: Any = None) -> str:
            values = [metadata.get(key) for key in keys] + [key_json.get(key) for key in keys]
            return first_non_empty(*values, fallback)

        return {
            "application_id": pick(
                "applicationId", "application_id", "appId", fallback=settings.vonage_application_id
            ),
            "private_key": pick(
                "privateKey", "private_key", "key", fallback=settings.vonage_private_key
            ),
            "from_number": pick(
                "fromNumber", "from", "from_number", "callerId", fallback=settings.vonage_from_number
            ),
            "api_base": first_non_empty(
                pick("apiBase", "baseUrl"), config.endpoint, VONAGE_API_BASE
            ),
        }

    def token(self, creds: dict[str, str]) -> str:
        try:
            return sign_rs256_jwt(
                {"application_id": creds["application_id"]},
                creds["private_key"],
                ttl_seconds=VONAGE_JWT_TTL_SECONDS,
                with_jti=True,
            )
        except (jwt.PyJWTError, ValueError, TypeError) as exc:
            raise TelephonyNotConfiguredError(
                "Vonage private key format is invalid. Set VONAGE_PRIVATE_KEY as PEM text, "
                "escaped PEM (\\n), base64 PEM, or a readable .key/.pem file path."
            ) from exc

    async def initiate_call(self, request: CallRequest, config: ProviderConfig) -> dict[str, Any]:
        creds = self.credentials(config)
        missing = [
            label
            for label, key in (
                ("applicationId", "application_id"),
                ("privateKey", "private_key"),
                ("fromNumber", "from_number"),
            )
            if not creds[key]
        ]
        if missing:
            raise TelephonyNotConfiguredError(
                f"Vonage is missing required config: {', '.join(missing)}. "
                "Configure provider metadata or env vars."
            )

        country_code = self._settings.default_country_code
        to_number = normalize_e164_digits(request.to, country_code)
        from_number = normalize_e164_digits(creds["from_number"], country_code)
        if not to_number or not from_number:
            raise TelephonyError("Vonage requires valid E.164 source and destination numbers.")

        answer_url = request.vonage_answer_url or request.callback_url
        event_url = request.vonage_event_url or request.status_callback_url
        if not answer_url:
            script = quote(request.script or DEFAULT_SCRIPT, safe="")
            answer_url = f"https://example.invalid/ncco?text={script}"

        body: dict[str, Any] = {
            "to": [{"type": "phone", "number": to_number}],
            "from": {"type": "phone", "number": from_number},
            "answer_method": "POST",
            "answer_url": [answer_url],
        }
        if event_url:
            body["event_method"] = "POST"
            body["event_url"] = [event_url]
        if request.vonage_fallback_url:
            body["fallback_answer_method"] = "POST"
            body["fallback_answer_url"] = [request.vonage_fallback_url]

        response = await self._client.post(
            f"{creds['api_base']}/v1/calls",
            json=body,
            headers={"Authorization": f"Bearer {self.token(creds)}"},
            timeout=config.timeout_ms / 1000,
        )
        data = response_json(response)
        if response.status_code >= 400:
            raise TelephonyError(
                str(data.get("title") or data.get("detail") or "Vonage call initiation failed."),
                status_code=response.status_code,
            )

        return {
            "provider_call_id": str(data.get("uuid") or ""),
            "status": CallStatus.INITIATED,
            "provider_label": "vonage",
            "metadata": {"response": data},
        }

    async def text_to_speech(self, payload: dict[str, Any], config: ProviderConfig) -> dict[str, Any]:
        return {"ncco": [{"action": "talk", "text": str(payload.get("text") or "").strip()}]}

    async def check_connection(self, config: ProviderConfig) -> dict[str, Any]:
        creds = self.credentials(config)
        if not creds["application_id"] or not creds["private_key"]:
            raise TelephonyNotConfiguredError("Vonage applicationId/privateKey missing.")

        response = await self._client.get(
            f"{creds['api_base']}/v2/applications/{creds['application_id']}",
            headers={"Authorization": f"Bearer {self.token(creds)}"},
            timeout=config.timeout_ms / 1000,
        )
        if response.status_code >= 400:
            raise TelephonyError(
                f"Vonage auth check failed ({response.status_code}): {truncate(response.text or '')}",
                status_code=response.status_code,
            )
        return {"ok": True, "message": "Vonage credentials verified."}
