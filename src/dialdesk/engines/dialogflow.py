"""Dialogflow ES engine adapter using service-account OAuth."""

from __future__ import annotations

import json
import time
from typing import Any
from urllib.parse import quote

import httpx
import jwt

from ..credentials import (
    normalize_private_key,
    parse_base64_json,
    parse_json_file,
    parse_json_safe,
    sign_rs256_jwt,
)
from ..models import ProviderConfig
from ..settings import Settings
from .base import AITask, BaseEngine, EngineError, EngineInput, EngineNotConfiguredError, truncate

GOOGLE_OAUTH_TOKEN_URL = "https://oauth2.googleapis.com/token"
DIALOGFLOW_SCOPE = "https://www.googleapis.com/auth/cloud-platform"
DIALOGFLOW_BASE_URL = "https://dialogflow.googleapis.com/v2/projects"
JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"
MAX_QUERY_CHARS = 240

CLOSING_PHRASES = (
    "thank you for your time",
    "we will call you back",
    "goodbye",
    "not interested",
)


class DialogflowEngine(BaseEngine):
    """Maps call tasks onto Dialogflow detectIntent text queries."""

    name = "dialogflow-engine"

    def __init__(self, client: httpx.AsyncClient, settings: Settings) -> None:
        super().__init__()
        self._client = client
        self._settings = settings

    async def invoke(
        self, task: AITask, engine_input: EngineInput, config: ProviderConfig
    ) -> dict[str, Any]:
        service_account = self.service_account(config)
        if not service_account:
            raise EngineNotConfiguredError(
                "Dialogflow credentials are missing. Configure service account JSON in provider "
                "api_key/metadata, DIALOGFLOW_SERVICE_ACCOUNT_JSON, "
                "DIALOGFLOW_SERVICE_ACCOUNT_BASE64, or DIALOGFLOW_CLIENT_EMAIL + "
                "DIALOGFLOW_PRIVATE_KEY."
            )

        project_id = self.project_id(config, service_account)
        if not project_id:
            raise EngineNotConfiguredError(
                "Dialogflow project ID is missing. Set metadata.projectId, model, or "
                "DIALOGFLOW_PROJECT_ID."
            )

        access_token = await self._access_token(service_account)
        session_id = (
            str((engine_input.customer or {}).get("id") or "").strip()
            or str(engine_input.metadata.get("sessionId") or "").strip()
            or f"crm-{int(time.time() * 1000)}"
        )
        language_code = (
            config.meta("languageCode") or self._settings.dialogflow_language_code or "en"
        )

        session = quote(session_id, safe="")
        url = f"{DIALOGFLOW_BASE_URL}/{project_id}/agent/sessions/{session}:detectIntent"
        body = {
            "queryInput": {
                "text": {
                    "text": build_query_text(task, engine_input),
                    "languageCode": language_code,
                }
            }
        }
        response = await self._post(
            "detectIntent",
            url,
            json=body,
            headers={"Authorization": f"Bearer {access_token}"},
            timeout=config.timeout_ms / 1000,
        )
        data = _json_or_empty(response)
        if response.status_code >= 400:
            error = data.get("error")
            message = error.get("message") if isinstance(error, dict) else None
            raise EngineError(
                message or f"Dialogflow detectIntent failed ({response.status_code}).",
                status_code=response.status_code,
            )

        query_result = data.get("queryResult") or {}
        fulfillment_text = str(query_result.get("fulfillmentText") or "").strip()
        intent_name = (query_result.get("intent") or {}).get("displayName") or "UNKNOWN"

        if task is AITask.CALL_SCRIPT:
            return {"script": fulfillment_text}
        if task is AITask.CALL_SUMMARY:
            return {
                "summary": fulfillment_text or "Transcript processed.",
                "intent": str(intent_name),
                "next_action": "Review and schedule follow-up based on intent.",
            }
        return turn_from_reply(fulfillment_text)

    def service_account(self, config: ProviderConfig) -> dict[str, Any] | None:
        settings = self._settings
        env_json = settings.dialogflow_service_account_json
        return (
            parse_json_safe(config.api_key)
            or parse_json_safe((config.metadata or {}).get("serviceAccountJson"))
            or parse_json_safe(env_json)
            or parse_json_file(env_json)
            or parse_base64_json(settings.dialogflow_service_account_base64)
            or self._discrete_service_account()
        )

    def project_id(self, config: ProviderConfig, service_account: dict[str, Any]) -> str:
        return (
            config.meta("projectId")
            or str(self._settings.dialogflow_project_id or "").strip()
            or str(service_account.get("project_id") or "").strip()
            or str(config.model or "").strip()
        )

    def _discrete_service_account(self) -> dict[str, Any] | None:
        client_email = str(self._settings.dialogflow_client_email or "").strip()
        private_key = normalize_private_key(self._settings.dialogflow_private_key)
        if not client_email or not private_key:
            return None

        account: dict[str, Any] = {"client_email": client_email, "private_key": private_key}
        project_id = str(self._settings.dialogflow_project_id or "").strip()
        if project_id:
            account["project_id"] = project_id
        return account

    async def _access_token(self, service_account: dict[str, Any]) -> str:
        client_email = service_account.get("client_email")
        private_key = service_account.get("private_key")
        if not client_email or not private_key:
            raise EngineNotConfiguredError(
                "Dialogflow service account is missing client_email/private_key."
            )

        try:
            assertion = sign_rs256_jwt(
                {"iss": client_email, "scope": DIALOGFLOW_SCOPE, "aud": GOOGLE_OAUTH_TOKEN_URL},
                private_key,
                ttl_seconds=3600,
            )
        except (jwt.PyJWTError, ValueError, TypeError) as exc:
            raise EngineNotConfiguredError(
                f"Dialogflow service account private key is invalid: {exc}"
            ) from exc

        response = await self._post(
            "auth",
            GOOGLE_OAUTH_TOKEN_URL,
            data={"grant_type": JWT_BEARER_GRANT, "assertion": assertion},
        )
        data = _json_or_empty(response)
        if response.status_code >= 400 or not data.get("access_token"):
            raise EngineError(
                str(data.get("error_description") or data.get("error") or "Dialogflow auth failed."),
                status_code=response.status_code,
            )
        return str(data["access_token"])

    async def _post(self, step: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._client.post(url, **kwargs)
        except httpx.TimeoutException as exc:
            raise EngineError(f"Dialogflow {step} timed out: {exc}", status_code=504) from exc
        except httpx.RequestError as exc:
            raise EngineError(f"Dialogflow {step} request failed: {exc}", status_code=502) from exc


def build_query_text(task: AITask, engine_input: EngineInput) -> str:
    customer = engine_input.customer or {}

    if task is AITask.CALL_SCRIPT:
        profile = {
            key: customer.get(key) or ""
            for key in ("first_name", "loan_type", "loan_amount", "monthly_income", "city")
        }
        text = f"Generate concise loan call script (max 120 words). Profile: {json.dumps(profile)}"
    elif task is AITask.CALL_SUMMARY:
        text = (
            "Analyze loan call transcript and return summary, intent, next_action: "
            f"{engine_input.transcript}"
        )
    else:
        profile = {key: customer.get(key) or "" for key in ("first_name", "loan_type", "loan_amount")}
        text = (
            f"Profile:{json.dumps(profile)} Conversation:{engine_input.transcript} "
            f"Turn:{engine_input.turn}. Reply briefly and say if should_end true/false."
        )
    return _clip(text, MAX_QUERY_CHARS)


def turn_from_reply(reply_text: str) -> dict[str, Any]:
    reply = str(reply_text or "Please continue.").strip()
    lower = reply.lower()
    return {"reply": reply, "should_end": any(phrase in lower for phrase in CLOSING_PHRASES)}


def _clip(text: str, limit: int) -> str:
    text = text.strip()
    if len(text) <= limit:
        return text
    return f"{text[: max(0, limit - 3)]}..."


def _json_or_empty(response: httpx.Response) -> dict[str, Any]:
    try:
        data = response.json()
    except ValueError:
        return {"error": {"message": truncate(response.text or "")}}
    return data if isinstance(data, dict) else {}
