"""OpenAI engine adapter backed by the Responses API."""

from __future__ import annotations

import json
from typing import Any

import httpx

from ..models import ProviderConfig
from ..settings import Settings
from .base import AITask, BaseEngine, EngineError, EngineInput, EngineNotConfiguredError, truncate

OPENAI_RESPONSES_URL = "https://api.openai.com/v1/responses"

CLOSING_REPLY = "Thank you. Our advisor will contact you soon."

TURN_PROMPT = """You are an AI loan calling assistant in a live phone call.
Customer profile: {customer}
Conversation transcript so far:
{transcript}
Current turn index: {turn}

Return ONLY valid JSON:
{{"reply":"<short natural spoken response under 35 words>","should_end":<true|false>}}

Rules:
- Sound polite, concise, and sales-oriented.
- Ask one focused qualification question at a time.
- If enough qualification is captured or customer is busy/not interested, set should_end=true.
- Never include markdown or extra text."""


class OpenAIEngine(BaseEngine):
    """Loan-call engine; falls back to canned responses when no key is configured."""

    name = "openai-engine"

    def __init__(self, client: httpx.AsyncClient, settings: Settings) -> None:
        super().__init__()
        self._client = client
        self._settings = settings

    async def invoke(
        self, task: AITask, engine_input: EngineInput, config: ProviderConfig
    ) -> dict[str, Any]:
        api_key = self._api_key(config)
        customer = engine_input.customer or {}

        if task is AITask.CALL_SCRIPT:
            if not api_key:
                return {"script": fallback_script(customer)}
            prompt = (
                "You are a loan CRM voice assistant. Produce a concise call script (max 120 "
                "words) for this customer profile in conversational English. Include "
                "qualification questions and next-step ask. "
                f"Customer: {json.dumps(customer)}"
            )
            output_text = await self._respond(prompt, config, api_key)
            return {"script": output_text or fallback_script(customer)}

        if task is AITask.CALL_SUMMARY:
            if not api_key:
                return {
                    "summary": "Call transcript captured. Manual review required.",
                    "intent": "UNKNOWN",
                    "next_action": "Follow up by sales team.",
                }
            prompt = (
                "Analyze this loan sales call transcript and return JSON with keys summary, "
                f"intent, next_action. Transcript: {engine_input.transcript}"
            )
            output_text = await self._respond(prompt, config, api_key)
            parsed = _parse_json_object(output_text)
            if parsed is not None:
                return parsed
            return {
                "summary": output_text or "Transcript processed.",
                "intent": "UNKNOWN",
                "next_action": "Review manually.",
            }

        turn = engine_input.turn
        if not api_key:
            return fallback_turn(turn)

        prompt = TURN_PROMPT.format(
            customer=json.dumps(customer),
            transcript=engine_input.transcript or "(no transcript)",
            turn=turn,
        )
        output_text = await self._respond(prompt, config, api_key)
        parsed = _parse_json_object(output_text)
        if parsed is not None:
            return {
                "reply": parsed.get("reply") or CLOSING_REPLY,
                "should_end": bool(parsed.get("should_end")),
            }
        return {"reply": output_text or CLOSING_REPLY, "should_end": turn >= 2}

    async def ping(self, config: ProviderConfig) -> str:
        """Send a minimal request and return the model's text."""

        api_key = self._api_key(config)
        if not api_key:
            raise EngineNotConfiguredError(
                "OpenAI API key is missing. Set provider api_key or OPENAI_API_KEY."
            )
        return await self._respond("Reply with exactly: OK", config, api_key)

    def _api_key(self, config: ProviderConfig) -> str:
        return str(config.api_key or self._settings.openai_api_key or "").strip()

    async def _respond(self, prompt: str, config: ProviderConfig, api_key: str) -> str:
        model = str(config.model or self._settings.openai_model).strip() or self._settings.openai_model
        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

        try:
            response = await self._client.post(
                OPENAI_RESPONSES_URL,
                json={"model": model, "input": prompt},
                headers=headers,
                timeout=config.timeout_ms / 1000,
            )
        except httpx.TimeoutException as exc:
            raise EngineError(f"OpenAI request timed out: {exc}", status_code=504) from exc
        except httpx.RequestError as exc:
            raise EngineError(f"OpenAI request failed: {exc}", status_code=502) from exc

        if response.status_code >= 400:
            raise EngineError(
                f"OpenAI error {response.status_code}: {truncate(response.text or '')}",
                status_code=response.status_code,
            )

        return extract_output_text(response.json()).strip()


def fallback_script(customer: dict[str, Any]) -> str:
    amount = f"for around ₹{customer['loan_amount']}" if customer.get("loan_amount") else ""
    loan_type = f"{customer['loan_type']} loan" if customer.get("loan_type") else "loan"
    first_name = customer.get("first_name") or "there"

    return " ".join(
        [
            f"Hello {first_name}, this is the loan assistance desk.",
            f"We are reaching out regarding your interest in a {loan_type} {amount}".rstrip() + ".",
            "Are you currently looking to apply this week?",
            "Could you confirm your monthly income range and preferred EMI?",
            "Would you like a call from our loan officer today?",
        ]
    )


def fallback_turn(turn: int) -> dict[str, Any]:
    if turn >= 2:
        return {
            "reply": (
                "Thank you for sharing. Our loan advisor will call you shortly with the best "
                "offer and next steps."
            ),
            "should_end": True,
        }
    if turn == 1:
        return {
            "reply": (
                "Thank you. Could you confirm your monthly income and preferred EMI range so "
                "we can check eligibility?"
            ),
            "should_end": False,
        }
    return {
        "reply": "Are you planning to apply this week, and what loan amount are you targeting?",
        "should_end": False,
    }


def extract_output_text(payload: dict[str, Any]) -> str:
    output_text_field = payload.get("output_text")
    if isinstance(output_text_field, str):
        return output_text_field
    if isinstance(output_text_field, list):
        return "".join(str(chunk) for chunk in output_text_field)

    collected: list[str] = []
    for item in payload.get("output", []):
        if not isinstance(item, dict):
            continue
        item_type = item.get("type")
        if item_type == "output_text":
            collected.append(item.get("text", ""))
        elif item_type == "message":
            for content in item.get("content", []):
                if isinstance(content, dict) and content.get("type") in {"output_text", "text"}:
                    collected.append(content.get("text", ""))
    return "".join(collected)


def _parse_json_object(text: str) -> dict[str, Any] | None:
    try:
        parsed = json.loads(text)
    except (TypeError, ValueError):
        return None
    return parsed if isinstance(parsed, dict) else None
