"""Shared provider models."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class AIProviderType(str, Enum):
    """AI engine vendors that can back a provider config."""

    OPENAI = "OPENAI"
    DIALOGFLOW = "DIALOGFLOW"
    RASA = "RASA"
    GENERIC_HTTP = "GENERIC_HTTP"


class TelephonyProviderType(str, Enum):
    """Telephony vendors that can back a provider config."""

    TWILIO = "TWILIO"
    VONAGE = "VONAGE"
    PLIVO = "PLIVO"


class ProviderConfig(BaseModel):
    """A configured provider record, as stored by the admin surface."""

    id: str
    name: str
    type: str = Field(..., description="Provider type used as the registry key.")
    endpoint: str | None = None
    api_key: str | None = None
    model: str | None = None
    priority: int = 100
    enabled: bool = True
    is_active: bool = False
    timeout_ms: int = 12_000
    metadata: dict[str, Any] | None = None
    provider_label: str | None = Field(
        default=None, description="Human readable label used in adapter error messages."
    )

    def sanitized(self) -> dict[str, Any]:
        """Subset of fields that is safe to return to callers."""

        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "enabled": self.enabled,
            "is_active": self.is_active,
            "priority": self.priority,
        }

    def meta(self, *keys: str) -> str:
        """Return the first non-empty metadata value among ``keys``."""

        metadata = self.metadata or {}
        for key in keys:
            value = str(metadata.get(key) or "").strip()
            if value:
                return value
        return ""


class ProviderAttemptError(BaseModel):
    """A single failed provider attempt recorded during failover."""

    provider_id: str
    provider_name: str
    provider_type: str
    message: str


class ConnectivityResult(BaseModel):
    """Outcome of an admin connectivity check against one provider."""

    ok: bool
    provider: dict[str, Any]
    latency_ms: int = 0
    message: str | None = None
    preview: str | None = None
    error: str | None = None
