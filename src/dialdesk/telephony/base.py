"""Telephony adapter abstraction."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from enum import Enum
from typing import Any, ClassVar, Protocol

from pydantic import BaseModel

from ..models import ProviderConfig


class TelephonyError(RuntimeError):
    """Raised on telephony-provider failures."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TelephonyNotConfiguredError(TelephonyError):
    """Raised when an adapter lacks the credentials to place or verify calls."""


class UnsupportedOperationError(TelephonyError):
    """Raised for operations an adapter does not expose."""


class TelephonyOperation(str, Enum):
    INITIATE_CALL = "INITIATE_CALL"
    SPEECH_TO_TEXT = "SPEECH_TO_TEXT"
    TEXT_TO_SPEECH = "TEXT_TO_SPEECH"
    CHECK_CONNECTION = "CHECK_CONNECTION"


class CallStatus(str, Enum):
    """Vendor-neutral call lifecycle states."""

    INITIATED = "INITIATED"
    ANSWERED = "ANSWERED"
    COMPLETED = "COMPLETED"
    NO_ANSWER = "NO_ANSWER"
    FAILED = "FAILED"


class CallRequest(BaseModel):
    """Outbound call parameters shared by every adapter."""

    to: str
    script: str | None = None
    callback_url: str | None = None
    status_callback_url: str | None = None
    preferred_provider_type: str | None = None
    vonage_answer_url: str | None = None
    vonage_event_url: str | None = None
    vonage_fallback_url: str | None = None


class CallResult(BaseModel):
    provider_call_id: str
    status: str = CallStatus.INITIATED.value
    provider_label: str = ""
    metadata: dict[str, Any] | None = None


def normalize_call_result(raw: Mapping[str, Any] | None) -> CallResult:
    raw = raw or {}
    provider_call_id = raw.get("provider_call_id") or raw.get("sid") or raw.get("call_id") or ""
    status = raw.get("status") or CallStatus.INITIATED
    return CallResult(
        provider_call_id=str(provider_call_id).strip(),
        status=str(getattr(status, "value", status)).strip().upper(),
        provider_label=str(raw.get("provider_label") or "").strip(),
        metadata=raw.get("metadata") or None,
    )


class TelephonyAdapter(Protocol):
    """Interface for telephony adapters."""

    name: str

    async def run(
        self,
        operation: TelephonyOperation | str,
        payload: Mapping[str, Any] | BaseModel | None,
        config: ProviderConfig,
    ) -> Any:
        """Dispatch one telephony operation."""

    def map_status(self, provider_status: str | None) -> CallStatus:
        """Translate a vendor call status."""


class BaseTelephonyAdapter(ABC):
    """Dispatches operations and maps vendor statuses through ``status_table``."""

    name: str
    # Vendor status (lowercase) -> CallStatus. Unknown statuses are INITIATED.
    status_table: ClassVar[dict[str, CallStatus]] = {}

    async def run(
        self,
        operation: TelephonyOperation | str,
        payload: Mapping[str, Any] | BaseModel | None,
        config: ProviderConfig,
    ) -> Any:
        try:
            operation = TelephonyOperation(operation)
        except ValueError:
            raise UnsupportedOperationError(
                f"Unsupported telephony operation: {operation}"
            ) from None

        if operation is TelephonyOperation.INITIATE_CALL:
            request = CallRequest.model_validate(_as_dict(payload))
            return normalize_call_result(await self.initiate_call(request, config))

        if operation is TelephonyOperation.SPEECH_TO_TEXT:
            return await self.speech_to_text(_as_dict(payload), config)

        if operation is TelephonyOperation.TEXT_TO_SPEECH:
            return await self.text_to_speech(_as_dict(payload), config)

        return await self.check_connection(config)

    def map_status(self, provider_status: str | None) -> CallStatus:
        status = str(provider_status or "").strip().lower()
        return self.status_table.get(status, CallStatus.INITIATED)

    @abstractmethod
    async def initiate_call(self, request: CallRequest, config: ProviderConfig) -> dict[str, Any]:
        """Place an outbound call and return the raw call result."""

    async def speech_to_text(self, payload: dict[str, Any], config: ProviderConfig) -> Any:
        raise UnsupportedOperationError(
            f"{self.name} does not expose direct speech-to-text API in this CRM abstraction."
        )

    @abstractmethod
    async def text_to_speech(self, payload: dict[str, Any], config: ProviderConfig) -> dict[str, Any]:
        """Render ``payload['text']`` as vendor call-control markup."""

    @abstractmethod
    async def check_connection(self, config: ProviderConfig) -> dict[str, Any]:
        """Verify the configured credentials against the vendor API."""


def _as_dict(payload: Mapping[str, Any] | BaseModel | None) -> dict[str, Any]:
    if payload is None:
        return {}
    if isinstance(payload, BaseModel):
        return payload.model_dump()
    return dict(payload)


def build_status_table(**groups: tuple[str, ...]) -> dict[str, CallStatus]:
    """Build a status table from ``CALL_STATUS=(vendor statuses...)`` groups."""

    table: dict[str, CallStatus] = {}
    for status_name, vendor_statuses in groups.items():
        for vendor_status in vendor_statuses:
            table[vendor_status] = CallStatus[status_name]
    return table
