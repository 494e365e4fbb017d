"""Telephony adapter exports."""

from .base import (
    BaseTelephonyAdapter,
    CallRequest,
    CallResult,
    CallStatus,
    TelephonyAdapter,
    TelephonyError,
    TelephonyNotConfiguredError,
    TelephonyOperation,
    UnsupportedOperationError,
    normalize_call_result,
)
from .plivo import PlivoAdapter
from .twilio import TwilioAdapter
from .vonage import VonageAdapter

__all__ = [
    "BaseTelephonyAdapter",
    "CallRequest",
    "CallResult",
    "CallStatus",
    "TelephonyAdapter",
    "TelephonyError",
    "TelephonyNotConfiguredError",
    "TelephonyOperation",
    "UnsupportedOperationError",
    "normalize_call_result",
    "PlivoAdapter",
    "TwilioAdapter",
    "VonageAdapter",
]
