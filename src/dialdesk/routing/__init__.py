"""Provider routing exports."""

from .ai import AIRouter, AIRoutingResult
from .base import RoutingError, RoutingResult, sort_providers
from .connectivity import check_ai_provider, check_telephony_provider
from .telephony import TelephonyRouter, TelephonyRoutingResult, prioritize_providers

__all__ = [
    "AIRouter",
    "AIRoutingResult",
    "RoutingError",
    "RoutingResult",
    "sort_providers",
    "check_ai_provider",
    "check_telephony_provider",
    "TelephonyRouter",
    "TelephonyRoutingResult",
    "prioritize_providers",
]
