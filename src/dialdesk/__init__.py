"""Pluggable AI engine and telephony adapter registries for the calling CRM."""

from .registry import NotRegisteredError, ProviderRegistry

__all__ = ["NotRegisteredError", "ProviderRegistry"]

__version__ = "0.1.0"
