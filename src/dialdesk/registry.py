"""Provider registry for dependency injection."""

from __future__ import annotations

import threading
from collections.abc import Hashable
from typing import Generic, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class NotRegisteredError(LookupError):
    """Raised when no implementation is registered for a provider type."""

    def __init__(self, provider_type: Hashable, *, kind: str = "provider") -> None:
        super().__init__(f"No {kind} registered for provider type: {_label(provider_type)}")
        self.provider_type = provider_type
        self.kind = kind


class ProviderRegistry(Generic[T]):
    """Thread-safe in-memory registry mapping provider types to implementations.

    Keys are matched exactly. Registrations are never removed; registering the
    same provider type again replaces the previous implementation.
    """

    def __init__(self, kind: str = "provider") -> None:
        self.kind = kind
        self._entries: dict[Hashable, T] = {}
        self._lock = threading.RLock()

    def register(self, provider_type: Hashable, implementation: T) -> None:
        if provider_type is None or provider_type == "":
            raise ValueError(f"{self.kind} provider type must be a non-empty value")
        if implementation is None:
            raise ValueError(f"{self.kind} implementation for {_label(provider_type)} is None")

        with self._lock:
            replaced = provider_type in self._entries
            self._entries[provider_type] = implementation

        logger.debug(
            "registry.registered",
            kind=self.kind,
            provider_type=_label(provider_type),
            replaced=replaced,
        )

    def resolve(self, provider_type: Hashable) -> T:
        with self._lock:
            try:
                return self._entries[provider_type]
            except (KeyError, TypeError):
                raise NotRegisteredError(provider_type, kind=self.kind) from None

    def has(self, provider_type: Hashable) -> bool:
        with self._lock:
            try:
                return provider_type in self._entries
            except TypeError:
                return False

    def available_providers(self) -> list[str]:
        with self._lock:
            keys = list(self._entries)
        return sorted(_label(key) for key in keys)

    def __contains__(self, provider_type: object) -> bool:
        return self.has(provider_type)  # type: ignore[arg-type]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def _label(provider_type: object) -> str:
    value = getattr(provider_type, "value", provider_type)
    return str(value)
