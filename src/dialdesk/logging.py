"""Structlog-based logging helpers."""

from __future__ import annotations

import logging
import re
import sys
from typing import Any

import structlog

_NON_DIGITS = re.compile(r"\D")


def configure_logging(level: int = logging.INFO) -> None:
    """Configure structlog for JSON-friendly, trace-aware logs."""

    timestamper = structlog.processors.TimeStamper(fmt="iso", utc=True)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        timestamper,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.EventRenamer("message"),
    ]

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
    )

    structlog.configure(
        processors=shared_processors
        + [
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def bind_trace(**kwargs: Any) -> None:
    """Attach contextual trace metadata to the current context."""

    structlog.contextvars.bind_contextvars(**kwargs)


def redact(value: Any) -> str:
    raw = str(value or "").strip()
    if not raw:
        return ""
    if len(raw) <= 8:
        return "***"
    return f"{raw[:4]}***{raw[-2:]}"


def redacted_phone(phone: Any) -> str:
    """Keep only the last four digits of a phone number."""

    raw = str(phone or "").strip()
    if not raw:
        return ""
    digits = _NON_DIGITS.sub("", raw)
    if not digits:
        return redact(raw)
    return f"***{digits[-4:]}"


def redact_provider_secrets(config: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of a provider config dict that is safe to log."""

    metadata = dict(config.get("metadata") or {})
    for key in ("authToken", "apiSecret"):
        if metadata.get(key):
            metadata[key] = redact(metadata[key])
    if metadata.get("privateKey"):
        metadata["privateKey"] = "***"

    redacted = dict(config)
    if redacted.get("api_key"):
        redacted["api_key"] = redact(redacted["api_key"])
    redacted["metadata"] = metadata
    return redacted
