"""Phone number and markup helpers shared by telephony adapters."""

from __future__ import annotations

import re
from typing import Any
from xml.sax.saxutils import escape

import httpx

_NON_DIGITS = re.compile(r"\D")
_XML_ENTITIES = {'"': "&quot;", "'": "&apos;"}


def escape_xml(value: object) -> str:
    return escape(str(value or ""), _XML_ENTITIES)


def normalize_phone_number(value: object, default_country_code: str = "+91") -> str:
    """Best-effort E.164 normalization.

    Bare 10-digit numbers get ``default_country_code``; longer digit strings are
    assumed to already include a country code.
    """

    raw = str(value or "").strip()
    if not raw:
        return ""

    if raw.startswith("+"):
        return f"+{_NON_DIGITS.sub('', raw[1:])}"

    digits = _NON_DIGITS.sub("", raw)
    if len(digits) == 10:
        return f"{default_country_code}{digits}"
    if len(digits) > 10:
        return f"+{digits}"
    return raw


def normalize_e164_digits(value: object, default_country_code: str = "+91") -> str:
    return normalize_phone_number(value, default_country_code).removeprefix("+")


def is_e164(number: str) -> bool:
    return number.startswith("+") and len(number) > 1


def response_json(response: httpx.Response) -> dict[str, Any]:
    """Decode a JSON object body, returning ``{}`` for anything else."""

    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}
