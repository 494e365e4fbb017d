"""Helpers for decoding provider credentials and signing service JWTs."""

from __future__ import annotations

import base64
import binascii
import json
import time
import uuid
from pathlib import Path
from typing import Any

import jwt

PEM_MARKER = "-----BEGIN"
KEY_FILE_SUFFIXES = (".key", ".pem")


def parse_json_safe(value: Any) -> dict[str, Any] | None:
    """Parse a JSON object from a string; dicts pass through, anything else is None."""

    if not value:
        return None
    if isinstance(value, dict):
        return value

    raw = str(value).strip()
    if not raw:
        return None
    try:
        parsed = json.loads(raw)
    except ValueError:
        return None
    return parsed if isinstance(parsed, dict) else None


def parse_base64_json(value: Any) -> dict[str, Any] | None:
    raw = str(value or "").strip()
    if not raw:
        return None
    try:
        decoded = base64.b64decode(raw).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None
    return parse_json_safe(decoded)


def parse_json_file(value: Any) -> dict[str, Any] | None:
    """Load a JSON object when ``value`` looks like a path to a readable JSON file."""

    raw = str(value or "").strip()
    if not raw:
        return None

    looks_like_path = raw.endswith(".json") or raw.startswith(("./", "../", "/")) or "\\" in raw
    if not looks_like_path:
        return None

    path = Path(raw).expanduser()
    if not path.is_file():
        return None
    try:
        return parse_json_safe(path.read_text(encoding="utf-8"))
    except OSError:
        return None


def first_non_empty(*values: Any) -> str:
    for value in values:
        text = str(value or "").strip()
        if text:
            return text
    return ""


def normalize_private_key(value: Any) -> str:
    """Accept PEM text, escaped PEM, base64 PEM, or a .key/.pem file path."""

    raw = str(value or "").strip()
    if not raw:
        return ""

    if PEM_MARKER in raw:
        return raw.replace("\\n", "\n")

    if raw.endswith(KEY_FILE_SUFFIXES) or raw.startswith(("./", "../", "/")):
        path = Path(raw).expanduser()
        if path.is_file():
            return path.read_text(encoding="utf-8").strip()

    try:
        decoded = base64.b64decode(raw, validate=True).decode("utf-8").strip()
    except (binascii.Error, UnicodeDecodeError):
        return raw
    return decoded if PEM_MARKER in decoded else raw


def sign_rs256_jwt(
    claims: dict[str, Any],
    private_key: str,
    *,
    ttl_seconds: int,
    with_jti: bool = False,
) -> str:
    """Sign ``claims`` with ``iat``/``exp`` (and optionally ``jti``) added."""

    issued_at = int(time.time())
    payload = {**claims, "iat": issued_at, "exp": issued_at + ttl_seconds}
    if with_jti:
        payload["jti"] = str(uuid.uuid4())
    return jwt.encode(payload, normalize_private_key(private_key), algorithm="RS256")
