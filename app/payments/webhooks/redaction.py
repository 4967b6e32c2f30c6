"""Masking of sensitive values in stored webhook payloads."""

from __future__ import annotations

import re
from typing import Any

REDACTED = "[redacted]"

SENSITIVE_KEYS = frozenset(
    {"signature", "token", "email", "phone", "billing", "card", "pan", "cvv", "iban"}
)

_CAMEL_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")
_SEPARATORS = re.compile(r"[^a-z0-9]+")


def _key_tokens(key: str) -> list[str]:
    # "billingAddress" -> ["billing", "address"], "card_number" -> ["card", "number"]
    return [t for t in _SEPARATORS.split(_CAMEL_BOUNDARY.sub(r"\1_\2", key).lower()) if t]


def is_sensitive(key: Any) -> bool:
    if not isinstance(key, str):
        return False
    return any(token in SENSITIVE_KEYS for token in _key_tokens(key))


def redact(value: Any) -> Any:
    """
    Return a copy of ``value`` with sensitive entries replaced.

    Works recursively through dicts and lists. Whole sub-trees under a
    sensitive key (e.g. ``billing``) are replaced, not just leaves.
    """
    if isinstance(value, dict):
        return {
            key: REDACTED if is_sensitive(key) else redact(item)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [redact(item) for item in value]
    return value
