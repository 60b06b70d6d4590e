"""Shared utilities used across the intake pipeline."""

import re


def normalize_phone(value: str) -> str:
    """Normalize a phone number by stripping everything except digits and a leading +.

    Examples:
        >>> normalize_phone("07700 900 123")
        '07700900123'
        >>> normalize_phone("+44 (7700) 900-123")
        '+447700900123'
    """
    value = value.strip()
    if value.startswith("+"):
        return "+" + re.sub(r"[^\d]", "", value[1:])
    return re.sub(r"[^\d]", "", value)


def short_reference(record_id: str) -> str:
    """Caller-facing reference number derived from a record id."""
    return record_id.replace("-", "")[:8].upper()
