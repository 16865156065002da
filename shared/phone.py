"""
Phone number normalization for outbound SMS.

The heuristic assumes a single default country. Numbers from other countries
must already be supplied in E.164 form (with a leading ``+``); no further
international rules are applied.
"""

from __future__ import annotations

import re

_FORMATTING_CHARS = re.compile(r"[\s().\-]")


def normalize_phone_number(phone_number: str, country_code: str = "1") -> str:
    """Convert a user-supplied phone number to E.164 format.

    Rules, in order:

    - already starts with ``+`` → used as-is
    - exactly 10 digits → ``+{country_code}{digits}``
    - 11 digits starting with the country code → ``+{digits}``
    - anything else → ``+{country_code}{digits}``

    Spaces, dashes, dots and parentheses are stripped first.

    Args:
        phone_number: Raw number as typed by the user.
        country_code: Default country calling code, without ``+``.

    Returns:
        The number in E.164 format.

    Raises:
        ValueError: If the number is empty after stripping formatting.
    """
    cleaned = _FORMATTING_CHARS.sub("", phone_number or "")
    if not cleaned:
        raise ValueError("phone number is empty")

    if cleaned.startswith("+"):
        return cleaned
    if len(cleaned) == 10:
        return f"+{country_code}{cleaned}"
    if len(cleaned) == 11 and cleaned.startswith(country_code):
        return f"+{cleaned}"
    return f"+{country_code}{cleaned}"


def mask_phone_number(phone_number: str) -> str:
    """Mask all but the last four digits, for logs."""
    if len(phone_number) <= 4:
        return "****"
    return f"{'*' * (len(phone_number) - 4)}{phone_number[-4:]}"
