"""
Random code and id generators - pure, side-effect-free functions.
"""

from __future__ import annotations

import secrets

VERIFICATION_CODE_MIN = 100000
VERIFICATION_CODE_MAX = 999999


def generate_verification_code() -> str:
    """Generate a 6-digit numeric verification code.

    Drawn uniformly from ``[100000, 999999]`` so the code never has a leading
    zero. No collision avoidance: two calls may return the same value.

    Returns:
        The code as a string of six decimal digits.
    """
    span = VERIFICATION_CODE_MAX - VERIFICATION_CODE_MIN + 1
    return str(VERIFICATION_CODE_MIN + secrets.randbelow(span))


def generate_queue_id(prefix: str = "ntf") -> str:
    """Generate an opaque id for a queued notification, e.g. ``ntf_3kq9...``."""
    return f"{prefix}_{secrets.token_hex(8)}"
