"""Generators for OTP codes and session identifiers."""

import secrets
import string

OTP_MIN = 100_000
OTP_MAX = 999_999

_BASE36_ALPHABET = string.digits + string.ascii_lowercase
_SESSION_FRAGMENT_LENGTH = 13


def generate_code() -> str:
    """Return a 6-digit code, uniform over 100000–999999 inclusive."""
    return str(OTP_MIN + secrets.randbelow(OTP_MAX - OTP_MIN + 1))


def _base36_fragment(length: int = _SESSION_FRAGMENT_LENGTH) -> str:
    return "".join(secrets.choice(_BASE36_ALPHABET) for _ in range(length))


def generate_session_id() -> str:
    """Return an opaque session token made of two independent base-36 fragments."""
    return _base36_fragment() + _base36_fragment()
