"""In-memory record types for OTPs and verified sessions."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta


def utc_now() -> datetime:
    """Default clock used by stores, the verification engine and the sweeper."""
    return datetime.now(UTC)


@dataclass
class OTPRecord:
    """A one-time passcode issued to a Telegram chat.

    At most one record exists per ``recipient_id``; issuing a new code for
    the same chat replaces the previous one.
    """

    recipient_id: int
    code: str
    display_name: str
    issued_at: datetime

    def age(self, now: datetime) -> timedelta:
        return now - self.issued_at

    def is_expired(self, now: datetime, ttl: timedelta) -> bool:
        """A record is expired once its age is strictly greater than *ttl*."""
        return self.age(now) > ttl


@dataclass(frozen=True)
class SessionRecord:
    """A verified web session. Write-once; lives for the process lifetime."""

    session_id: str
    recipient_id: int
    display_name: str
    verified: bool = True
    created_at: datetime = field(default_factory=utc_now)
