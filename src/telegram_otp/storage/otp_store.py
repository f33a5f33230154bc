"""OTP store — keyed by Telegram chat id, with lazy expiry.

The store itself never expires anything: consumers (verification, the
sweeper, diagnostics) compare ``issued_at`` against the configured TTL
when they read a record.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime

from telegram_otp.models.records import OTPRecord

logger = logging.getLogger(__name__)


class OTPStore(ABC):
    """Abstract storage interface for OTP records.

    Implementations only need ``put`` / ``get`` / ``delete`` / ``scan``;
    the username + code lookup is built on top of ``scan``.
    """

    @abstractmethod
    def put(
        self, recipient_id: int, code: str, display_name: str, issued_at: datetime
    ) -> OTPRecord:
        """Store a record, unconditionally replacing any existing one for *recipient_id*."""

    @abstractmethod
    def get(self, recipient_id: int) -> OTPRecord | None:
        """Return the record for *recipient_id*, or ``None``."""

    @abstractmethod
    def delete(self, recipient_id: int) -> bool:
        """Remove the record if present. Returns ``True`` if something was removed."""

    @abstractmethod
    def scan(self) -> list[OTPRecord]:
        """Snapshot of every stored record, in insertion order."""

    @abstractmethod
    def __len__(self) -> int: ...

    def find_by_username_and_code(self, username: str, code: str) -> OTPRecord | None:
        """Return the first record whose display name matches *username*
        (case-insensitively) and whose code equals *code* exactly.

        Expired records are included; the caller decides what to do with them.
        """
        wanted = username.lower()
        for record in self.scan():
            if record.display_name.lower() == wanted and record.code == code:
                return record
        return None


class InMemoryOTPStore(OTPStore):
    """Dict-backed OTP store living in process memory."""

    def __init__(self) -> None:
        self._records: dict[int, OTPRecord] = {}

    def put(
        self, recipient_id: int, code: str, display_name: str, issued_at: datetime
    ) -> OTPRecord:
        record = OTPRecord(
            recipient_id=recipient_id,
            code=code,
            display_name=display_name,
            issued_at=issued_at,
        )
        if recipient_id in self._records:
            logger.debug("Replacing unconsumed OTP for chat %s", recipient_id)
        self._records[recipient_id] = record
        return record

    def get(self, recipient_id: int) -> OTPRecord | None:
        return self._records.get(recipient_id)

    def delete(self, recipient_id: int) -> bool:
        return self._records.pop(recipient_id, None) is not None

    def scan(self) -> list[OTPRecord]:
        return list(self._records.values())

    def __len__(self) -> int:
        return len(self._records)
