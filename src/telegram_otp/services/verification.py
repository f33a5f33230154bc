"""Verification engine — exchanges a (username, code) pair for a session."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from telegram_otp.models.records import OTPRecord, utc_now
from telegram_otp.services.telegram_client import TelegramClient
from telegram_otp.storage.otp_store import OTPStore
from telegram_otp.storage.session_store import SessionStore

logger = logging.getLogger(__name__)


class VerificationStatus(str, Enum):
    VERIFIED = "verified"
    INVALID_REQUEST = "invalid_request"
    INVALID_CREDENTIALS = "invalid_credentials"
    EXPIRED = "expired"


ERROR_MESSAGES = {
    VerificationStatus.INVALID_REQUEST: "Username and OTP are required",
    VerificationStatus.INVALID_CREDENTIALS: "Invalid username or OTP",
    VerificationStatus.EXPIRED: "OTP has expired",
}


@dataclass
class VerificationOutcome:
    """Value object returned by :meth:`VerificationEngine.verify`."""

    status: VerificationStatus
    session_id: str | None = None
    username: str | None = None

    @property
    def ok(self) -> bool:
        return self.status is VerificationStatus.VERIFIED

    @property
    def error(self) -> str | None:
        return ERROR_MESSAGES.get(self.status)


class VerificationEngine:
    """Matches a submitted username + code against the OTP store.

    State machine per attempt
    -------------------------
    1. Missing username or code → ``INVALID_REQUEST``.
    2. No record with that display name and code → ``INVALID_CREDENTIALS``.
       A wrong username and a wrong code look the same to the caller.
    3. Record found but older than the TTL → delete it, ``EXPIRED``.
    4. Otherwise → create a session, delete the record, notify the chat
       in the background, ``VERIFIED``.
    """

    def __init__(
        self,
        otp_store: OTPStore,
        session_store: SessionStore,
        telegram: TelegramClient,
        ttl: timedelta,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._otp_store = otp_store
        self._session_store = session_store
        self._telegram = telegram
        self._ttl = ttl
        self._clock = clock
        self._notifications: set[asyncio.Task] = set()

    async def verify(self, username: str | None, code: str | None) -> VerificationOutcome:
        if not username or not code:
            return VerificationOutcome(VerificationStatus.INVALID_REQUEST)

        record = self._otp_store.find_by_username_and_code(username, code)
        if record is None:
            logger.info("Verification failed for username %r: no matching OTP", username)
            return VerificationOutcome(VerificationStatus.INVALID_CREDENTIALS)

        if record.is_expired(self._clock(), self._ttl):
            self._otp_store.delete(record.recipient_id)
            logger.info("OTP expired for chat %s", record.recipient_id)
            return VerificationOutcome(VerificationStatus.EXPIRED)

        session_id = self._session_store.create(record.recipient_id, record.display_name)
        # Consume the OTP so it cannot be replayed
        self._otp_store.delete(record.recipient_id)
        logger.info(
            "User %s (chat %s) verified via OTP", record.display_name, record.recipient_id
        )

        self._schedule_notification(record)
        return VerificationOutcome(
            VerificationStatus.VERIFIED,
            session_id=session_id,
            username=record.display_name,
        )

    @property
    def pending_notifications(self) -> int:
        return len(self._notifications)

    # ── Private helpers ──────────────────────────────────

    def _schedule_notification(self, record: OTPRecord) -> None:
        task = asyncio.create_task(self._notify(record))
        self._notifications.add(task)
        task.add_done_callback(self._notifications.discard)

    async def _notify(self, record: OTPRecord) -> None:
        text = f"✅ Successfully verified! Welcome {record.display_name}!"
        try:
            delivered = await self._telegram.send_message(record.recipient_id, text)
        except Exception:
            logger.exception("Success notification to chat %s raised", record.recipient_id)
            return
        if not delivered:
            logger.warning("Success notification to chat %s was not delivered", record.recipient_id)
