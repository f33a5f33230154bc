"""Command dispatcher — turns inbound Telegram commands into issued OTPs."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from telegram_otp.models.records import OTPRecord, utc_now
from telegram_otp.services.codes import generate_code
from telegram_otp.services.telegram_client import TelegramClient
from telegram_otp.storage.otp_store import OTPStore

logger = logging.getLogger(__name__)

START_COMMAND = "/start"


@dataclass
class InboundCommand:
    """A text message received from a Telegram chat."""

    recipient_id: int
    text: str
    sender_handle: str | None = None
    sender_first_name: str | None = None

    @property
    def display_name(self) -> str:
        """Telegram handle, else first name, else ``user_<chat id>``."""
        return self.sender_handle or self.sender_first_name or f"user_{self.recipient_id}"


def is_start_command(text: str) -> bool:
    """``True`` for ``/start``, ``/start@SomeBot`` and ``/start <payload>``.

    Substrings such as ``restart`` or ``please start`` do not count.
    """
    words = text.strip().split(maxsplit=1)
    if not words:
        return False
    command = words[0].split("@", 1)[0]
    return command == START_COMMAND


@dataclass
class IssueResult:
    """Outcome of issuing an OTP: the stored record and whether it reached the chat."""

    record: OTPRecord
    delivered: bool


class CommandDispatcher:
    """Reacts to inbound commands by generating, storing and delivering OTPs.

    Delivery is attempted first with the code in bold (HTML parse mode);
    if Telegram rejects that, exactly one plain-text retry is made. A
    failed delivery never removes the stored record.
    """

    def __init__(
        self,
        otp_store: OTPStore,
        telegram: TelegramClient,
        ttl: timedelta,
        clock: Callable[[], datetime] = utc_now,
        code_factory: Callable[[], str] = generate_code,
    ) -> None:
        self._store = otp_store
        self._telegram = telegram
        self._ttl = ttl
        self._clock = clock
        self._code_factory = code_factory

    async def handle(self, command: InboundCommand) -> IssueResult | None:
        """Dispatch *command*. Returns ``None`` for anything that isn't ``/start``."""
        if not is_start_command(command.text):
            logger.debug("Ignoring non-start message from chat %s", command.recipient_id)
            return None
        return await self.issue(command.recipient_id, command.display_name)

    async def issue(self, recipient_id: int, display_name: str) -> IssueResult:
        """Generate and store a fresh OTP for *recipient_id*, then deliver it."""
        code = self._code_factory()
        record = self._store.put(recipient_id, code, display_name, self._clock())
        logger.info("OTP issued for %s (chat %s)", display_name, recipient_id)

        delivered = await self._deliver(record)
        return IssueResult(record=record, delivered=delivered)

    # ── Private helpers ──────────────────────────────────

    def _minutes_valid(self) -> int:
        return max(1, int(self._ttl.total_seconds() // 60))

    def _formatted_message(self, code: str) -> str:
        return (
            f"🔐 Your OTP: <b>{code}</b>\n"
            f"⏰ Valid for {self._minutes_valid()} minutes"
        )

    def _plain_message(self, code: str) -> str:
        return f"🔐 Your OTP: {code}\n⏰ Valid for {self._minutes_valid()} minutes"

    async def _deliver(self, record: OTPRecord) -> bool:
        chat_id = record.recipient_id
        if await self._telegram.send_message(
            chat_id, self._formatted_message(record.code), parse_mode="HTML"
        ):
            return True

        logger.warning("Formatted OTP delivery to chat %s failed, retrying as plain text", chat_id)
        if await self._telegram.send_message(chat_id, self._plain_message(record.code)):
            return True

        logger.error("OTP delivery to chat %s failed after plain-text fallback", chat_id)
        return False
