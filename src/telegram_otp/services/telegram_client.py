"""Telegram Bot API — async HTTP client for outbound messages and bot setup.

Every call goes to ``{base_url}/bot{token}/{method}``.  Message delivery
reports success as a boolean so callers can decide on fallbacks; the
bot-administration calls raise :class:`TelegramAPIError` instead, since
their callers surface the failure to an operator.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from telegram_otp.config import settings

logger = logging.getLogger(__name__)


class TelegramAPIError(Exception):
    """Raised when a Bot API call fails at the transport or API level."""


class TelegramClient:
    """Async HTTP wrapper around the Telegram Bot API."""

    def __init__(
        self,
        token: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._token = settings.telegram_bot_token if token is None else token
        root = (base_url or settings.telegram_api_base_url).rstrip("/")
        self._base_url = f"{root}/bot{self._token}"
        self._timeout = settings.telegram_timeout_seconds if timeout is None else timeout
        self._transport = transport

    async def _call(self, method: str, payload: dict[str, Any] | None = None) -> Any:
        """POST *payload* to *method* and return the ``result`` field."""
        url = f"{self._base_url}/{method}"
        try:
            async with httpx.AsyncClient(
                transport=self._transport, timeout=self._timeout
            ) as client:
                resp = await client.post(url, json=payload or {})
        except httpx.HTTPError as exc:
            raise TelegramAPIError(f"{method} request error: {exc}") from exc

        try:
            data = resp.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        if resp.status_code != 200 or not data.get("ok", False):
            description = data.get("description") or resp.text
            raise TelegramAPIError(
                f"{method} failed: {resp.status_code} {description}"
            )
        return data.get("result")

    # ── Messaging ────────────────────────────────────────

    async def send_message(
        self, chat_id: int, text: str, parse_mode: str | None = None
    ) -> bool:
        """Send *text* to *chat_id*.

        Returns ``True`` if Telegram accepted the message.
        """
        payload: dict[str, Any] = {"chat_id": chat_id, "text": text}
        if parse_mode:
            payload["parse_mode"] = parse_mode
        try:
            await self._call("sendMessage", payload)
        except TelegramAPIError as exc:
            logger.error("Failed to send message to chat %s: %s", chat_id, exc)
            return False
        logger.info("Message sent to chat %s", chat_id)
        return True

    # ── Bot administration ───────────────────────────────

    async def get_me(self) -> dict[str, Any]:
        """Return the bot's own user object."""
        return await self._call("getMe")

    async def set_my_commands(self, commands: list[dict[str, str]]) -> bool:
        """Register the bot's command menu."""
        return await self._call("setMyCommands", {"commands": commands})

    async def set_webhook(self, url: str) -> bool:
        """Point Telegram's update delivery at *url*."""
        return await self._call("setWebhook", {"url": url})
