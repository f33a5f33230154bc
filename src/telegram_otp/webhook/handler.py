"""Telegram webhook handler — receives updates and manages bot registration."""

from __future__ import annotations

import logging
import secrets

from fastapi import APIRouter, Depends, HTTPException, Request

from telegram_otp.config import Settings
from telegram_otp.dependencies import get_dispatcher, get_settings, get_telegram
from telegram_otp.services.command_dispatcher import CommandDispatcher, InboundCommand
from telegram_otp.services.telegram_client import TelegramAPIError, TelegramClient

logger = logging.getLogger(__name__)

router = APIRouter(tags=["webhook"])

BOT_COMMANDS = [{"command": "start", "description": "Get OTP code"}]


def _text_or_none(value) -> str | None:
    return value if isinstance(value, str) else None


def parse_update(update: dict) -> InboundCommand | None:
    """Extract an :class:`InboundCommand` from a Telegram ``Update``.

    Expected payload structure (simplified)::

        {
          "update_id": 1,
          "message": {
            "chat": {"id": 42},
            "from": {"username": "alice", "first_name": "Alice"},
            "text": "/start"
          }
        }

    Returns ``None`` for updates that carry no text message.
    """
    try:
        message = update["message"]
        chat_id = int(message["chat"]["id"])
        text = message["text"]
    except (KeyError, TypeError, ValueError):
        return None
    if not isinstance(text, str):
        return None

    sender = message.get("from")
    if not isinstance(sender, dict):
        sender = {}
    return InboundCommand(
        recipient_id=chat_id,
        text=text,
        sender_handle=_text_or_none(sender.get("username")),
        sender_first_name=_text_or_none(sender.get("first_name")),
    )


# ──────────────────────────────────────────────────────────────
# POST /webhook/{token} — Incoming updates
# ──────────────────────────────────────────────────────────────
@router.post("/webhook/{token}")
async def receive_update(
    token: str,
    request: Request,
    settings: Settings = Depends(get_settings),
    dispatcher: CommandDispatcher = Depends(get_dispatcher),
) -> dict:
    """Process a Telegram update. Always acknowledges with 200 once authenticated."""
    if not settings.telegram_bot_token or not secrets.compare_digest(
        token, settings.telegram_bot_token
    ):
        logger.warning("Webhook call with a bad path token")
        raise HTTPException(status_code=403, detail="Forbidden")

    try:
        body = await request.json()
    except ValueError:
        logger.debug("Webhook body is not JSON, ignoring")
        return {"status": "ok"}

    command = parse_update(body) if isinstance(body, dict) else None
    if command is None:
        logger.debug("Received non-message update, ignoring")
        return {"status": "ok"}

    logger.info("Message from chat %s: %s", command.recipient_id, command.text[:80])
    result = await dispatcher.handle(command)
    if result is not None and not result.delivered:
        logger.error("OTP for chat %s stored but never delivered", command.recipient_id)

    return {"status": "ok"}


# ──────────────────────────────────────────────────────────────
# Bot registration helpers
# ──────────────────────────────────────────────────────────────
@router.get("/set-webhook")
async def set_webhook(
    request: Request,
    settings: Settings = Depends(get_settings),
    telegram: TelegramClient = Depends(get_telegram),
) -> dict:
    """Point Telegram at this server's webhook URL."""
    host = request.headers.get("host", request.url.netloc)
    webhook_url = f"https://{host}/webhook/{settings.telegram_bot_token}"
    try:
        response = await telegram.set_webhook(webhook_url)
    except TelegramAPIError as exc:
        logger.error("setWebhook failed: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    logger.info("Webhook registered at https://%s/webhook/…", host)
    return {"success": True, "webhookUrl": webhook_url, "response": response}


@router.get("/setup-bot")
async def setup_bot(telegram: TelegramClient = Depends(get_telegram)) -> dict:
    """Fetch bot info and register the ``/start`` command."""
    try:
        bot_info = await telegram.get_me()
        await telegram.set_my_commands(BOT_COMMANDS)
    except TelegramAPIError as exc:
        logger.error("Bot setup failed: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    return {"botInfo": bot_info, "message": "Bot setup complete"}
