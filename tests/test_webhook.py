"""Tests for the Telegram webhook and bot registration endpoints."""

from __future__ import annotations

from telegram_otp.services.telegram_client import TelegramAPIError
from telegram_otp.webhook.handler import BOT_COMMANDS, parse_update


def _update(text, chat_id: int = 42, sender: dict | None = None) -> dict:
    message = {"message_id": 1, "chat": {"id": chat_id, "type": "private"}, "text": text}
    if sender is not None:
        message["from"] = sender
    return {"update_id": 1000, "message": message}


# ──────────────────────────────────────────────────────────
# Update parsing
# ──────────────────────────────────────────────────────────
def test_parse_update_extracts_sender():
    command = parse_update(_update("/start", sender={"username": "alice", "first_name": "Alice"}))
    assert command.recipient_id == 42
    assert command.text == "/start"
    assert command.sender_handle == "alice"
    assert command.sender_first_name == "Alice"


def test_parse_update_ignores_non_text_updates():
    assert parse_update({"update_id": 1, "callback_query": {}}) is None
    assert parse_update({"update_id": 1, "message": {"chat": {"id": 42}, "sticker": {}}}) is None


def test_parse_update_ignores_non_string_text():
    assert parse_update(_update(123)) is None
    assert parse_update(_update(["/start"])) is None


def test_parse_update_tolerates_malformed_sender():
    update = _update("/start")
    update["message"]["from"] = "alice"
    command = parse_update(update)
    assert command.display_name == "user_42"

    command = parse_update(_update("/start", sender={"username": 7, "first_name": "Alice"}))
    assert command.sender_handle is None
    assert command.display_name == "Alice"


# ──────────────────────────────────────────────────────────
# POST /webhook/{token}
# ──────────────────────────────────────────────────────────
def test_webhook_rejects_wrong_token(client, otp_store):
    resp = client.post("/webhook/not-the-token", json=_update("/start"))
    assert resp.status_code == 403
    assert resp.json() == {"error": "Forbidden"}
    assert len(otp_store) == 0


def test_webhook_start_issues_otp(client, otp_store, telegram):
    resp = client.post(
        "/webhook/test-token",
        json=_update("/start", sender={"username": "alice", "first_name": "Alice"}),
    )

    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}
    record = otp_store.get(42)
    assert record.display_name == "alice"
    chat_id, text = telegram.send_message.await_args.args
    assert chat_id == 42
    assert record.code in text


def test_webhook_uses_synthesised_name_without_profile(client, otp_store):
    client.post("/webhook/test-token", json=_update("/start", chat_id=77))
    assert otp_store.get(77).display_name == "user_77"


def test_webhook_acknowledges_non_string_text(client, otp_store, telegram):
    resp = client.post("/webhook/test-token", json=_update(123))

    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}
    assert len(otp_store) == 0
    telegram.send_message.assert_not_called()


def test_webhook_start_with_malformed_sender(client, otp_store):
    update = _update("/start")
    update["message"]["from"] = "x"

    resp = client.post("/webhook/test-token", json=update)

    assert resp.status_code == 200
    assert otp_store.get(42).display_name == "user_42"


def test_webhook_ignores_other_text(client, otp_store, telegram):
    resp = client.post("/webhook/test-token", json=_update("restart please", sender={"username": "a"}))
    assert resp.status_code == 200
    assert len(otp_store) == 0
    telegram.send_message.assert_not_called()


def test_webhook_acknowledges_non_message_updates(client, otp_store):
    resp = client.post("/webhook/test-token", json={"update_id": 5, "edited_message": {}})
    assert resp.status_code == 200
    assert len(otp_store) == 0


def test_webhook_acknowledges_undeliverable_start(client, otp_store, telegram):
    telegram.send_message.return_value = False

    resp = client.post("/webhook/test-token", json=_update("/start", sender={"username": "alice"}))

    assert resp.status_code == 200
    assert otp_store.get(42) is not None
    assert telegram.send_message.await_count == 2


def test_webhook_then_web_verification(client, otp_store):
    client.post("/webhook/test-token", json=_update("/start", sender={"username": "alice"}))
    code = otp_store.get(42).code

    resp = client.post("/api/verify-otp", json={"username": "Alice", "otp": code})

    assert resp.status_code == 200
    assert resp.json()["username"] == "alice"


# ──────────────────────────────────────────────────────────
# Bot registration
# ──────────────────────────────────────────────────────────
def test_set_webhook_registers_host_url(client, telegram):
    telegram.set_webhook.return_value = True

    resp = client.get("/set-webhook")

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["webhookUrl"] == "https://testserver/webhook/test-token"
    assert body["response"] is True
    telegram.set_webhook.assert_awaited_once_with("https://testserver/webhook/test-token")


def test_set_webhook_failure(client, telegram):
    telegram.set_webhook.side_effect = TelegramAPIError("setWebhook failed: 401 Unauthorized")

    resp = client.get("/set-webhook")

    assert resp.status_code == 500
    assert resp.json() == {"error": "setWebhook failed: 401 Unauthorized"}


def test_setup_bot(client, telegram):
    telegram.get_me.return_value = {"id": 1, "is_bot": True, "username": "otp_bot"}
    telegram.set_my_commands.return_value = True

    resp = client.get("/setup-bot")

    assert resp.status_code == 200
    assert resp.json() == {
        "botInfo": {"id": 1, "is_bot": True, "username": "otp_bot"},
        "message": "Bot setup complete",
    }
    telegram.set_my_commands.assert_awaited_once_with(BOT_COMMANDS)


def test_setup_bot_failure(client, telegram):
    telegram.get_me.side_effect = TelegramAPIError("getMe failed: 404 Not Found")
    resp = client.get("/setup-bot")
    assert resp.status_code == 500
    assert resp.json() == {"error": "getMe failed: 404 Not Found"}
