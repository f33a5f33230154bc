"""Shared fixtures — frozen clock, mocked Telegram client, wired app."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from telegram_otp.config import Settings
from telegram_otp.main import create_app
from telegram_otp.services.telegram_client import TelegramClient
from telegram_otp.storage.otp_store import InMemoryOTPStore
from telegram_otp.storage.session_store import SessionStore

TTL = timedelta(minutes=10)
BOT_TOKEN = "test-token"


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now += timedelta(**delta)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2026, 1, 1, 12, 0, tzinfo=UTC))


@pytest.fixture
def telegram():
    """Mocked Telegram client — never talks to the network."""
    client = AsyncMock(spec=TelegramClient)
    client.send_message.return_value = True
    return client


@pytest.fixture
def otp_store() -> InMemoryOTPStore:
    return InMemoryOTPStore()


@pytest.fixture
def session_store(clock) -> SessionStore:
    return SessionStore(clock=clock)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        telegram_bot_token=BOT_TOKEN,
        enable_debug_endpoints=True,
    )


@pytest.fixture
def app(settings, telegram, otp_store, clock):
    return create_app(settings=settings, telegram=telegram, otp_store=otp_store, clock=clock)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client
