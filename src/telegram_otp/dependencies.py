"""FastAPI dependencies — hand out the per-application service instances."""

from collections.abc import Callable
from datetime import datetime

from fastapi import HTTPException, Request

from telegram_otp.config import Settings
from telegram_otp.services.command_dispatcher import CommandDispatcher
from telegram_otp.services.telegram_client import TelegramClient
from telegram_otp.services.verification import VerificationEngine
from telegram_otp.storage.otp_store import OTPStore
from telegram_otp.storage.session_store import SessionStore


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_otp_store(request: Request) -> OTPStore:
    return request.app.state.otp_store


def get_session_store(request: Request) -> SessionStore:
    return request.app.state.session_store


def get_engine(request: Request) -> VerificationEngine:
    return request.app.state.engine


def get_dispatcher(request: Request) -> CommandDispatcher:
    return request.app.state.dispatcher


def get_telegram(request: Request) -> TelegramClient:
    return request.app.state.telegram


def get_clock(request: Request) -> Callable[[], datetime]:
    return request.app.state.clock


def require_debug(request: Request) -> None:
    """Hide diagnostic routes unless ``ENABLE_DEBUG_ENDPOINTS`` is set."""
    if not get_settings(request).enable_debug_endpoints:
        raise HTTPException(status_code=404, detail="Not found")
