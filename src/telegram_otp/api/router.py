"""Web API router — OTP verification, session lookup and diagnostics.

Endpoints
---------
POST /api/verify-otp            → exchange username + OTP for a session
GET  /api/session/{session_id}  → session info
GET  /api/user/{chat_id}        → pending-OTP status for a chat
GET  /api/debug/otps            → all stored OTPs (debug builds only)
POST /generate-otp              → push a fresh OTP to a chat (debug builds only)
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, field_validator

from telegram_otp.config import Settings
from telegram_otp.dependencies import (
    get_clock,
    get_dispatcher,
    get_engine,
    get_otp_store,
    get_session_store,
    get_settings,
    require_debug,
)
from telegram_otp.services.command_dispatcher import CommandDispatcher
from telegram_otp.services.verification import VerificationEngine
from telegram_otp.storage.otp_store import OTPStore
from telegram_otp.storage.session_store import SessionStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["otp"])


# ── Request / response models ────────────────────────────

class VerifyOTPRequest(BaseModel):
    username: str | None = None
    otp: str | None = None

    @field_validator("otp", mode="before")
    @classmethod
    def _digits_as_text(cls, value):
        # Web clients sometimes post the code as a JSON number
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class VerifyOTPResponse(BaseModel):
    success: bool
    sessionId: str
    username: str
    message: str


class SessionInfo(BaseModel):
    username: str
    verified: bool
    timestamp: datetime


class UserOTPStatus(BaseModel):
    username: str
    hasOTP: bool
    timestamp: datetime


class DebugOTPEntry(BaseModel):
    chatId: int
    username: str
    otp: str
    timestamp: datetime
    expired: bool


class GenerateOTPRequest(BaseModel):
    chatId: int
    username: str


# ── Helpers ──────────────────────────────────────────────

def _ttl(settings: Settings) -> timedelta:
    return timedelta(seconds=settings.otp_ttl_seconds)


# ── Endpoints ────────────────────────────────────────────

@router.post("/api/verify-otp", response_model=VerifyOTPResponse)
async def verify_otp(
    body: VerifyOTPRequest,
    engine: VerificationEngine = Depends(get_engine),
):
    """Verify a username + OTP pair and open a session."""
    outcome = await engine.verify(body.username, body.otp)
    if not outcome.ok:
        raise HTTPException(status_code=400, detail=outcome.error)

    return VerifyOTPResponse(
        success=True,
        sessionId=outcome.session_id,
        username=outcome.username,
        message="OTP verified successfully",
    )


@router.get("/api/session/{session_id}", response_model=SessionInfo)
async def get_session(
    session_id: str,
    sessions: SessionStore = Depends(get_session_store),
):
    """Look up a verified session."""
    record = sessions.get(session_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return SessionInfo(
        username=record.display_name,
        verified=record.verified,
        timestamp=record.created_at,
    )


@router.get("/api/user/{chat_id}", response_model=UserOTPStatus)
async def get_user(
    chat_id: str,
    store: OTPStore = Depends(get_otp_store),
    settings: Settings = Depends(get_settings),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """Report whether a chat currently holds a usable OTP."""
    try:
        record = store.get(int(chat_id))
    except ValueError:
        record = None
    if record is None:
        raise HTTPException(status_code=404, detail="User not found")
    return UserOTPStatus(
        username=record.display_name,
        hasOTP=not record.is_expired(clock(), _ttl(settings)),
        timestamp=record.issued_at,
    )


@router.get(
    "/api/debug/otps",
    response_model=list[DebugOTPEntry],
    dependencies=[Depends(require_debug)],
)
async def list_otps(
    store: OTPStore = Depends(get_otp_store),
    settings: Settings = Depends(get_settings),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """Dump every stored OTP, including live codes."""
    now, ttl = clock(), _ttl(settings)
    return [
        DebugOTPEntry(
            chatId=record.recipient_id,
            username=record.display_name,
            otp=record.code,
            timestamp=record.issued_at,
            expired=record.is_expired(now, ttl),
        )
        for record in store.scan()
    ]


@router.post("/generate-otp", dependencies=[Depends(require_debug)])
async def generate_otp(
    body: GenerateOTPRequest,
    dispatcher: CommandDispatcher = Depends(get_dispatcher),
):
    """Issue an OTP for a known chat without waiting for ``/start``."""
    result = await dispatcher.issue(body.chatId, body.username)
    if not result.delivered:
        raise HTTPException(status_code=500, detail="Failed to send OTP")
    return {"success": True, "otp": result.record.code}
