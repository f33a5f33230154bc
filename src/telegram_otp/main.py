"""FastAPI application entry point."""

import logging
from collections.abc import Callable
from contextlib import asynccontextmanager
from datetime import datetime, timedelta

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from telegram_otp.api.router import router as api_router
from telegram_otp.config import Settings, settings as default_settings
from telegram_otp.models.records import utc_now
from telegram_otp.services.command_dispatcher import CommandDispatcher
from telegram_otp.services.sweeper import ExpirySweeper
from telegram_otp.services.telegram_client import TelegramClient
from telegram_otp.services.verification import VerificationEngine
from telegram_otp.storage.otp_store import InMemoryOTPStore, OTPStore
from telegram_otp.storage.session_store import SessionStore
from telegram_otp.webhook.handler import router as webhook_router

logging.basicConfig(
    level=logging.DEBUG if default_settings.debug else logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)

logger = logging.getLogger(__name__)


def ensure_bot_token(settings: Settings) -> None:
    """Abort startup when no bot credential is configured."""
    if not settings.telegram_bot_token:
        logger.critical("TELEGRAM_BOT_TOKEN is not set — refusing to start")
        raise RuntimeError("TELEGRAM_BOT_TOKEN is required")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle hook."""
    settings: Settings = app.state.settings
    logger.info("Starting %s …", settings.app_name)
    ensure_bot_token(settings)
    app.state.sweeper.start()
    yield
    await app.state.sweeper.stop()
    logger.info("Shutting down %s …", settings.app_name)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.debug("Rejected request to %s: %s", request.url.path, exc.errors())
    return JSONResponse(status_code=400, content={"error": "Invalid request body"})


def create_app(
    settings: Settings | None = None,
    telegram: TelegramClient | None = None,
    otp_store: OTPStore | None = None,
    clock: Callable[[], datetime] = utc_now,
) -> FastAPI:
    """Build the application and wire its per-instance services."""
    settings = settings or default_settings
    telegram = telegram or TelegramClient(
        token=settings.telegram_bot_token,
        base_url=settings.telegram_api_base_url,
        timeout=settings.telegram_timeout_seconds,
    )
    otp_store = otp_store if otp_store is not None else InMemoryOTPStore()
    session_store = SessionStore(clock=clock)
    ttl = timedelta(seconds=settings.otp_ttl_seconds)

    app = FastAPI(
        title=settings.app_name,
        description="One-time passcodes delivered over Telegram, verified from the web",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.clock = clock
    app.state.telegram = telegram
    app.state.otp_store = otp_store
    app.state.session_store = session_store
    app.state.engine = VerificationEngine(otp_store, session_store, telegram, ttl, clock=clock)
    app.state.dispatcher = CommandDispatcher(otp_store, telegram, ttl, clock=clock)
    app.state.sweeper = ExpirySweeper(
        otp_store, ttl, interval=settings.sweep_interval_seconds, clock=clock
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    app.include_router(api_router)
    app.include_router(webhook_router)

    @app.get("/health")
    async def health_check():
        """Simple liveness probe."""
        return {
            "status": "OK",
            "timestamp": clock().isoformat(),
            "activeOTPs": len(otp_store),
        }

    return app


app = create_app()


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    uvicorn.run(
        "telegram_otp.main:app",
        host=default_settings.host,
        port=default_settings.port,
        log_level="debug" if default_settings.debug else "info",
    )
