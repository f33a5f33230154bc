"""Telegram OTP Gateway — configuration loaded from environment."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application-wide settings, loaded from .env or environment variables."""

    # ── Telegram Bot API ──────────────────────────────────
    telegram_bot_token: str = ""
    telegram_api_base_url: str = "https://api.telegram.org"
    telegram_timeout_seconds: float = 10.0

    # ── OTP lifecycle ─────────────────────────────────────
    otp_ttl_seconds: int = 600
    sweep_interval_seconds: int = 600

    # ── HTTP surface ──────────────────────────────────────
    host: str = "0.0.0.0"
    port: int = 3000
    enable_debug_endpoints: bool = False
    cors_allow_origins: list[str] = ["*"]

    # ── App ───────────────────────────────────────────────
    app_name: str = "Telegram OTP Gateway"
    debug: bool = False

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


# Singleton settings instance
settings = Settings()
