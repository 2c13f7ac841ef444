"""
Configuration management for the Studio Booking API.

Loads settings from .env via pydantic-settings.

Notes:
    - Gateway, email and spreadsheet clients are built from these settings
      once at startup (see main.lifespan) instead of at import time.
    - validate_production_settings() refuses sandbox/unsigned setups in production.
"""
import logging

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ── Database ────────────────────────────────────────────────────
    database_url: str = "sqlite:///./data/studio.db"

    # ── Studio ──────────────────────────────────────────────────────
    studio_name: str = "Aure Pilates Studio Tasikmalaya"
    studio_timezone: str = "Asia/Jakarta"
    app_url: str = "http://localhost:3000"
    phone_country_code: str = "62"

    # ── Midtrans ────────────────────────────────────────────────────
    midtrans_server_key: str = ""
    midtrans_client_key: str = ""
    midtrans_is_production: bool = False

    # ── Xendit ──────────────────────────────────────────────────────
    xendit_secret_key: str = ""
    xendit_webhook_token: str = ""

    # ── Email (Resend) ──────────────────────────────────────────────
    resend_api_key: str = ""
    resend_from_email: str = "Aure Pilates <onboarding@resend.dev>"

    # ── WhatsApp Cloud webhook ──────────────────────────────────────
    whatsapp_verify_token: str = ""

    # ── Google Sheets (schedule sync) ───────────────────────────────
    google_service_account_email: str = ""
    google_private_key: str = ""
    google_sheet_id: str = ""

    # ── Cron ────────────────────────────────────────────────────────
    cron_secret: str = ""

    # ── Auth (JWT, admin endpoints) ─────────────────────────────────
    jwt_secret: str = ""
    jwt_issuer: str = "studio-booking-api"
    jwt_access_ttl_minutes: int = 60

    # ── Duplicate-check throttling ──────────────────────────────────
    duplicate_check_max_requests: int = 20
    duplicate_check_window_seconds: int = 60

    # ── Application ─────────────────────────────────────────────────
    environment: str = "development"

    # ── CORS ────────────────────────────────────────────────────────
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # allow unknown .env keys without crashing
    )

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def google_private_key_pem(self) -> str:
        """Private key with literal \\n sequences (as stored in .env) expanded."""
        return self.google_private_key.replace("\\n", "\n")

    def validate_production_settings(self):
        """
        Validate settings for production safety.

        Called during app startup. Production refuses to boot with open CORS,
        sandbox Midtrans, or any webhook/cron/admin secret left empty.
        """
        if self.environment == "production":
            if "*" in self.cors_origins:
                raise ValueError(
                    "CORS_ORIGINS must not contain '*' in production. "
                    "Set explicit allowed origins."
                )
            if not self.midtrans_is_production:
                raise ValueError(
                    "MIDTRANS_IS_PRODUCTION must be true in production. "
                    "Sandbox payments would confirm bookings without real money."
                )
            required = {
                "MIDTRANS_SERVER_KEY": self.midtrans_server_key,
                "XENDIT_WEBHOOK_TOKEN": self.xendit_webhook_token,
                "CRON_SECRET": self.cron_secret,
                "JWT_SECRET": self.jwt_secret,
            }
            missing = [name for name, value in required.items() if not value]
            if missing:
                raise ValueError(
                    f"{', '.join(missing)} must be set in production."
                )
            logger.info("✅ Production settings validated")
        else:
            warnings = []
            if not self.midtrans_server_key:
                warnings.append("MIDTRANS_SERVER_KEY empty (Midtrans webhooks will be rejected)")
            if not self.xendit_webhook_token:
                warnings.append("XENDIT_WEBHOOK_TOKEN empty (Xendit webhooks will be rejected)")
            if not self.cron_secret:
                warnings.append("CRON_SECRET empty (cron endpoints will be rejected)")
            if "*" in self.cors_origins:
                warnings.append("CORS_ORIGINS contains '*' (open access)")
            for w in warnings:
                logger.warning(f"⚠️  {w}")


# Global settings instance
settings = Settings()
