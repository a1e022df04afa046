# Centralised application configuration
# (environment variables, thresholds, timeouts).

import os
from datetime import timedelta

from app.services.lifecycle import Thresholds


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


def _log_level(name: str, default: str) -> str:
    # logging only accepts upper-case level names
    return os.getenv(name, default).strip().upper()


class Settings:
    APP_NAME = "BankID Auth API"
    LOG_LEVEL = _log_level("LOG_LEVEL", "INFO")
    PORT = int(os.getenv("PORT", "3001"))

    # Session lifecycle
    SESSION_TTL_SECONDS = int(os.getenv("SESSION_TTL_SECONDS", "300"))  # 5 Minutes
    SIGN_THRESHOLD_SECONDS = float(os.getenv("SIGN_THRESHOLD_SECONDS", "10"))
    COMPLETE_THRESHOLD_SECONDS = float(os.getenv("COMPLETE_THRESHOLD_SECONDS", "20"))
    HINT_CODE = os.getenv("HINT_CODE", "SKICKA")
    SUBJECT_ID_LENGTH = int(os.getenv("SUBJECT_ID_LENGTH", "12"))
    MAX_CREATE_ATTEMPTS = int(os.getenv("MAX_CREATE_ATTEMPTS", "3"))

    # QR code
    FRONTEND_URL = os.getenv("FRONTEND_URL", f"http://localhost:{PORT}")
    QR_IMAGE_BASE_URL = os.getenv("QR_IMAGE_BASE_URL", "https://api.qrserver.com/v1/create-qr-code/")
    QR_RENDER_INLINE = _flag("QR_RENDER_INLINE", "false")

    # Client polling
    POLL_INTERVAL_MS = int(os.getenv("POLL_INTERVAL_MS", "1000"))
    DISPLAY_BUDGET_SECONDS = int(os.getenv("DISPLAY_BUDGET_SECONDS", "300"))
    NEAR_EXPIRY_SECONDS = int(os.getenv("NEAR_EXPIRY_SECONDS", "30"))

    # Access tokens
    JWT_SECRET = os.getenv("JWT_SECRET", "dev-change-me-before-deploying-anywhere")
    JWT_ISSUER = os.getenv("JWT_ISSUER", "bankid-demo-local")
    JWT_AUDIENCE = os.getenv("JWT_AUDIENCE", "bankid-demo-browser")
    ACCESS_TOKEN_SECONDS = int(os.getenv("ACCESS_TOKEN_SECONDS", "900"))

    # Abuse protection and audit
    RATE_LIMIT_ENABLED = _flag("RATE_LIMIT_ENABLED", "true")
    MAX_REQUESTS_PER_MINUTE = int(os.getenv("MAX_REQUESTS_PER_MINUTE", "30"))
    AUDIT_LOG_FILE = os.getenv("AUDIT_LOG_FILE", "")

    CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",") if o.strip()]

    def thresholds(self) -> Thresholds:
        return Thresholds(
            sign_after=timedelta(seconds=self.SIGN_THRESHOLD_SECONDS),
            complete_after=timedelta(seconds=self.COMPLETE_THRESHOLD_SECONDS),
            ttl=timedelta(seconds=self.SESSION_TTL_SECONDS),
        )


settings = Settings()
