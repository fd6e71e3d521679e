"""
Application settings and configuration
"""
import os
from dotenv import load_dotenv

load_dotenv()


def _as_bool(value: str) -> bool:
    return str(value).strip().lower() in ("1", "true", "yes", "on")


class Settings:
    # Application
    APP_NAME = "Beam Affiliate"
    VERSION = "1.0.0"
    APP_ENV = os.getenv("APP_ENV", "development")
    DEBUG = _as_bool(os.getenv("DEBUG", "True"))
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Security
    SECRET_KEY = os.getenv("SECRET_KEY", "your-secret-key-change-in-production")
    ALGORITHM = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES = 60 * 24  # 24 hours

    # CORS
    ALLOWED_ORIGINS = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
    ]

    # Pagination
    DEFAULT_PAGE_SIZE = 20
    MAX_PAGE_SIZE = 100

    # Money
    DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "USD")
    DISPLAY_TIMEZONE = os.getenv("DISPLAY_TIMEZONE", "UTC")

    # Identifiers
    PAYMENT_ID_PREFIX = "PAY"

    # Payout gateway ("mock" or "live")
    PAYMENT_GATEWAY_MODE = os.getenv("PAYMENT_GATEWAY_MODE", "mock")
    BEAM_WALLET_API_URL = os.getenv("BEAM_WALLET_API_URL", "https://api.beamwallet.com")
    BEAM_WALLET_API_KEY = os.getenv("BEAM_WALLET_API_KEY", "")
    ALLOW_MOCK_PAYOUTS = _as_bool(os.getenv("ALLOW_MOCK_PAYOUTS", "False"))
    GATEWAY_TIMEOUT_SECONDS = float(os.getenv("GATEWAY_TIMEOUT_SECONDS", "10"))

    # Payout retry policy
    PAYOUT_MAX_ATTEMPTS = int(os.getenv("PAYOUT_MAX_ATTEMPTS", "3"))
    PAYOUT_BACKOFF_SECONDS = float(os.getenv("PAYOUT_BACKOFF_SECONDS", "1"))
    PAYOUT_BACKOFF_MAX_SECONDS = float(os.getenv("PAYOUT_BACKOFF_MAX_SECONDS", "30"))

    # Fraud screening
    FRAUD_THRESHOLD = float(os.getenv("FRAUD_THRESHOLD", "0.5"))
    FRAUD_MAX_PURCHASES_PER_HOUR = int(os.getenv("FRAUD_MAX_PURCHASES_PER_HOUR", "5"))


settings = Settings()
