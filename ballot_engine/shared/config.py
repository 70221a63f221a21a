# ballot_engine/shared/config.py
from enum import Enum
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class AppEnv(str, Enum):
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TESTING = "testing"


class Settings(BaseSettings):
    """
    Central Configuration Registry.
    Strictly typed and validated via Pydantic.
    """

    # --- Application Meta ---
    APP_NAME: str = "d21-ballot-engine"
    APP_ENV: AppEnv = AppEnv.DEVELOPMENT
    DEBUG: bool = False

    # --- Logging & Observability ---
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"
    OTEL_SERVICE_NAME: str = "ballot-engine"
    OTEL_EXPORTER_OTLP_ENDPOINT: Optional[str] = None

    # --- Ledger (Solana JSON-RPC) ---
    LEDGER_RPC_URL: str = "https://api.devnet.solana.com"
    LEDGER_PROGRAM_ID: str = "HaV1HXC62zmRYUGDo8XT4kbPY7EMfwFkMZcwjKCF7gxx"
    LEDGER_COMMITMENT: str = "confirmed"
    LEDGER_TIMEOUT_SEC: float = 10.0
    # Attempts per read; transport errors only, never program errors
    LEDGER_READ_ATTEMPTS: int = 2
    LEDGER_BREAKER_THRESHOLD: int = 5
    LEDGER_BREAKER_RESET_SEC: int = 30

    # --- Demo / Fallback Mode ---
    FALLBACK_ENABLED: bool = True
    # Optional JSON table replacing the built-in fallback polls
    FALLBACK_POLLS_FILE: Optional[str] = None

    # --- HTTP Surface ---
    ACTION_ICON_URL: str = "https://example.com/voting-icon.jpg"
    CORS_ORIGINS: List[str] = ["*"]

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
