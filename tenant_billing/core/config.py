import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


class Settings:
    """Centralised application configuration sourced from environment variables."""

    def __init__(self) -> None:
        load_dotenv()
        self.database_path = Path(os.getenv("DATABASE_PATH", "data/billing.db")).resolve()
        self.account_token_secret = os.getenv("ACCOUNT_TOKEN_SECRET", "change-me")
        self.account_token_algorithm = os.getenv("ACCOUNT_TOKEN_ALGORITHM", "HS256")
        self.default_payment_provider = os.getenv("DEFAULT_PAYMENT_PROVIDER", "payphone")
        self.default_currency = os.getenv("DEFAULT_CURRENCY", "USD").upper()
        self.sweep_batch_limit = self._get_int("SWEEP_BATCH_LIMIT", default=500)
        origins = os.getenv("CORS_ALLOW_ORIGINS")
        if origins:
            self.cors_allow_origins = [item.strip() for item in origins.split(",") if item.strip()]
        else:
            self.cors_allow_origins = ["*"]

    @staticmethod
    def _get_int(key: str, default: Optional[int] = None) -> int:
        value = os.getenv(key)
        if value is None:
            if default is None:
                raise RuntimeError(f"Missing required environment variable: {key}")
            return default
        try:
            return int(value)
        except ValueError as exc:
            raise RuntimeError(f"Environment variable {key} must be an integer") from exc
