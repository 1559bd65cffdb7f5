"""Application configuration loaded from environment variables."""
import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent.parent


class Settings:
    # Destination (VT warehouse) DB URL
    DATABASE_URL: str = os.getenv(
        "DATABASE_URL", f"sqlite:///{BASE_DIR / 'tally_sync.db'}"
    )

    # Source (Tally mirror) DB URL – same database as the warehouse by default
    SOURCE_DATABASE_URL: str = os.getenv("SOURCE_DATABASE_URL", "") or DATABASE_URL

    # Schema holding the mirrored Tally tables (tally.ledger, tally.voucher …)
    SOURCE_SCHEMA: str = os.getenv("SOURCE_SCHEMA", "tally")

    # Tenant used for source rows that carry no company/division name
    DEFAULT_COMPANY_NAME: str = os.getenv("DEFAULT_COMPANY_NAME", "Default Company")
    DEFAULT_DIVISION_NAME: str = os.getenv("DEFAULT_DIVISION_NAME", "Default Division")

    # Sync limits
    SYNC_BATCH_SIZE: int = int(os.getenv("SYNC_BATCH_SIZE", "1000"))
    SYNC_RUN_DEADLINE: float = float(os.getenv("SYNC_RUN_DEADLINE", "300"))
    DB_STATEMENT_TIMEOUT: int = int(os.getenv("DB_STATEMENT_TIMEOUT", "30"))

    # API server
    API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
    API_PORT: int = int(os.getenv("API_PORT", "8000"))

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FILE: str = os.getenv("LOG_FILE", "logs/tally_sync.log")

    # CORS – the sync trigger is called from the browser, open by default
    CORS_ORIGINS: list[str] = [
        o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()
    ]


settings = Settings()
