"""Settings for the pricing audit engine.

Values come from environment variables (optionally via a `.env` file at the
repository root):
- PRICING_AUDIT_DB_PATH: SQLite database holding transactions and pricing
- PRICING_AUDIT_START_DATE: Default cutover date for batch validation runs
- PRICING_AUDIT_LOG_LEVEL: Logging level name (default INFO)
- PRICING_AUDIT_LOG_JSON: "1" for JSON log lines
- PRICING_AUDIT_AMOUNT_TOLERANCE: Allowed absolute drift in USD (default 10)
- PRICING_AUDIT_JPY_MAX_DRIFT: Allowed relative drift for Japan sales (default 0.15)
- PRICING_AUDIT_LEGACY_ALERT_DAYS: Days after a pricing change after which
  legacy pricing is no longer auto-reconciled (default 180)
"""

import os
from datetime import date
from decimal import Decimal
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field

env_path = Path(__file__).resolve().parents[1] / ".env"
if env_path.exists():
    load_dotenv(env_path)


DEFAULT_DB_PATH = Path(__file__).resolve().parents[1] / "pricing_audit.db"
DEFAULT_START_DATE = date(2024, 1, 1)


class ValidationSettings(BaseModel):
    """Runtime configuration for validation runs."""
    db_path: Path = Field(default=DEFAULT_DB_PATH, description="SQLite database path")
    default_start_date: date = Field(default=DEFAULT_START_DATE, description="Validate sales on/after this date")
    log_level: str = Field(default="INFO", description="Logging level name")
    log_json: bool = Field(default=False, description="Emit JSON log lines")

    # Tolerances
    amount_tolerance: Decimal = Field(default=Decimal("10"), description="Absolute USD tolerance")
    jpy_max_drift: Decimal = Field(default=Decimal("0.15"), description="Relative tolerance for JPY sales")
    legacy_alert_days: int = Field(default=180, description="Max days legacy pricing may be honoured")

    @classmethod
    def from_env(cls) -> "ValidationSettings":
        """Build settings from PRICING_AUDIT_* environment variables."""
        values = {}

        db_path = os.getenv("PRICING_AUDIT_DB_PATH")
        if db_path:
            values["db_path"] = Path(db_path)

        start_date = os.getenv("PRICING_AUDIT_START_DATE")
        if start_date:
            values["default_start_date"] = date.fromisoformat(start_date)

        values["log_level"] = os.getenv("PRICING_AUDIT_LOG_LEVEL", "INFO").upper()
        values["log_json"] = os.getenv("PRICING_AUDIT_LOG_JSON", "0") == "1"

        tolerance = os.getenv("PRICING_AUDIT_AMOUNT_TOLERANCE")
        if tolerance:
            values["amount_tolerance"] = Decimal(tolerance)

        drift = os.getenv("PRICING_AUDIT_JPY_MAX_DRIFT")
        if drift:
            values["jpy_max_drift"] = Decimal(drift)

        alert_days = os.getenv("PRICING_AUDIT_LEGACY_ALERT_DAYS")
        if alert_days:
            values["legacy_alert_days"] = int(alert_days)

        return cls(**values)


@lru_cache()
def get_settings() -> ValidationSettings:
    """Return cached settings (one instance per process)."""
    return ValidationSettings.from_env()
