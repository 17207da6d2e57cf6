from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# SQLite file in the project root (next to streamlit_app.py)
DEFAULT_DB_PATH = Path(__file__).resolve().parents[1] / "patient_ops.sqlite"


@dataclass(frozen=True)
class Settings:
    api_url: str
    api_key: str
    timeout: float = 10.0
    status_scheme: str = "legacy"
    log_level: str = "INFO"
    database_url: str = f"sqlite:///{DEFAULT_DB_PATH}"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            api_url=os.getenv("DATA_API_URL", "").strip().rstrip("/"),
            api_key=os.getenv("DATA_API_KEY", "").strip(),
            timeout=float(os.getenv("DATA_API_TIMEOUT", "10")),
            status_scheme=os.getenv("APPOINTMENT_STATUS_SCHEME", "legacy").strip().lower(),
            log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
            database_url=os.getenv("DATABASE_URL", f"sqlite:///{DEFAULT_DB_PATH}"),
        )

    @property
    def is_configured(self) -> bool:
        """Both endpoint and key are needed before any write is attempted."""
        return bool(self.api_url) and bool(self.api_key)


def get_settings() -> Settings:
    return Settings.from_env()
