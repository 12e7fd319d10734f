# dalali/settings.py
from __future__ import annotations
from typing import List, Optional
from pydantic import Field, AliasChoices
from pydantic_settings import BaseSettings, SettingsConfigDict
import json
import os

def _parse_cors(v: Optional[str | List[str]]) -> List[str]:
    """
    Accept JSON array (e.g. '["http://localhost:5173"]') or
    comma-separated string ('http://localhost:5173,http://127.0.0.1:5173').
    """
    if v is None:
        return ["http://localhost:5173", "http://127.0.0.1:5173"]
    if isinstance(v, list):
        return v
    s = v.strip()
    if not s:
        return ["http://localhost:5173", "http://127.0.0.1:5173"]
    # try JSON first
    try:
        parsed = json.loads(s)
        if isinstance(parsed, list) and all(isinstance(x, str) for x in parsed):
            return parsed
    except json.JSONDecodeError:
        pass
    # fallback: comma separated
    return [p.strip() for p in s.split(",") if p.strip()]

class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",   # ignore unknown env keys instead of raising
    )

    # --- API ---
    api_host: str = Field(default="127.0.0.1", validation_alias=AliasChoices("API_HOST",))
    api_port: int = Field(default=8000,        validation_alias=AliasChoices("API_PORT",))
    cors_origins_raw: Optional[str | List[str]] = Field(
        default=None, validation_alias=AliasChoices("CORS_ORIGINS",)
    )
    log_level: str = Field(default="INFO", validation_alias=AliasChoices("LOG_LEVEL",))

    # --- Postgres ---
    database_url: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("DATABASE_URL", "POSTGRES_DSN")
    )
    db_pool_min_size: int = Field(default=2,  validation_alias=AliasChoices("DB_POOL_MIN_SIZE",))
    db_pool_max_size: int = Field(default=10, validation_alias=AliasChoices("DB_POOL_MAX_SIZE",))

    # --- Firebase (ID token verification) ---
    firebase_project_id: str = Field(
        default="dalali-app",
        validation_alias=AliasChoices("FIREBASE_PROJECT_ID",)
    )
    google_application_credentials: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("GOOGLE_APPLICATION_CREDENTIALS",)
    )

    # --- Cart / display ---
    # quiet period after the last edit before a cart field is saved
    debounce_window_ms: int = Field(
        default=800, ge=0, validation_alias=AliasChoices("DEBOUNCE_WINDOW_MS",)
    )
    currency_symbol: str = Field(default="₹", validation_alias=AliasChoices("CURRENCY_SYMBOL",))

    @property
    def cors_origins(self) -> List[str]:
        return _parse_cors(self.cors_origins_raw)

    @property
    def debounce_window(self) -> float:
        return self.debounce_window_ms / 1000.0

# singleton
settings = Settings()

# Make sure GOOGLE_APPLICATION_CREDENTIALS is exported for firebase_admin
if settings.google_application_credentials:
    os.environ["GOOGLE_APPLICATION_CREDENTIALS"] = settings.google_application_credentials
