"""
Runtime configuration.

Values come from the environment, with a .env file at the project root loaded
first. Read once per process through get_settings().

Environment variables:
- STORAGE_BACKEND: "supabase" (default) or "memory" for local development
- PUBLIC_BASE_URL: Origin used to build processor return URLs
- CHECKOUT_ALLOWED_HOST: Host a checkout URL must point at
- LANDING_PATH / LOGIN_PATH / PURCHASE_HISTORY_PATH: Client routes
- SESSION_STORAGE_TTL_HOURS: Lifetime of session-scoped entries
- CORS_ALLOW_ORIGINS: Comma-separated origins ("*" for any)
- LOG_LEVEL: Root log level
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import List

from dotenv import load_dotenv

from services.checkout_service import DEFAULT_PROCESSOR_HOST

env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

_STORAGE_BACKENDS = ("supabase", "memory")


@dataclass(frozen=True, slots=True)
class Settings:
    storage_backend: str
    public_base_url: str
    checkout_allowed_host: str
    landing_path: str
    login_path: str
    purchase_history_path: str
    session_storage_ttl_hours: int
    cors_allow_origins: List[str]
    log_level: str

    @property
    def landing_url(self) -> str:
        return f"{self.public_base_url}{self.landing_path}"

    @property
    def cancel_url(self) -> str:
        return f"{self.public_base_url}{self.landing_path}"


def load_settings() -> Settings:
    """
    Build Settings from the environment.

    Raises:
        RuntimeError: If STORAGE_BACKEND or SESSION_STORAGE_TTL_HOURS is invalid
    """

    storage_backend = os.getenv("STORAGE_BACKEND", "supabase").strip().lower()
    if storage_backend not in _STORAGE_BACKENDS:
        raise RuntimeError(
            f"Invalid STORAGE_BACKEND: {storage_backend!r}. "
            f"Expected one of: {', '.join(_STORAGE_BACKENDS)}."
        )

    ttl_text = os.getenv("SESSION_STORAGE_TTL_HOURS", "24")
    try:
        ttl_hours = int(ttl_text)
    except ValueError:
        raise RuntimeError(f"SESSION_STORAGE_TTL_HOURS must be an integer, got {ttl_text!r}")
    if ttl_hours <= 0:
        raise RuntimeError("SESSION_STORAGE_TTL_HOURS must be > 0")

    origins = os.getenv("CORS_ALLOW_ORIGINS", "*")

    return Settings(
        storage_backend=storage_backend,
        public_base_url=os.getenv("PUBLIC_BASE_URL", "http://localhost:8000").rstrip("/"),
        checkout_allowed_host=os.getenv("CHECKOUT_ALLOWED_HOST", DEFAULT_PROCESSOR_HOST),
        landing_path=os.getenv("LANDING_PATH", "/"),
        login_path=os.getenv("LOGIN_PATH", "/login"),
        purchase_history_path=os.getenv("PURCHASE_HISTORY_PATH", "/purchase-history"),
        session_storage_ttl_hours=ttl_hours,
        cors_allow_origins=[o.strip() for o in origins.split(",") if o.strip()],
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()


__all__ = ["Settings", "get_settings", "load_settings"]
