"""
Runtime configuration.

Settings are read from the environment (after loading the project's `.env`
file) the first time they are needed, so a missing secret surfaces as a
`ConfigurationError` at first use rather than at import time.

Environment variables:
- SUPABASE_URL, SUPABASE_KEY: Supabase project URL and server-side key
- DUITKU_MERCHANT_CODE, DUITKU_API_KEY: payment gateway credentials (required)
- DUITKU_BASE_URL: gateway base URL (default: sandbox)
- SITE_URL: public site URL used for callback/return URLs
- DUITKU_TIMEOUT_SECONDS, DUITKU_MAX_RETRIES: outbound call limits
- SENDPULSE_ID, SENDPULSE_SECRET: transactional e-mail credentials (required)
- SENDPULSE_BASE_URL, EMAIL_FROM_ADDRESS, EMAIL_FROM_NAME: e-mail options
- WEBHOOK_SECRET: shared secret for the Supabase database webhook (optional)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from services.errors import ConfigurationError

# Look for .env in the project root
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DEFAULT_DUITKU_BASE_URL = "https://sandbox.duitku.com"
DEFAULT_SITE_URL = "https://tarjuman.org"
DEFAULT_SENDPULSE_BASE_URL = "https://api.sendpulse.com"


def _require(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise ConfigurationError(f"Missing environment variable: {name}")
    return value


@dataclass(frozen=True, slots=True)
class SupabaseSettings:
    url: str
    key: str

    @classmethod
    def from_env(cls) -> "SupabaseSettings":
        return cls(url=_require("SUPABASE_URL"), key=_require("SUPABASE_KEY"))


@dataclass(frozen=True, slots=True)
class GatewaySettings:
    """Duitku merchant credentials and endpoint configuration."""

    merchant_code: str
    api_key: str
    base_url: str = DEFAULT_DUITKU_BASE_URL
    site_url: str = DEFAULT_SITE_URL
    timeout_seconds: float = 10.0
    max_retries: int = 2

    @classmethod
    def from_env(cls) -> "GatewaySettings":
        merchant_code = os.getenv("DUITKU_MERCHANT_CODE")
        api_key = os.getenv("DUITKU_API_KEY")
        if not merchant_code or not api_key:
            raise ConfigurationError("DUITKU_MERCHANT_CODE and DUITKU_API_KEY must be set")

        return cls(
            merchant_code=merchant_code,
            api_key=api_key,
            base_url=os.getenv("DUITKU_BASE_URL") or DEFAULT_DUITKU_BASE_URL,
            site_url=os.getenv("SITE_URL") or DEFAULT_SITE_URL,
            timeout_seconds=float(os.getenv("DUITKU_TIMEOUT_SECONDS", "10")),
            max_retries=int(os.getenv("DUITKU_MAX_RETRIES", "2")),
        )


@dataclass(frozen=True, slots=True)
class EmailSettings:
    """SendPulse SMTP API credentials and sender identity."""

    client_id: str
    client_secret: str
    base_url: str = DEFAULT_SENDPULSE_BASE_URL
    from_address: str = "admin@tarjuman.org"
    from_name: str = "Tarjuman"
    timeout_seconds: float = 10.0

    @classmethod
    def from_env(cls) -> "EmailSettings":
        client_id = os.getenv("SENDPULSE_ID")
        client_secret = os.getenv("SENDPULSE_SECRET")
        if not client_id or not client_secret:
            raise ConfigurationError(
                "SENDPULSE credentials are not configured in environment variables."
            )

        return cls(
            client_id=client_id,
            client_secret=client_secret,
            base_url=os.getenv("SENDPULSE_BASE_URL") or DEFAULT_SENDPULSE_BASE_URL,
            from_address=os.getenv("EMAIL_FROM_ADDRESS") or "admin@tarjuman.org",
            from_name=os.getenv("EMAIL_FROM_NAME") or "Tarjuman",
        )


def get_webhook_secret() -> Optional[str]:
    """Shared secret expected in the Supabase webhook header, if configured."""
    return os.getenv("WEBHOOK_SECRET") or None


__all__ = [
    "EmailSettings",
    "GatewaySettings",
    "SupabaseSettings",
    "get_webhook_secret",
]
