"""
config.py

Purpose:
- Load settings for the Wells Fargo processing dashboard from .env
- Configure file logging (NO stdout -> safer for MCP stdio)
"""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Always write logs next to this file unless WF_LOG_FILE says otherwise
DEFAULT_LOG = Path(__file__).with_name("wf_processing.log")

DEFAULT_SOP_URL = (
    "https://8289753.app.netsuite.com/app/site/hosting/scriptlet.nl"
    "?script=3923&deploy=1#15"
)


def require_env(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise RuntimeError(f"Missing required environment variable: {name}")
    return value


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    account_id: str
    client_id: str
    client_secret: str
    refresh_token: str
    redirect_uri: str = "http://localhost:8000/oauth/callback"

    # Business constants used when creating records
    payment_method_id: int = 12
    default_location_id: int = 1
    manager_employee_id: int = 185
    sender_employee_id: int | None = None
    sop_url: str = DEFAULT_SOP_URL
    row_limit: int = 1000

    smtp_host: str = ""
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    smtp_sender: str = ""
    smtp_use_tls: bool = True

    log_file: str = str(DEFAULT_LOG)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Build settings from environment variables.
        NetSuite credentials are required; everything else has a default.
        """
        sender = os.getenv("WF_SENDER_EMPLOYEE_ID")
        return cls(
            account_id=require_env("NETSUITE_ACCOUNT_ID"),
            client_id=require_env("NETSUITE_CLIENT_ID"),
            client_secret=require_env("NETSUITE_CLIENT_SECRET"),
            refresh_token=require_env("NETSUITE_REFRESH_TOKEN"),
            redirect_uri=os.getenv(
                "NETSUITE_REDIRECT_URI", "http://localhost:8000/oauth/callback"
            ),
            payment_method_id=_env_int("WF_PAYMENT_METHOD_ID", 12),
            default_location_id=_env_int("WF_DEFAULT_LOCATION_ID", 1),
            manager_employee_id=_env_int("WF_MANAGER_EMPLOYEE_ID", 185),
            sender_employee_id=int(sender) if sender else None,
            sop_url=os.getenv("WF_SOP_URL", DEFAULT_SOP_URL),
            row_limit=_env_int("WF_ROW_LIMIT", 1000),
            smtp_host=os.getenv("SMTP_HOST", ""),
            smtp_port=_env_int("SMTP_PORT", 587),
            smtp_username=os.getenv("SMTP_USERNAME", ""),
            smtp_password=os.getenv("SMTP_PASSWORD", ""),
            smtp_sender=os.getenv("SMTP_SENDER", ""),
            smtp_use_tls=_env_bool("SMTP_USE_TLS", True),
            log_file=str(
                Path(os.getenv("WF_LOG_FILE", str(DEFAULT_LOG))).expanduser().resolve()
            ),
            log_level=os.getenv("WF_LOG_LEVEL", "INFO").upper(),
        )


@lru_cache()
def get_settings() -> Settings:
    """
    Cached settings instance.
    Tests call get_settings.cache_clear() after changing the environment.
    """
    return Settings.from_env()


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        filename=settings.log_file,
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        encoding="utf-8",
    )
