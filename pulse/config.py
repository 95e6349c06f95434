from __future__ import annotations

import logging
import os
from pathlib import Path

SESSION_COOKIE_NAME = "session_id"
SESSION_MAX_AGE_SECONDS = 14 * 24 * 60 * 60
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def env_str(name: str, default: str = "") -> str:
    return str(os.getenv(name, default) or default).strip()


def environment() -> str:
    return env_str("ENVIRONMENT", "local")


def bootstrap_token() -> str:
    return env_str("BOOTSTRAP_TOKEN")


def upload_dir() -> Path:
    return Path(env_str("UPLOAD_DIR", "./uploads"))


def file_url_secret() -> str:
    return env_str("FILE_URL_SECRET") or env_str("SESSION_SECRET") or "precision-pulse-dev-file-secret"


def injury_email_webhook_url() -> str:
    return env_str("INJURY_EMAIL_WEBHOOK_URL")


def notify_timeout_seconds() -> float:
    raw = env_str("NOTIFY_TIMEOUT_SECONDS", "10")
    try:
        return float(raw)
    except ValueError:
        return 10.0


def setup_logging(level: str | None = None) -> None:
    logging.basicConfig(level=(level or env_str("LOG_LEVEL", "INFO")).upper(), format=LOG_FORMAT)
