from __future__ import annotations

import logging
import os

DB_URL = os.getenv("TOOTFEED_DB_URL", "sqlite:///tootfeed.db")
CLIENT_NAME = os.getenv("TOOTFEED_CLIENT_NAME", "tootfeed")
WEBSITE = os.getenv("TOOTFEED_WEBSITE", "http://localhost")
DEFAULT_ENDPOINT = os.getenv("TOOTFEED_DEFAULT_ENDPOINT", "")
LOG_LEVEL = os.getenv("TOOTFEED_LOG_LEVEL", "INFO")


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logging.getLogger("tootfeed").warning("config_invalid name=%s value=%r", name, raw)
        return default


HTTP_TIMEOUT = _float_env("TOOTFEED_HTTP_TIMEOUT", 20.0)


def configure_logging() -> None:
    level = getattr(logging, LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(message)s")
