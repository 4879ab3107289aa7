import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

import sentry_sdk
from pythonjsonlogger import jsonlogger
from sentry_sdk.integrations.logging import LoggingIntegration

from app.base.config import settings

# === Configurable via settings / ENV ===
LOG_DIR = Path(settings.LOG_DIR)
LOG_LEVEL = settings.LOG_LEVEL.upper()
USE_JSON_LOGGING = settings.ENABLE_JSON_LOGS
LOG_TO_FILE = settings.LOG_TO_FILE
ENVIRONMENT = settings.ENVIRONMENT.lower()
SERVICE_NAME = settings.SERVICE_NAME
SENTRY_DSN = settings.SENTRY_DSN

_sentry_initialized = False


def get_formatter(use_json: bool, service: str) -> logging.Formatter:
    if use_json:
        return jsonlogger.JsonFormatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s",
            rename_fields={"levelname": "level"},
            static_fields={"service": service, "environment": ENVIRONMENT},
        )
    return logging.Formatter(
        fmt=f"%(asctime)s | %(levelname)s | %(name)s | [svc={service}] | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )


def init_sentry() -> None:
    """Initialise Sentry once per process when a DSN is configured."""
    global _sentry_initialized
    if not SENTRY_DSN or _sentry_initialized:
        return

    sentry_logging = LoggingIntegration(
        level=logging.INFO,
        event_level=logging.ERROR
    )
    sentry_sdk.init(
        dsn=SENTRY_DSN,
        environment=ENVIRONMENT,
        integrations=[sentry_logging],
        traces_sample_rate=0.05,
        send_default_pii=False
    )
    _sentry_initialized = True


def setup_logger(
    name: str,
    log_file: Optional[str] = None,
    level: str = LOG_LEVEL,
    use_json: bool = USE_JSON_LOGGING,
    service: str = SERVICE_NAME
) -> logging.Logger:
    """
    Sets up a logger with a stdout handler and, when LOG_TO_FILE is on,
    a rotating file handler under LOG_DIR.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False  # Avoid double logging in root

    # Clear old handlers
    if logger.hasHandlers():
        logger.handlers.clear()

    formatter = get_formatter(use_json, service)

    # === Stream Handler (STDOUT) ===
    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    # === File Handler (Rotating) ===
    if log_file and LOG_TO_FILE:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(str(LOG_DIR / log_file), maxBytes=10 * 1024 * 1024, backupCount=5)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    init_sentry()
    return logger


# === Preconfigured loggers ===
app_logger = setup_logger("app", log_file="app.log")
availability_logger = setup_logger("availability", log_file="availability.log")
scoring_logger = setup_logger("scoring", log_file="scoring.log")
error_logger = setup_logger("error_handler", log_file="errors.log")
