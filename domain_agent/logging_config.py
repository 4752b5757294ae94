# domain_agent/logging_config.py
"""
Logging setup for the Domain Agent API.

Console output is human readable in development and JSON elsewhere when
LOG_FORMAT=json. Business events (purchases, payments, registrations) go to
a dedicated "business" logger so they can be shipped separately.
"""

import json
import logging
import sys
import traceback
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler, TimedRotatingFileHandler
from pathlib import Path
from typing import Any, Optional

from .config import settings

# Attributes copied from the LogRecord into structured output when present
CONTEXT_FIELDS = ("user_id", "request_id")


class StructuredFormatter(logging.Formatter):
    """JSON formatter for log aggregation"""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                payload[field] = value

        extra_data = getattr(record, "extra_data", None)
        if extra_data:
            payload["extra"] = extra_data

        if record.exc_info and record.exc_info[0] is not None:
            payload["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": traceback.format_exception(*record.exc_info),
            }

        return json.dumps(payload, default=str)


class HumanReadableFormatter(logging.Formatter):
    """Single-line console formatter, coloured in development"""

    COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
    }
    RESET = '\033[0m'

    def __init__(self, use_color: bool = False):
        super().__init__()
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        level = f"{record.levelname:8s}"
        if self.use_color:
            level = f"{self.COLORS.get(record.levelname, self.RESET)}{level}{self.RESET}"

        timestamp = datetime.fromtimestamp(record.created).strftime('%Y-%m-%d %H:%M:%S')
        line = f"{timestamp} | {level} | {record.name:30s} | {record.getMessage()}"

        user_id = getattr(record, "user_id", None)
        if user_id:
            line += f" [user={user_id}]"

        request_id = getattr(record, "request_id", None)
        if request_id:
            line += f" [req={request_id[:8]}]"

        if record.exc_info:
            line += f"\n{self.formatException(record.exc_info)}"

        return line


def _rotating_handler(path: Path, level: int, **kwargs) -> logging.Handler:
    handler = RotatingFileHandler(path, encoding="utf-8", **kwargs)
    handler.setLevel(level)
    handler.setFormatter(StructuredFormatter())
    return handler


def setup_logging():
    """Configure root, business and third-party loggers. Call once at startup."""
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    root_logger.handlers.clear()

    is_development = settings.ENVIRONMENT == "development"

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG if is_development else logging.INFO)
    if settings.LOG_FORMAT == "json":
        console_handler.setFormatter(StructuredFormatter())
    else:
        console_handler.setFormatter(HumanReadableFormatter(use_color=is_development))
    root_logger.addHandler(console_handler)

    # ========================================================================
    # FILE HANDLERS (optional)
    # ========================================================================
    if settings.ENABLE_FILE_LOGGING:
        log_dir = Path("logs")
        log_dir.mkdir(exist_ok=True)

        root_logger.addHandler(
            _rotating_handler(log_dir / "app.log", logging.INFO, maxBytes=10 * 1024 * 1024, backupCount=5)
        )

        error_handler = TimedRotatingFileHandler(
            log_dir / "errors.log",
            when="midnight",
            backupCount=30,
            encoding="utf-8"
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(StructuredFormatter())
        root_logger.addHandler(error_handler)

        business_logger.addHandler(
            _rotating_handler(log_dir / "business.log", logging.INFO, maxBytes=10 * 1024 * 1024, backupCount=10)
        )

    # Reduce noise from third-party libraries
    for noisy in ("uvicorn.access", "sqlalchemy.engine", "httpx", "httpcore", "stripe", "google_genai"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        "Logging configured",
        extra={
            "extra_data": {
                "environment": settings.ENVIRONMENT,
                "log_level": settings.LOG_LEVEL,
                "log_format": settings.LOG_FORMAT,
                "file_logging": settings.ENABLE_FILE_LOGGING
            }
        }
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


business_logger = logging.getLogger("business")


def log_business_event(
    event_type: str,
    user_id: Optional[str] = None,
    **kwargs: Any
):
    """
    Record a business event (domain_registered, refund_processed, ...).

    Usage:
        log_business_event(
            "payment_confirmed",
            user_id=str(user.id),
            domain="brandtest.com",
            amount="14.29"
        )
    """
    business_logger.info(
        f"Business Event: {event_type}",
        extra={
            "user_id": user_id,
            "extra_data": {
                "event_type": event_type,
                **kwargs
            }
        }
    )
