"""Logging setup using Loguru.

Human-readable coloured output for development, one JSON object per line
when ``LOG_JSON`` is enabled. The request id of the HTTP request being
served is kept in a context variable and attached to every record.
"""

import json
import sys
import traceback
from contextvars import ContextVar
from typing import Any, Dict, Optional

from loguru import logger as loguru_logger

from config import settings

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def serialize(record: Dict[str, Any]) -> str:
    """Render a Loguru record as a compact JSON line."""
    subset = {
        "time": record["time"].isoformat(),
        "level": record["level"].name,
        "message": record["message"],
        "module": record["module"],
        "function": record["function"],
        "line": record["line"],
    }

    if request_id := request_id_var.get():
        subset["request_id"] = request_id

    subset.update(record["extra"])

    if exc := record["exception"]:
        subset["exception"] = {
            "type": exc.type.__name__ if exc.type else None,
            "value": str(exc.value),
            "traceback": traceback.format_exception(
                exc.type, exc.value, exc.traceback
            ),
        }

    return json.dumps(subset, default=str)


def patching(record: Dict[str, Any]) -> None:
    record["serialized"] = serialize(record)


def custom_formatter(record: Dict[str, Any]) -> str:
    return "{serialized}\n"


def setup_logging(level: str = "INFO", json_logs: bool = False) -> Any:
    """Configure the global Loguru logger.

    Args:
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: Emit JSON lines instead of coloured text

    Returns:
        The patched logger instance
    """
    loguru_logger.remove()
    patched_logger = loguru_logger.patch(patching)

    if json_logs:
        patched_logger.add(
            sys.stderr,
            level=level,
            format=custom_formatter,
            serialize=False,
        )
    else:
        patched_logger.add(
            sys.stderr,
            level=level,
            format=(
                "<green>{time:HH:mm:ss.SSS}</green> | "
                "<level>{level: <8}</level> | "
                "<cyan>{name}</cyan>:<cyan>{function}</cyan> | "
                "<level>{message}</level>"
            ),
            colorize=True,
        )

    return patched_logger


logger = setup_logging(level=settings.LOG_LEVEL, json_logs=settings.LOG_JSON)
