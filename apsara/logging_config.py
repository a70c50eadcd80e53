"""Logging configuration with structured JSON logging for tool calls."""

import json
import logging
import os
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator


# Default log level
DEFAULT_LOG_LEVEL = "INFO"

TOOL_LOGGER_NAME = "apsara.tools"

# Extra record attributes copied into the JSON payload
_EXTRA_FIELDS = (
    "tool",
    "latency_ms",
    "status",
    "error_type",
    "error_message",
)


def get_log_level() -> int:
    """Get the log level from environment variable.

    Returns:
        Logging level constant (e.g., logging.INFO, logging.DEBUG)
    """
    level_str = os.getenv("LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()
    level_map = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }
    return level_map.get(level_str, logging.INFO)


def debug_enabled(feature: str = "log") -> bool:
    """Check a per-feature debug toggle.

    ``DEBUG_LOG`` is the master switch. ``DEBUG_TOOLS`` and ``DEBUG_RELAY``
    fall back to it when unset.
    """
    master = os.getenv("DEBUG_LOG", "true").lower() in ("true", "1", "yes", "on")
    if feature == "log":
        return master
    value = os.getenv(f"DEBUG_{feature.upper()}")
    if value is None:
        return master
    return value.lower() in ("true", "1", "yes", "on")


class JSONFormatter(logging.Formatter):
    """Formatter that outputs log records as JSON."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for name in _EXTRA_FIELDS:
            if hasattr(record, name):
                log_data[name] = getattr(record, name)

        return json.dumps(log_data)


def configure_logging() -> None:
    """Configure logging with JSON formatter and environment-based log level."""
    log_level = get_log_level()

    # Configure root logger to respect LOG_LEVEL
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    logger = logging.getLogger(TOOL_LOGGER_NAME)
    logger.setLevel(log_level)
    logger.handlers = []

    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter())
    logger.addHandler(handler)

    # Prevent propagation to root logger
    logger.propagate = False


def get_tool_logger() -> logging.Logger:
    """Get the configured tool logger."""
    logger = logging.getLogger(TOOL_LOGGER_NAME)
    if not logger.handlers:
        configure_logging()
    return logger


@asynccontextmanager
async def log_tool_call(tool: str) -> AsyncGenerator[dict[str, Any], None]:
    """Context manager for logging tool calls with latency measurement.

    Args:
        tool: Name of the tool being executed

    Yields:
        A dictionary the caller may fill with a ``status`` override
        (e.g. ``"failed"`` when the tool returned ``success: False``)
    """
    logger = get_tool_logger()
    start_time = time.perf_counter()
    result_context: dict[str, Any] = {}

    try:
        yield result_context

        latency_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            "Tool call completed",
            extra={
                "tool": tool,
                "latency_ms": round(latency_ms, 2),
                "status": result_context.get("status", "success"),
            },
        )

    except Exception as e:
        latency_ms = (time.perf_counter() - start_time) * 1000
        logger.error(
            "Tool call failed",
            extra={
                "tool": tool,
                "latency_ms": round(latency_ms, 2),
                "status": "error",
                "error_type": type(e).__name__,
                "error_message": str(e),
            },
        )
        # Re-raise the exception for the caller to handle
        raise
