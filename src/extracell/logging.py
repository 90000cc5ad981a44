"""Logging configuration using loguru with request context support."""

import sys
from contextvars import ContextVar

from loguru import logger

# Tool call currently being handled
request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)


def format_record(_record: dict) -> str:
    """Format log record with request context."""
    request_id = request_id_ctx.get()
    context_str = f"[req={request_id[:8]}] " if request_id else ""

    return (
        "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
        f"{context_str}"
        "<level>{message}</level>\n"
        "{exception}"
    )


def setup_logging(json_logs: bool = False, log_level: str = "INFO") -> None:
    """Configure loguru for extracell.

    Args:
        json_logs: If True, output logs as JSON (useful when embedded in a service)
        log_level: Minimum log level to output
    """
    logger.remove()

    if json_logs:
        logger.add(
            sys.stderr,
            format="{message}",
            level=log_level,
            serialize=True,
        )
    else:
        logger.add(
            sys.stderr,
            format=format_record,
            level=log_level,
            colorize=True,
        )


__all__ = [
    "logger",
    "request_id_ctx",
    "setup_logging",
]
