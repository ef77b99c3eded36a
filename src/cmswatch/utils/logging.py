"""Structured logging for the watch engine.

structlog renders every event; stdlib ``logging`` handlers decide where the
rendered line goes. Handlers installed here carry a marker attribute so a
second ``setup_logging`` call swaps them out instead of doubling output.
"""

import functools
import logging
import logging.handlers
import sys
import time
from pathlib import Path
from typing import List, Optional

import colorlog
import structlog
from structlog.typing import Processor

HANDLER_MARKER = "_cmswatch"

LEVEL_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "red,bg_white",
}

# watchdog logs every emitter start at debug level
NOISY_LOGGERS = ("watchdog", "asyncio")


def _processor_chain(format_type: str) -> List[Processor]:
    chain: List[Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if format_type == "json":
        chain.append(structlog.processors.JSONRenderer())
    else:
        chain.append(structlog.dev.ConsoleRenderer(colors=False))
    return chain


def _rotating_file_handler(file_path: str) -> logging.Handler:
    Path(file_path).parent.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        file_path,
        maxBytes=5 * 1024 * 1024,
        backupCount=3,
        encoding="utf-8"
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    return handler


def _console_handler() -> logging.Handler:
    handler = colorlog.StreamHandler(sys.stderr)
    handler.setFormatter(colorlog.ColoredFormatter(
        "%(log_color)s%(message)s",
        log_colors=LEVEL_COLORS
    ))
    return handler


def setup_logging(
    log_level: Optional[str] = None,
    log_format: Optional[str] = None,
    log_file: Optional[str] = None
) -> None:
    """Configure structlog and install console (and optionally file) handlers.

    Arguments left as None fall back to ``LoggingSettings``.
    """
    from ..config.settings import get_settings

    logging_settings = get_settings().logging
    level_name = (log_level or logging_settings.level).upper()
    level = logging.getLevelName(level_name)
    file_path = log_file or logging_settings.file_path

    structlog.configure(
        processors=_processor_chain(log_format or logging_settings.format),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in list(root_logger.handlers):
        if getattr(handler, HANDLER_MARKER, False):
            root_logger.removeHandler(handler)
            handler.close()

    handlers = [_console_handler()]
    if file_path:
        handlers.append(_rotating_file_handler(file_path))
    for handler in handlers:
        handler.setLevel(level)
        setattr(handler, HANDLER_MARKER, True)
        root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.INFO))


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


def log_duration(func):
    """Log at debug level how long a coroutine function took.

    Failures are re-raised untouched; reporting them is left to the caller.
    """

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        logger = get_logger(func.__module__)
        started = time.monotonic()
        try:
            result = await func(*args, **kwargs)
        except Exception as e:
            logger.debug(
                f"{func.__name__} raised {type(e).__name__}",
                elapsed=round(time.monotonic() - started, 3)
            )
            raise
        logger.debug(f"{func.__name__} finished", elapsed=round(time.monotonic() - started, 3))
        return result

    return wrapper
