"""Shared utilities."""

from .logging import setup_logging, get_logger, log_duration
from .paths import (
    ALLOWED_EXTENSIONS,
    convert_to_unix_path,
    get_ext,
    get_remote_path,
    is_allowed_extension
)

__all__ = [
    "setup_logging",
    "get_logger",
    "log_duration",
    "ALLOWED_EXTENSIONS",
    "convert_to_unix_path",
    "get_ext",
    "get_remote_path",
    "is_allowed_extension"
]
