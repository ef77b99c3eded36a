"""Ignore filter for local paths."""

from .rules import (
    DEFAULT_IGNORE_PATTERNS,
    IGNORE_FILE_NAME,
    IgnoreRules,
    find_ignore_file,
    load_ignore_patterns,
    should_skip
)

__all__ = [
    "DEFAULT_IGNORE_PATTERNS",
    "IGNORE_FILE_NAME",
    "IgnoreRules",
    "find_ignore_file",
    "load_ignore_patterns",
    "should_skip"
]
