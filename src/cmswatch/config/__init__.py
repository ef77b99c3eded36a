"""Configuration package for cms-watch."""

from .settings import (
    ApiSettings,
    WatchSettings,
    LoggingSettings,
    AppSettings,
    get_settings,
    reload_settings
)

from .schema import (
    UploadMode,
    WatchOptions
)

from .loader import (
    ConfigurationError,
    load_watch_options,
    load_watch_options_from_env
)

__all__ = [
    # Settings
    "ApiSettings",
    "WatchSettings",
    "LoggingSettings",
    "AppSettings",
    "get_settings",
    "reload_settings",

    # Session options
    "UploadMode",
    "WatchOptions",

    "ConfigurationError",
    "load_watch_options",
    "load_watch_options_from_env"
]
