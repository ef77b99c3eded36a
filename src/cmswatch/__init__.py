"""cms-watch - mirror a local directory to a remote CMS file store."""

from .api_clients import (
    BaseRemoteClient,
    FileMapperClient,
    RemoteAPIError,
    AuthenticationError,
    RateLimitError,
    APIConnectionError
)
from .core import (
    FileEvent,
    FileEventType,
    WatchError,
    WatchSession,
    WatchState,
    upload_folder,
    watch
)

__version__ = "1.0.0"

__all__ = [
    "BaseRemoteClient",
    "FileMapperClient",
    "RemoteAPIError",
    "AuthenticationError",
    "RateLimitError",
    "APIConnectionError",
    "FileEvent",
    "FileEventType",
    "WatchError",
    "WatchSession",
    "WatchState",
    "upload_folder",
    "watch",
]
