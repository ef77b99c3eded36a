"""Remote content store clients."""

from .base import (
    BaseRemoteClient,
    RemoteAPIError,
    AuthenticationError,
    RateLimitError,
    APIConnectionError
)

from .file_mapper import FileMapperClient

__all__ = [
    # Base classes and exceptions
    "BaseRemoteClient",
    "RemoteAPIError",
    "AuthenticationError",
    "RateLimitError",
    "APIConnectionError",

    # Client implementations
    "FileMapperClient"
]
