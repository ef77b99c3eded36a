"""Base remote client interface and common errors."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from ..utils.logging import get_logger


class BaseRemoteClient(ABC):
    """Abstract base class for remote content store clients."""

    def __init__(self, **kwargs):
        self.logger = get_logger(self.__class__.__name__)

    @abstractmethod
    async def upload_file(
        self,
        account_id: str,
        local_path: str,
        dest_path: str,
        params: Optional[Dict[str, Any]] = None
    ) -> Any:
        """Upload a local file to a remote path.

        Args:
            account_id: Remote account identifier
            local_path: File on the local filesystem
            dest_path: Slash-delimited remote path
            params: Extra query parameters (e.g. upload mode)

        Raises:
            RemoteAPIError: If the upload fails
        """
        pass

    @abstractmethod
    async def delete_file(self, account_id: str, remote_path: str) -> Any:
        """Delete a remote file.

        Raises:
            RemoteAPIError: If the delete fails
        """
        pass

    async def close(self) -> None:
        """Release network resources."""
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


class RemoteAPIError(Exception):
    """Raised when a remote call fails."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class AuthenticationError(RemoteAPIError):
    """Raised when the remote store rejects our credentials."""
    pass


class RateLimitError(RemoteAPIError):
    """Raised when API rate limit is exceeded."""

    def __init__(self, message: str, retry_after: Optional[int] = None, status: Optional[int] = 429):
        super().__init__(message, status=status)
        self.retry_after = retry_after


class APIConnectionError(RemoteAPIError):
    """Raised when the remote store cannot be reached."""
    pass
