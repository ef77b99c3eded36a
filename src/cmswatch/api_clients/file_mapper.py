"""File mapper API client for the remote CMS content store."""

import asyncio
import os
from typing import Any, Dict, Optional
from urllib.parse import quote

import aiohttp

from .base import (
    BaseRemoteClient,
    RemoteAPIError,
    AuthenticationError,
    RateLimitError,
    APIConnectionError
)

FILE_MAPPER_API_PATH = "content/filemapper/v1"


class FileMapperClient(BaseRemoteClient):
    """aiohttp client for the file mapper upload and delete endpoints."""

    def __init__(
        self,
        base_url: str = "https://api.hubapi.com",
        access_token: Optional[str] = None,
        timeout_seconds: float = 60.0,
        session: Optional[aiohttp.ClientSession] = None,
        **kwargs
    ):
        """Initialize the file mapper client.

        Args:
            base_url: Base API URL
            access_token: Bearer token sent with every request, if set
            timeout_seconds: Total timeout for a single request
            session: Existing session to reuse; created lazily otherwise
        """
        super().__init__(**kwargs)

        self.base_url = base_url.rstrip('/')
        self.access_token = access_token
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self.session = session
        self._owns_session = session is None

    @classmethod
    def from_settings(cls, api_settings) -> "FileMapperClient":
        """Build a client from ``ApiSettings``."""
        return cls(
            base_url=api_settings.base_url,
            access_token=api_settings.access_token,
            timeout_seconds=api_settings.timeout_seconds
        )

    def _get_session(self) -> aiohttp.ClientSession:
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(timeout=self.timeout)
            self._owns_session = True
        return self.session

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    def _url(self, action: str, remote_path: str) -> str:
        return f"{self.base_url}/{FILE_MAPPER_API_PATH}/{action}/{quote(remote_path.lstrip('/'))}"

    @staticmethod
    def _query(account_id: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, str]:
        query = {"portalId": str(account_id)}
        for key, value in (params or {}).items():
            query[key] = str(value).lower() if isinstance(value, bool) else str(value)
        return query

    async def _check_response(self, response: aiohttp.ClientResponse) -> Any:
        if response.status in (401, 403):
            raise AuthenticationError(
                f"Request rejected: {response.status}", status=response.status
            )
        if response.status == 429:
            retry_after = response.headers.get("Retry-After")
            raise RateLimitError(
                "Rate limit exceeded",
                retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None
            )
        if response.status >= 400:
            error_text = await response.text()
            raise RemoteAPIError(
                f"API request failed: {response.status} - {error_text}",
                status=response.status
            )
        if response.content_type == "application/json":
            return await response.json()
        return await response.text()

    async def upload_file(
        self,
        account_id: str,
        local_path: str,
        dest_path: str,
        params: Optional[Dict[str, Any]] = None
    ) -> Any:
        """Upload ``local_path`` as multipart form data to ``dest_path``."""
        session = self._get_session()
        url = self._url("upload", dest_path)

        try:
            with open(local_path, "rb") as f:
                content = f.read()
        except OSError as e:
            raise RemoteAPIError(f"Unable to read {local_path}: {e}")

        form = aiohttp.FormData()
        form.add_field("file", content, filename=os.path.basename(local_path))

        try:
            async with session.post(
                url,
                data=form,
                params=self._query(account_id, params),
                headers=self._headers()
            ) as response:
                return await self._check_response(response)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise APIConnectionError(f"Network error: {e}")

    async def delete_file(self, account_id: str, remote_path: str) -> Any:
        """Delete ``remote_path`` from the remote store."""
        session = self._get_session()
        url = self._url("delete", remote_path)

        try:
            async with session.delete(
                url,
                params=self._query(account_id),
                headers=self._headers()
            ) as response:
                return await self._check_response(response)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise APIConnectionError(f"Network error: {e}")

    async def close(self) -> None:
        """Close the HTTP session if this client created it."""
        if self.session is not None and self._owns_session and not self.session.closed:
            await self.session.close()
