"""Queued remote upload and delete operations."""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union

from ..api_clients import BaseRemoteClient
from ..config.schema import UploadMode
from ..utils.logging import get_logger
from .queue import OperationQueue


class OperationKind(str, Enum):
    """What a queued operation does to the remote store."""
    UPLOAD = "upload"
    DELETE = "delete"


class OperationOutcome(str, Enum):
    """Terminal state of a queued operation."""
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class OperationResult:
    """One upload or delete unit of work and how it ended."""

    kind: OperationKind
    account_id: str
    remote_path: str
    local_path: Optional[str] = None
    attempts: int = 0
    outcome: OperationOutcome = OperationOutcome.PENDING
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.outcome == OperationOutcome.SUCCEEDED


def get_file_mapper_query(mode: Union[UploadMode, str, None]) -> Dict[str, Any]:
    """Query parameters selecting the upload mode.

    Drafts are buffered on the remote side; anything else publishes.
    """
    value = mode.value if isinstance(mode, UploadMode) else (mode or "")
    return {"buffer": value.lower() == UploadMode.DRAFT.value}


class RemoteOperations:
    """Upload and delete wrappers that run through an ``OperationQueue``.

    Uploads are retried once immediately after a failure; deletes are never
    retried. Neither raises: failures are logged and reported through the
    returned ``OperationResult``.
    """

    def __init__(self, client: BaseRemoteClient, queue: OperationQueue):
        self.client = client
        self.queue = queue
        self.logger = get_logger(self.__class__.__name__)

    def upload(
        self,
        account_id: str,
        local_path: str,
        dest_path: str,
        mode: Union[UploadMode, str, None] = None
    ) -> "asyncio.Task[OperationResult]":
        """Queue an upload of ``local_path`` to ``dest_path``."""
        result = OperationResult(
            kind=OperationKind.UPLOAD,
            account_id=account_id,
            local_path=local_path,
            remote_path=dest_path
        )
        params = get_file_mapper_query(mode)

        self.logger.debug(f'Attempting to upload file "{local_path}" to "{dest_path}"')

        async def run_upload() -> OperationResult:
            try:
                result.attempts += 1
                await self.client.upload_file(account_id, local_path, dest_path, params)
            except Exception as first_error:
                self.logger.debug(
                    f"Uploading file {local_path} to {dest_path} failed",
                    error=str(first_error)
                )
                self.logger.debug(f'Retrying to upload file "{local_path}" to "{dest_path}"')
                try:
                    result.attempts += 1
                    await self.client.upload_file(account_id, local_path, dest_path, params)
                except Exception as e:
                    result.outcome = OperationOutcome.FAILED
                    result.error = str(e)
                    self.logger.error(
                        f"Uploading file {local_path} to {dest_path} failed",
                        account_id=account_id,
                        request=dest_path,
                        payload=local_path,
                        status=getattr(e, "status", None),
                        error=str(e)
                    )
                    return result

            result.outcome = OperationOutcome.SUCCEEDED
            self.logger.info(f"Uploaded file {local_path} to {dest_path}")
            return result

        return self.queue.enqueue(run_upload)

    def delete(self, account_id: str, remote_path: str) -> "asyncio.Task[OperationResult]":
        """Queue a delete of ``remote_path``."""
        result = OperationResult(
            kind=OperationKind.DELETE,
            account_id=account_id,
            remote_path=remote_path
        )

        self.logger.debug(f'Attempting to delete file "{remote_path}"')

        async def run_delete() -> OperationResult:
            try:
                result.attempts += 1
                await self.client.delete_file(account_id, remote_path)
            except Exception as e:
                result.outcome = OperationOutcome.FAILED
                result.error = str(e)
                self.logger.error(
                    f"Deleting file {remote_path} failed",
                    account_id=account_id,
                    request=remote_path,
                    status=getattr(e, "status", None),
                    error=str(e)
                )
                return result

            result.outcome = OperationOutcome.SUCCEEDED
            self.logger.info(f"Deleted file {remote_path}")
            return result

        return self.queue.enqueue(run_delete)
