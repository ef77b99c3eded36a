"""One-shot recursive upload of a local directory."""

import asyncio
import os
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple, Union

from ..api_clients import AuthenticationError, BaseRemoteClient
from ..config.schema import UploadMode
from ..ignore import IgnoreRules, should_skip
from ..utils.logging import get_logger, log_duration
from ..utils.paths import get_remote_path
from .operations import get_file_mapper_query
from .queue import OperationQueue


class FileUploadResultType(str, Enum):
    """How a file fared in a bulk upload."""
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass
class FileUploadResult:
    """Result of uploading one file during a bulk upload."""

    local_path: str
    remote_path: str
    result_type: FileUploadResultType
    error: Optional[str] = None


def walk(src: str, ignore_rules: Optional[IgnoreRules] = None) -> List[str]:
    """All files below ``src`` in a stable order, pruning ignored directories."""
    files = []
    for root, dirs, filenames in os.walk(src):
        if ignore_rules is not None:
            dirs[:] = [
                d for d in dirs
                if not ignore_rules.should_ignore_file(os.path.join(root, d), is_dir=True)
            ]
        dirs.sort()
        for filename in sorted(filenames):
            files.append(os.path.join(root, filename))
    return files


@log_duration
async def upload_folder(
    account_id: str,
    src: str,
    dest: str,
    client: BaseRemoteClient,
    mode: Union[UploadMode, str, None] = None,
    cwd: Optional[str] = None,
    ignore_rules: Optional[IgnoreRules] = None,
    queue: Optional[OperationQueue] = None
) -> List[FileUploadResult]:
    """Upload every allowed, non-ignored file under ``src`` to ``dest``.

    Files that fail are collected and retried once after the first pass has
    finished. Authentication failures abort the whole upload.

    Returns:
        One FileUploadResult per file that was attempted
    """
    logger = get_logger("upload_folder")
    rules = ignore_rules or IgnoreRules(cwd)
    rules.add_root(src)
    queue = queue or OperationQueue()
    params = get_file_mapper_query(mode)

    files = [f for f in walk(src, rules) if not should_skip(f, rules)]
    failures: List[Tuple[str, str]] = []
    aborted = asyncio.Event()

    logger.debug("Uploading folder", src=src, dest=dest, files=len(files))

    async def upload_once(file: str, dest_path: str) -> Optional[FileUploadResult]:
        if aborted.is_set():
            return None
        logger.debug(f'Attempting to upload file "{file}" to "{dest_path}"')
        try:
            await client.upload_file(account_id, file, dest_path, params)
        except AuthenticationError:
            aborted.set()
            raise
        except Exception as e:
            logger.debug(
                f'Uploading file "{file}" to "{dest_path}" failed so scheduled retry',
                error=str(e)
            )
            failures.append((file, dest_path))
            return None
        logger.info(f"Uploaded file {file} to {dest_path}")
        return FileUploadResult(file, dest_path, FileUploadResultType.SUCCESS)

    async def retry_upload(file: str, dest_path: str) -> Optional[FileUploadResult]:
        if aborted.is_set():
            return None
        try:
            await client.upload_file(account_id, file, dest_path, params)
        except AuthenticationError:
            aborted.set()
            raise
        except Exception as e:
            logger.error(
                f"Uploading file {file} to {dest_path} failed",
                account_id=account_id,
                request=dest_path,
                payload=file,
                status=getattr(e, "status", None),
                error=str(e)
            )
            return FileUploadResult(file, dest_path, FileUploadResultType.FAILURE, str(e))
        logger.info(f"Uploaded file {file} to {dest_path} on retry")
        return FileUploadResult(file, dest_path, FileUploadResultType.SUCCESS)

    first_pass = await _gather_or_cancel([
        queue.enqueue(lambda f=f: upload_once(f, get_remote_path(src, dest, f)))
        for f in files
    ])

    retried = await _gather_or_cancel([
        queue.enqueue(lambda f=f, d=d: retry_upload(f, d))
        for f, d in failures
    ])

    return [r for r in first_pass + retried if r is not None]


async def _gather_or_cancel(tasks: List["asyncio.Task"]) -> list:
    """Gather ``tasks``; on the first error cancel the rest and re-raise it."""
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
