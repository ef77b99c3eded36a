"""Core watch and sync logic package."""

from .queue import OperationQueue
from .operations import (
    OperationKind,
    OperationOutcome,
    OperationResult,
    RemoteOperations,
    get_file_mapper_query
)
from .notify import NotifyBatcher
from .upload_folder import FileUploadResult, FileUploadResultType, upload_folder
from .watcher import (
    FileEvent,
    FileEventType,
    FileSubscription,
    WatchdogSubscription,
    WatchError,
    WatchSession,
    WatchState,
    watch
)

__all__ = [
    "OperationQueue",
    "OperationKind",
    "OperationOutcome",
    "OperationResult",
    "RemoteOperations",
    "get_file_mapper_query",
    "NotifyBatcher",
    "FileUploadResult",
    "FileUploadResultType",
    "upload_folder",
    "FileEvent",
    "FileEventType",
    "FileSubscription",
    "WatchdogSubscription",
    "WatchError",
    "WatchSession",
    "WatchState",
    "watch"
]
