"""Watch engine: filesystem events to queued remote operations."""

import asyncio
import contextlib
import os
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional, Protocol, Union

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ..api_clients import BaseRemoteClient
from ..config.schema import UploadMode, WatchOptions
from ..config.settings import get_settings
from ..ignore import IgnoreRules, should_skip
from ..utils.logging import get_logger
from ..utils.paths import get_remote_path
from .notify import NotifyBatcher
from .operations import RemoteOperations
from .queue import OperationQueue
from .upload_folder import upload_folder


class WatchError(Exception):
    """Raised when a watch session is used out of order."""
    pass


class WatchState(str, Enum):
    """Lifecycle of a watch session."""
    INITIALIZING = "initializing"
    READY = "ready"
    STOPPED = "stopped"


class FileEventType(str, Enum):
    """Filesystem changes the engine reacts to."""
    ADD = "add"
    CHANGE = "change"
    UNLINK = "unlink"


ACTION_NAMES = {
    FileEventType.ADD: "Added",
    FileEventType.CHANGE: "Changed",
    FileEventType.UNLINK: "Removed",
}


@dataclass(frozen=True)
class FileEvent:
    """A single file change delivered by a subscription."""

    type: FileEventType
    path: str


EventSink = Callable[[FileEvent], None]

# Raw events for a path within this many seconds of the first count as one write
WRITE_SETTLE_SECONDS = 1.0


class FileSubscription(Protocol):
    """Source of file events for a directory tree.

    ``start`` may block until the subscription is active; it is run off the
    event loop. Events from the startup scan itself must not be delivered.
    """

    def start(self, emit: EventSink) -> None:
        ...

    def stop(self) -> None:
        ...


class _EventForwarder(FileSystemEventHandler):
    """Translates watchdog callbacks into ``FileEvent``s.

    Writing a file produces a burst of raw events (created or modified, more
    modifies, then closed on inotify). Only the first event of a burst is
    forwarded: later modifies for the same path are folded into it until the
    file is closed or ``settle_seconds`` have passed since the burst started.
    """

    def __init__(
        self,
        emit: EventSink,
        ignore: Callable[[str], bool],
        settle_seconds: float = WRITE_SETTLE_SECONDS,
        clock: Callable[[], float] = time.monotonic
    ):
        self.emit = emit
        self.ignore = ignore
        self.settle_seconds = settle_seconds
        self.clock = clock
        self._bursts: Dict[str, float] = {}

    def _forward(self, event_type: FileEventType, path: str) -> None:
        if self.ignore(path):
            return
        self.emit(FileEvent(event_type, path))

    def _in_burst(self, path: str) -> bool:
        started = self._bursts.get(path)
        if started is None:
            return False
        if self.clock() - started < self.settle_seconds:
            return True
        del self._bursts[path]
        return False

    def on_created(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        path = os.fsdecode(event.src_path)
        self._bursts[path] = self.clock()
        self._forward(FileEventType.ADD, path)

    def on_modified(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        path = os.fsdecode(event.src_path)
        if self._in_burst(path):
            return
        self._bursts[path] = self.clock()
        self._forward(FileEventType.CHANGE, path)

    def on_closed(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._bursts.pop(os.fsdecode(event.src_path), None)

    def on_deleted(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        path = os.fsdecode(event.src_path)
        self._bursts.pop(path, None)
        self._forward(FileEventType.UNLINK, path)

    def on_moved(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        src_path = os.fsdecode(event.src_path)
        self._bursts.pop(src_path, None)
        self._forward(FileEventType.UNLINK, src_path)
        self._forward(FileEventType.ADD, os.fsdecode(event.dest_path))


class WatchdogSubscription:
    """``FileSubscription`` backed by a watchdog observer thread."""

    def __init__(
        self,
        path: str,
        ignore: Optional[Callable[[str], bool]] = None,
        settle_seconds: float = WRITE_SETTLE_SECONDS
    ):
        self.path = path
        self.ignore = ignore or (lambda _path: False)
        self.settle_seconds = settle_seconds
        self.observer: Optional[Observer] = None

    def start(self, emit: EventSink) -> None:
        handler = _EventForwarder(emit, self.ignore, self.settle_seconds)
        self.observer = Observer()
        self.observer.schedule(handler, self.path, recursive=True)
        self.observer.start()

    def stop(self) -> None:
        if self.observer is not None:
            self.observer.stop()
            self.observer.join(timeout=10)
            self.observer = None


class WatchSession:
    """One active watch of a local directory.

    Owns its queue, notify batcher and ignore rules, so several sessions can
    run in one process without sharing state. Events from the subscription
    thread are handed to the loop through a single channel and dispatched by
    one task in arrival order.
    """

    def __init__(
        self,
        account_id: str,
        src: str,
        dest: str,
        client: BaseRemoteClient,
        mode: Union[UploadMode, str] = UploadMode.PUBLISH,
        cwd: Optional[str] = None,
        remove: bool = False,
        disable_initial: bool = False,
        notify: Optional[str] = None,
        concurrency: Optional[int] = None,
        debounce_seconds: Optional[float] = None,
        ignore_rules: Optional[IgnoreRules] = None,
        subscription: Optional[FileSubscription] = None
    ):
        watch_settings = get_settings().watch

        self.account_id = account_id
        self.src = src
        self.dest = dest
        self.client = client
        self.mode = mode
        self.cwd = cwd
        self.remove = remove
        self.disable_initial = disable_initial
        self.notify = notify

        self.ignore_rules = ignore_rules or IgnoreRules(
            cwd, ignore_file_name=watch_settings.ignore_file_name
        )
        self.ignore_rules.add_root(src)
        if notify:
            self.ignore_rules.ignore_file(notify)

        if concurrency is None:
            concurrency = watch_settings.queue_concurrency
        if debounce_seconds is None:
            debounce_seconds = watch_settings.notify_debounce_seconds

        self.queue = OperationQueue(concurrency)
        self.operations = RemoteOperations(client, self.queue)
        self.batcher = NotifyBatcher(notify, debounce_seconds)
        self.subscription = subscription or WatchdogSubscription(
            src, self.ignore_rules.should_ignore_file
        )

        self.state = WatchState.INITIALIZING
        self.initial_sync_task: Optional[asyncio.Task] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._events: Optional[asyncio.Queue] = None
        self._dispatcher: Optional[asyncio.Task] = None

        self.logger = get_logger(self.__class__.__name__)

    @classmethod
    def from_options(cls, options: WatchOptions, client: BaseRemoteClient, **kwargs) -> "WatchSession":
        """Create a session from validated ``WatchOptions``."""
        return cls(
            options.account_id,
            options.src,
            options.dest,
            client,
            mode=options.mode,
            cwd=options.cwd,
            remove=options.remove,
            disable_initial=options.disable_initial,
            notify=options.notify,
            **kwargs
        )

    async def start(self) -> "WatchSession":
        """Kick off the initial upload and bring the subscription up."""
        if self._loop is not None:
            raise WatchError("Watch session already started")

        self._loop = asyncio.get_running_loop()
        self._events = asyncio.Queue()

        if not self.disable_initial:
            self.initial_sync_task = self._loop.create_task(self._run_initial_sync())

        await self._loop.run_in_executor(None, self.subscription.start, self.emit_threadsafe)

        self.state = WatchState.READY
        self.logger.info(f"Watcher is ready and watching {self.src}")
        self._dispatcher = self._loop.create_task(self._dispatch_events())
        return self

    async def _run_initial_sync(self) -> None:
        try:
            await upload_folder(
                self.account_id,
                self.src,
                self.dest,
                self.client,
                mode=self.mode,
                cwd=self.cwd,
                ignore_rules=self.ignore_rules
            )
        except Exception as e:
            self.logger.error(
                f"Initial upload of {self.src} to {self.dest} failed",
                account_id=self.account_id,
                error=str(e)
            )
            return
        self.logger.info(
            f"Completed uploading files in {self.src} to {self.dest} in {self.account_id}"
        )

    def emit_threadsafe(self, event: FileEvent) -> None:
        """Hand an event to the loop; safe to call from any thread."""
        if self._loop is None or self._loop.is_closed() or self.state == WatchState.STOPPED:
            return
        self._loop.call_soon_threadsafe(self._events.put_nowait, event)

    async def _dispatch_events(self) -> None:
        while True:
            event = await self._events.get()
            try:
                self.dispatch(event)
            except Exception as e:
                self.logger.error(
                    "Failed to dispatch file event",
                    event_type=event.type.value,
                    path=event.path,
                    error=str(e)
                )
            finally:
                self._events.task_done()

    def dispatch(self, event: FileEvent) -> Optional[asyncio.Task]:
        """Route one event to an upload or delete.

        Returns the queued operation's task, or None when the event was
        dropped.
        """
        if self.state != WatchState.READY:
            return None
        if event.type == FileEventType.UNLINK and not self.remove:
            return None

        if should_skip(event.path, self.ignore_rules):
            return None

        remote_path = get_remote_path(self.src, self.dest, event.path)

        if event.type == FileEventType.UNLINK:
            task = self.operations.delete(self.account_id, remote_path)
        else:
            task = self.operations.upload(self.account_id, event.path, remote_path, self.mode)

        self.batcher.record_event(ACTION_NAMES[event.type], event.path, task)
        return task

    async def drain(self) -> None:
        """Wait until every event handed over so far has been dispatched."""
        if self._events is None:
            return
        # Let call_soon_threadsafe callbacks already scheduled land first
        await asyncio.sleep(0)
        await self._events.join()

    async def stop(self) -> None:
        """Close the subscription and stop dispatching.

        Operations already queued keep running to completion.
        """
        if self.state == WatchState.STOPPED:
            return
        self.state = WatchState.STOPPED

        if self._loop is not None:
            await self._loop.run_in_executor(None, self.subscription.stop)

        if self._dispatcher is not None:
            self._dispatcher.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._dispatcher
            self._dispatcher = None

        self.logger.info(f"Stopped watching {self.src}")

    async def wait_idle(self) -> None:
        """Wait for the initial upload, queued operations and started flushes."""
        if self.initial_sync_task is not None:
            await asyncio.gather(self.initial_sync_task, return_exceptions=True)
        await self.queue.join()
        await self.batcher.wait_idle()

    async def close(self) -> None:
        """Stop watching, let queued work finish and flush the notify file."""
        await self.stop()
        await self.wait_idle()
        await self.batcher.close()


async def watch(
    account_id: str,
    src: str,
    dest: str,
    client: BaseRemoteClient,
    mode: Union[UploadMode, str] = UploadMode.PUBLISH,
    cwd: Optional[str] = None,
    remove: bool = False,
    disable_initial: bool = False,
    notify: Optional[str] = None,
    **kwargs
) -> WatchSession:
    """Start watching ``src`` and mirroring it to ``dest`` on the remote store.

    Returns the running session; call ``stop()`` or ``close()`` to end it.
    """
    session = WatchSession(
        account_id,
        src,
        dest,
        client,
        mode=mode,
        cwd=cwd,
        remove=remove,
        disable_initial=disable_initial,
        notify=notify,
        **kwargs
    )
    return await session.start()
