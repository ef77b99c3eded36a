"""Debounced, batched activity log written to a notify file."""

import asyncio
from datetime import datetime, timezone
from typing import Awaitable, List, Optional, Set

from ..utils.logging import get_logger

DEFAULT_DEBOUNCE_SECONDS = 1.5

NOTIFY_TRIGGERED = "Notify Triggered"


def iso_timestamp() -> str:
    """Current UTC time as ISO 8601 with millisecond precision and a Z suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class NotifyBatcher:
    """Coalesces activity lines and appends them to a file in batches.

    Each ``record_event`` restarts a quiet-period timer. When the timer fires
    the current lines and outcomes are captured and the buffer reset, so a
    flush only ever owns the events recorded before it started. The flush
    waits for all captured outcomes to settle, then appends its lines plus a
    ``Notify Triggered`` marker in one write.
    """

    def __init__(self, notify_path: Optional[str], debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS):
        self.notify_path = notify_path
        self.debounce_seconds = debounce_seconds

        self._lines: List[str] = []
        self._pending: List[Awaitable] = []
        self._timer: Optional[asyncio.TimerHandle] = None
        self._flushes: Set[asyncio.Task] = set()

        self.logger = get_logger(self.__class__.__name__)

    @property
    def enabled(self) -> bool:
        return bool(self.notify_path)

    @property
    def buffered(self) -> int:
        """Lines recorded since the last flush started."""
        return len(self._lines)

    def record_event(self, action_type: str, local_path: str, outcome: Optional[Awaitable] = None) -> None:
        """Record one action line and the awaitable its flush must wait for."""
        if not self.enabled:
            return

        self._lines.append(f"{iso_timestamp()} {action_type}: {local_path}\n")
        if outcome is not None:
            self._pending.append(outcome)
        self._restart_timer()

    def _restart_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.debounce_seconds, self._on_quiet_period)

    def _on_quiet_period(self) -> None:
        self._timer = None
        self.flush()

    def flush(self) -> Optional[asyncio.Task]:
        """Capture the current batch and start writing it.

        Returns the flush task, or None when nothing was buffered.
        """
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

        if not self._lines:
            return None

        lines, pending = self._lines, self._pending
        self._lines, self._pending = [], []

        self.logger.debug("Flushing notify batch", lines=len(lines), pending=len(pending))

        task = asyncio.get_running_loop().create_task(self._write_batch(lines, pending))
        self._flushes.add(task)
        task.add_done_callback(self._flushes.discard)
        return task

    async def _write_batch(self, lines: List[str], pending: List[Awaitable]) -> None:
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        output = "".join(lines) + f"{iso_timestamp()} {NOTIFY_TRIGGERED}\n"
        self._append(output)

    def _append(self, output: str) -> None:
        try:
            with open(self.notify_path, "a", encoding="utf-8") as f:
                f.write(output)
        except OSError as e:
            self.logger.error(f"Unable to notify file {self.notify_path}: {e}")

    async def wait_idle(self) -> None:
        """Wait for every started flush to finish writing."""
        while self._flushes:
            await asyncio.gather(*list(self._flushes), return_exceptions=True)

    async def close(self) -> None:
        """Flush whatever is buffered and wait for all writes."""
        self.flush()
        await self.wait_idle()
