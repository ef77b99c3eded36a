"""Tests for the debounced notify batcher."""

import asyncio
import re

import pytest

from cmswatch.core import NotifyBatcher
from cmswatch.core.notify import NOTIFY_TRIGGERED, iso_timestamp

DEBOUNCE = 0.05
LINE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z (.+)$")


def read_messages(path):
    """Notify file lines with their timestamps stripped."""
    messages = []
    for line in path.read_text().splitlines():
        match = LINE_PATTERN.match(line)
        assert match, f"malformed notify line: {line!r}"
        messages.append(match.group(1))
    return messages


def settled_future(result=None):
    future = asyncio.get_running_loop().create_future()
    future.set_result(result)
    return future


class TestNotifyBatcher:
    """Test batching, debouncing and flush isolation."""

    def test_timestamp_format(self):
        """Timestamps are UTC with millisecond precision."""
        assert LINE_PATTERN.match(f"{iso_timestamp()} x")

    @pytest.mark.asyncio
    async def test_disabled_without_path(self, tmp_path):
        """Without a notify path nothing is buffered or written."""
        batcher = NotifyBatcher(None, debounce_seconds=DEBOUNCE)

        batcher.record_event("Added", "src/a.html", settled_future())

        assert not batcher.enabled
        assert batcher.buffered == 0
        assert batcher.flush() is None
        assert list(tmp_path.iterdir()) == []

    @pytest.mark.asyncio
    async def test_events_in_window_flush_once_in_order(self, tmp_path):
        """Events within one quiet period are written in a single batch."""
        notify = tmp_path / "notify.log"
        batcher = NotifyBatcher(str(notify), debounce_seconds=DEBOUNCE)

        batcher.record_event("Changed", "src/a.html", settled_future())
        await asyncio.sleep(DEBOUNCE / 2)
        batcher.record_event("Changed", "src/a.html", settled_future())
        assert not notify.exists()

        await asyncio.sleep(DEBOUNCE * 3)
        await batcher.wait_idle()

        assert read_messages(notify) == [
            "Changed: src/a.html",
            "Changed: src/a.html",
            NOTIFY_TRIGGERED,
        ]

    @pytest.mark.asyncio
    async def test_flush_waits_for_outcomes(self, tmp_path):
        """A batch is written only after its operations settle."""
        notify = tmp_path / "notify.log"
        batcher = NotifyBatcher(str(notify), debounce_seconds=DEBOUNCE)
        outcome = asyncio.get_running_loop().create_future()

        batcher.record_event("Added", "src/a.html", outcome)
        await asyncio.sleep(DEBOUNCE * 3)

        assert batcher.buffered == 0
        assert not notify.exists()

        outcome.set_result(None)
        await batcher.wait_idle()

        assert read_messages(notify) == ["Added: src/a.html", NOTIFY_TRIGGERED]

    @pytest.mark.asyncio
    async def test_failed_outcome_still_settles(self, tmp_path):
        """Settlement, not success, gates the write."""
        notify = tmp_path / "notify.log"
        batcher = NotifyBatcher(str(notify), debounce_seconds=DEBOUNCE)
        outcome = asyncio.get_running_loop().create_future()
        outcome.set_exception(RuntimeError("upload failed"))

        batcher.record_event("Added", "src/a.html", outcome)
        await asyncio.sleep(DEBOUNCE * 3)
        await batcher.wait_idle()

        assert read_messages(notify) == ["Added: src/a.html", NOTIFY_TRIGGERED]

    @pytest.mark.asyncio
    async def test_events_during_flush_go_to_next_batch(self, tmp_path):
        """Each recorded line is written exactly once, in its own flush."""
        notify = tmp_path / "notify.log"
        batcher = NotifyBatcher(str(notify), debounce_seconds=DEBOUNCE)
        slow = asyncio.get_running_loop().create_future()

        batcher.record_event("Added", "src/first.html", slow)
        await asyncio.sleep(DEBOUNCE * 3)
        # First flush has captured its batch and is waiting on ``slow``
        batcher.record_event("Changed", "src/second.html", settled_future())
        batcher.record_event("Removed", "src/third.html", settled_future())
        await asyncio.sleep(DEBOUNCE * 3)
        await asyncio.sleep(0)

        assert read_messages(notify) == [
            "Changed: src/second.html",
            "Removed: src/third.html",
            NOTIFY_TRIGGERED,
        ]

        slow.set_result(None)
        await batcher.wait_idle()

        messages = read_messages(notify)
        assert messages == [
            "Changed: src/second.html",
            "Removed: src/third.html",
            NOTIFY_TRIGGERED,
            "Added: src/first.html",
            NOTIFY_TRIGGERED,
        ]
        recorded = {"Added: src/first.html", "Changed: src/second.html", "Removed: src/third.html"}
        action_lines = [m for m in messages if m != NOTIFY_TRIGGERED]
        assert sorted(action_lines) == sorted(recorded)

    @pytest.mark.asyncio
    async def test_many_events_no_loss(self, tmp_path):
        """Every recorded line is written across several batches."""
        notify = tmp_path / "notify.log"
        batcher = NotifyBatcher(str(notify), debounce_seconds=DEBOUNCE)
        expected = []

        for round_index in range(3):
            for i in range(5):
                path = f"src/{round_index}-{i}.html"
                expected.append(f"Added: {path}")
                batcher.record_event("Added", path, settled_future())
            await asyncio.sleep(DEBOUNCE * 3)

        await batcher.close()

        messages = read_messages(notify)
        assert [m for m in messages if m != NOTIFY_TRIGGERED] == expected
        assert messages.count(NOTIFY_TRIGGERED) == 3

    @pytest.mark.asyncio
    async def test_close_flushes_buffered_lines(self, tmp_path):
        """Closing writes lines still waiting for the timer."""
        notify = tmp_path / "notify.log"
        batcher = NotifyBatcher(str(notify), debounce_seconds=10)

        batcher.record_event("Added", "src/a.html", settled_future())
        await batcher.close()

        assert read_messages(notify) == ["Added: src/a.html", NOTIFY_TRIGGERED]

    @pytest.mark.asyncio
    async def test_write_failure_is_swallowed(self, tmp_path):
        """A notify path that cannot be appended to never raises."""
        batcher = NotifyBatcher(str(tmp_path), debounce_seconds=DEBOUNCE)

        batcher.record_event("Added", "src/a.html", settled_future())
        task = batcher.flush()
        await task

        assert task.exception() is None
