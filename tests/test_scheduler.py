"""Tests for the debounce scheduler."""

import asyncio

import pytest

from dialog_export.scheduler import DebouncedAction, DebounceScheduler


@pytest.mark.asyncio
class TestDebouncedAction:
    """Async tests for DebouncedAction."""

    async def test_burst_runs_once(self) -> None:
        """N rapid schedules of one key should run the action once."""
        action = DebouncedAction(0.05)
        calls = []

        for i in range(5):
            action.schedule("key", lambda i=i: calls.append(i))
            await asyncio.sleep(0.01)

        await asyncio.sleep(0.1)

        assert calls == [4]
        assert len(action) == 0

    async def test_keys_are_independent(self) -> None:
        action = DebouncedAction(0.02)
        calls = []

        action.schedule("a", lambda: calls.append("a"))
        action.schedule("b", lambda: calls.append("b"))
        await asyncio.sleep(0.06)

        assert sorted(calls) == ["a", "b"]

    async def test_delay_override(self) -> None:
        action = DebouncedAction(10.0)
        calls = []

        action.schedule("key", lambda: calls.append(1), delay=0)
        await asyncio.sleep(0.01)

        assert calls == [1]

    async def test_cancel(self) -> None:
        action = DebouncedAction(0.02)
        calls = []

        action.schedule("key", lambda: calls.append(1))
        assert "key" in action

        assert action.cancel("key") is True
        assert action.cancel("key") is False
        await asyncio.sleep(0.05)

        assert calls == []
        assert "key" not in action

    async def test_failing_action_is_logged(self, caplog) -> None:
        """An exception from an action is logged and later actions still run."""
        action = DebouncedAction(0)
        calls = []

        def boom() -> None:
            raise RuntimeError("boom")

        action.schedule("bad", boom)
        action.schedule("good", lambda: calls.append(1))
        await asyncio.sleep(0.01)

        assert calls == [1]
        assert "boom" in caplog.text
        assert len(action) == 0

    async def test_cancel_all(self) -> None:
        action = DebouncedAction(0.02)
        calls = []
        for key in "abc":
            action.schedule(key, lambda: calls.append(1))

        assert sorted(action.pending) == ["a", "b", "c"]
        assert action.cancel_all() == 3
        await asyncio.sleep(0.05)

        assert calls == []
        assert action.pending == []


@pytest.mark.asyncio
class TestDebounceScheduler:
    """Async tests for DebounceScheduler."""

    async def test_export_keyed_by_session_id(self) -> None:
        scheduler = DebounceScheduler(export_delay=0.02)
        calls = []

        scheduler.schedule_export("/logs/abc.jsonl", lambda: calls.append("first"))
        scheduler.schedule_export("/other/abc.jsonl", lambda: calls.append("second"))
        await asyncio.sleep(0.06)

        assert calls == ["second"]

    async def test_summary_track(self) -> None:
        scheduler = DebounceScheduler(summary_delay=0.02)
        calls = []

        scheduler.schedule_summary("/p/dialog/2025-12-05_session-aaaaaaaa.md", lambda: calls.append(1))
        assert "2025-12-05_session-aaaaaaaa.md" in scheduler.summaries

        assert scheduler.cancel_summary("/p/dialog/2025-12-05_session-aaaaaaaa.md") is True
        await asyncio.sleep(0.05)

        assert calls == []

    async def test_stop_cancels_both_tracks(self) -> None:
        """After stop() nothing fires and both maps are empty."""
        scheduler = DebounceScheduler(export_delay=0.02, summary_delay=0.02)
        calls = []

        scheduler.schedule_export("/logs/a.jsonl", lambda: calls.append("export"))
        scheduler.schedule_summary("/p/dialog/a.md", lambda: calls.append("summary"))
        scheduler.stop()
        await asyncio.sleep(0.05)

        assert calls == []
        assert len(scheduler.exports) == 0
        assert len(scheduler.summaries) == 0
