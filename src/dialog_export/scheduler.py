"""
Trailing-edge debouncing on the asyncio event loop.

:class:`DebouncedAction` keeps at most one pending timer per key: scheduling
a key again cancels the earlier timer, so a burst of events runs the action
once, ``delay`` seconds after the last event. :class:`DebounceScheduler`
composes two of them, a short one for exports and a long one for summaries.

All methods must be called from the event loop thread.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from pathlib import Path

from dialog_export.logging import get_logger

logger = get_logger("scheduler")

Action = Callable[[], object]


class DebouncedAction:
    """Keyed trailing-edge debounce backed by ``loop.call_later``."""

    def __init__(self, delay: float, name: str = "action") -> None:
        self.delay = delay
        self.name = name
        self._timers: dict[str, asyncio.TimerHandle] = {}

    def schedule(self, key: str, action: Action, delay: float | None = None) -> None:
        """Run *action* after *delay* seconds unless *key* is scheduled again first."""
        self.cancel(key)
        delay = self.delay if delay is None else delay
        loop = asyncio.get_running_loop()
        self._timers[key] = loop.call_later(delay, self._fire, key, action)
        logger.debug("Scheduled %s for %s in %.1fs", self.name, key, delay)

    def _fire(self, key: str, action: Action) -> None:
        self._timers.pop(key, None)
        try:
            action()
        except Exception:
            logger.exception("Scheduled %s for %s failed", self.name, key)

    def cancel(self, key: str) -> bool:
        """Cancel the pending timer for *key*. Returns ``True`` if one existed."""
        handle = self._timers.pop(key, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def cancel_all(self) -> int:
        """Cancel every pending timer. Returns how many were cancelled."""
        handles = list(self._timers.values())
        self._timers.clear()
        for handle in handles:
            handle.cancel()
        return len(handles)

    @property
    def pending(self) -> list[str]:
        return list(self._timers)

    def __contains__(self, key: object) -> bool:
        return key in self._timers

    def __len__(self) -> int:
        return len(self._timers)


class DebounceScheduler:
    """
    The two debounce tracks used by the watcher.

    * export track: keyed by session id (source filename stem); a burst of
      writes to one log yields one export.
    * summary track: keyed by artifact filename; re-armed after every export
      of the artifact, so a summary is only requested once the dialog has
      been quiet for ``summary_delay`` seconds.
    """

    def __init__(self, export_delay: float = 2.0, summary_delay: float = 30.0) -> None:
        self.exports = DebouncedAction(export_delay, name="export")
        self.summaries = DebouncedAction(summary_delay, name="summary")

    @staticmethod
    def export_key(source_path: str | Path) -> str:
        return Path(source_path).stem

    @staticmethod
    def summary_key(markdown_path: str | Path) -> str:
        return Path(markdown_path).name

    def schedule_export(
        self,
        source_path: str | Path,
        action: Action,
        delay: float | None = None,
    ) -> None:
        self.exports.schedule(self.export_key(source_path), action, delay)

    def schedule_summary(self, markdown_path: str | Path, action: Action) -> None:
        self.summaries.schedule(self.summary_key(markdown_path), action)

    def cancel_summary(self, markdown_path: str | Path) -> bool:
        return self.summaries.cancel(self.summary_key(markdown_path))

    def stop(self) -> None:
        """Cancel everything; no scheduled callback runs afterwards."""
        exports = self.exports.cancel_all()
        summaries = self.summaries.cancel_all()
        if exports or summaries:
            logger.debug(
                "Cancelled %d pending export(s) and %d pending summary(ies)",
                exports,
                summaries,
            )
