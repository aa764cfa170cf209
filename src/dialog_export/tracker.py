"""Change tracking for watched session logs."""

from __future__ import annotations

from pathlib import Path


class ChangeTracker:
    """
    Remembers what the watcher has already seen.

    Two pieces of state, both owned by one watcher for its lifetime:

    * the last observed byte size of every source log, so an event for a
      file whose size did not move is dropped instead of re-exported;
    * the active session id per project, so the appearance of a new session
      marks the previous one as closed.

    Session logs are append-only, so an unchanged size means unchanged
    content.
    """

    def __init__(self) -> None:
        self._sizes: dict[str, int] = {}
        self._active: dict[str, str] = {}

    def has_changed(self, path: str | Path, new_size: int) -> bool:
        """
        Check *new_size* against the last recorded size of *path*.

        The new size is recorded whatever the answer, so two checks with the
        same size return ``True`` then ``False``.
        """
        key = str(path)
        previous = self._sizes.get(key)
        self._sizes[key] = new_size
        return previous != new_size

    def record_size(self, path: str | Path, size: int) -> None:
        self._sizes[str(path)] = size

    def forget(self, path: str | Path) -> None:
        """Drop the recorded size so the next check reports a change."""
        self._sizes.pop(str(path), None)

    def known_size(self, path: str | Path) -> int | None:
        return self._sizes.get(str(path))

    def note_active_session(self, project_id: str, session_id: str) -> str | None:
        """Make *session_id* the active session of *project_id*; return the previous one."""
        previous = self._active.get(project_id)
        self._active[project_id] = session_id
        return previous

    def active_session(self, project_id: str) -> str | None:
        return self._active.get(project_id)

    @staticmethod
    def is_closure(previous: str | None, current: str) -> bool:
        """A different, previously active session has ended."""
        return previous is not None and previous != current

    def clear(self) -> None:
        self._sizes.clear()
        self._active.clear()
