"""Date and size formatting shared by the renderer, listings and the viewer."""

from __future__ import annotations

from datetime import datetime, timezone


def _local(ts: int) -> datetime:
    return datetime.fromtimestamp(ts / 1000)


def format_timestamp(ts: int) -> str:
    """Local date and time, e.g. ``05.12.2025, 14:30``."""
    return _local(ts).strftime("%d.%m.%Y, %H:%M")


def format_date(ts: int) -> str:
    """Local date, e.g. ``05.12.2025``."""
    return _local(ts).strftime("%d.%m.%Y")


def format_date_iso(ts: int) -> str:
    """UTC calendar date, e.g. ``2025-12-05``. Used in artifact filenames."""
    return datetime.fromtimestamp(ts / 1000, tz=timezone.utc).strftime("%Y-%m-%d")


def format_size(size_bytes: int) -> str:
    return f"{size_bytes / 1024:.0f}KB"
