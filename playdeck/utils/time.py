"""Duration formatting helpers."""

from __future__ import annotations

__all__ = ["format_duration_ms", "format_progress"]


def format_duration_ms(value: int) -> str:
    """Render ``value`` milliseconds as ``m:ss`` (or ``h:mm:ss`` past an hour)."""

    seconds = max(0, int(value)) // 1000
    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def format_progress(progress_ms: int, duration_ms: int) -> str:
    return f"{format_duration_ms(progress_ms)}/{format_duration_ms(duration_ms)}"
