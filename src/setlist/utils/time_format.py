"""Time formatting helpers for the UI."""

from __future__ import annotations

import math


def format_seconds(seconds: float) -> str:
    """Format seconds as M:SS, or H:MM:SS from one hour up.

    Invalid values (NaN, infinities, negatives, non-numbers) render as 0:00.
    """
    total = _coerce_seconds(seconds)
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def format_progress(position_s: float, duration_s: float) -> str:
    """Render `position/duration`, with a placeholder while duration is unknown."""
    duration = _coerce_seconds(duration_s)
    if duration <= 0:
        return f"{format_seconds(position_s)}/-:--"
    return f"{format_seconds(position_s)}/{format_seconds(duration_s)}"


def _coerce_seconds(value: float) -> int:
    try:
        numeric = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(numeric):
        return 0
    return max(0, int(numeric))
