"""Tests for time display helpers."""

from __future__ import annotations

import math

import pytest

from setlist.utils.time_format import format_progress, format_seconds


@pytest.mark.parametrize(
    ("seconds", "expected"),
    [
        (0, "0:00"),
        (5.9, "0:05"),
        (65, "1:05"),
        (599, "9:59"),
        (3600, "1:00:00"),
        (3725, "1:02:05"),
        (-4, "0:00"),
        (math.nan, "0:00"),
        (math.inf, "0:00"),
        ("abc", "0:00"),
    ],
)
def test_format_seconds(seconds: object, expected: str) -> None:
    assert format_seconds(seconds) == expected  # type: ignore[arg-type]


def test_format_progress_with_and_without_duration() -> None:
    assert format_progress(42, 180) == "0:42/3:00"
    assert format_progress(42, 0) == "0:42/-:--"
    assert format_progress(math.nan, math.nan) == "0:00/-:--"
