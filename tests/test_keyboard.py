"""Tests for global keyboard shortcut mapping."""

from __future__ import annotations

import asyncio

import pytest

from setlist.keyboard import (
    SEEK_STEP_S,
    VOLUME_STEP,
    KeyPress,
    dispatch_key,
    key_press_from_textual,
    resolve_command,
)


class _RecordingController:
    def __init__(self) -> None:
        self.calls: list[tuple[str, object]] = []

    async def toggle_play_pause(self) -> None:
        self.calls.append(("toggle_play_pause", None))

    async def seek_relative(self, delta: float) -> None:
        self.calls.append(("seek_relative", delta))

    async def step_volume(self, delta: float) -> None:
        self.calls.append(("step_volume", delta))

    async def next(self) -> None:
        self.calls.append(("next", None))

    async def previous(self) -> None:
        self.calls.append(("previous", None))


@pytest.mark.parametrize(
    ("press", "expected"),
    [
        (KeyPress("space"), "toggle_play_pause"),
        (KeyPress("left"), "seek_back"),
        (KeyPress("right"), "seek_forward"),
        (KeyPress("up"), "volume_up"),
        (KeyPress("down"), "volume_down"),
        (KeyPress("n", ctrl=True), "next"),
        (KeyPress("p", meta=True), "previous"),
        (KeyPress("n"), None),
        (KeyPress("p"), None),
        (KeyPress("space", target_is_text_input=True), None),
        (KeyPress("n", ctrl=True, target_is_text_input=True), None),
        (KeyPress("x"), None),
    ],
)
def test_resolve_command(press: KeyPress, expected: str | None) -> None:
    assert resolve_command(press) == expected


def test_key_press_from_textual_splits_modifiers() -> None:
    assert key_press_from_textual("ctrl+n", focused_is_text_input=False) == KeyPress(
        "n", ctrl=True
    )
    assert key_press_from_textual("super+P", focused_is_text_input=False) == KeyPress(
        "p", meta=True
    )
    assert key_press_from_textual(
        "space", focused_is_text_input=True
    ) == KeyPress("space", target_is_text_input=True)


def test_dispatch_key_invokes_controller() -> None:
    controller = _RecordingController()

    async def run() -> None:
        for key in ("space", "left", "right", "up", "down", "ctrl+n", "ctrl+p"):
            press = key_press_from_textual(key, focused_is_text_input=False)
            assert await dispatch_key(controller, press) is True  # type: ignore[arg-type]

    asyncio.run(run())
    assert controller.calls == [
        ("toggle_play_pause", None),
        ("seek_relative", -SEEK_STEP_S),
        ("seek_relative", SEEK_STEP_S),
        ("step_volume", VOLUME_STEP),
        ("step_volume", -VOLUME_STEP),
        ("next", None),
        ("previous", None),
    ]


def test_dispatch_key_ignores_text_input_and_unbound_keys() -> None:
    controller = _RecordingController()

    async def run() -> None:
        typed = KeyPress("space", target_is_text_input=True)
        assert await dispatch_key(controller, typed) is False  # type: ignore[arg-type]
        assert await dispatch_key(controller, KeyPress("z")) is False  # type: ignore[arg-type]

    asyncio.run(run())
    assert controller.calls == []
