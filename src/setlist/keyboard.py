"""Global keyboard shortcuts mapped onto playback controller commands.

Key presses that target a text input are never treated as shortcuts. Key
names follow Textual's vocabulary (`space`, `left`, `ctrl+n`, ...).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from setlist.services.playback_controller import PlaybackController

SEEK_STEP_S = 10.0
VOLUME_STEP = 0.1

KeyCommand = Literal[
    "toggle_play_pause",
    "seek_back",
    "seek_forward",
    "volume_up",
    "volume_down",
    "next",
    "previous",
]

_PLAIN_BINDINGS: dict[str, KeyCommand] = {
    "space": "toggle_play_pause",
    "left": "seek_back",
    "right": "seek_forward",
    "up": "volume_up",
    "down": "volume_down",
}
_MODIFIED_BINDINGS: dict[str, KeyCommand] = {
    "n": "next",
    "p": "previous",
}


@dataclass(frozen=True)
class KeyPress:
    """One key-down event, already stripped of modifier prefixes."""

    key: str
    ctrl: bool = False
    meta: bool = False
    target_is_text_input: bool = False


def key_press_from_textual(key: str, *, focused_is_text_input: bool) -> KeyPress:
    """Split a Textual key name such as `ctrl+n` into a `KeyPress`."""
    parts = key.lower().split("+")
    modifiers = set(parts[:-1])
    return KeyPress(
        key=parts[-1],
        ctrl="ctrl" in modifiers,
        meta="meta" in modifiers or "super" in modifiers,
        target_is_text_input=focused_is_text_input,
    )


def resolve_command(press: KeyPress) -> KeyCommand | None:
    if press.target_is_text_input:
        return None
    if press.ctrl or press.meta:
        return _MODIFIED_BINDINGS.get(press.key)
    return _PLAIN_BINDINGS.get(press.key)


async def dispatch_key(controller: PlaybackController, press: KeyPress) -> bool:
    """Run the command bound to `press`; return whether one was handled."""
    command = resolve_command(press)
    if command is None:
        return False
    if command == "toggle_play_pause":
        await controller.toggle_play_pause()
    elif command == "seek_back":
        await controller.seek_relative(-SEEK_STEP_S)
    elif command == "seek_forward":
        await controller.seek_relative(SEEK_STEP_S)
    elif command == "volume_up":
        await controller.step_volume(VOLUME_STEP)
    elif command == "volume_down":
        await controller.step_volume(-VOLUME_STEP)
    elif command == "next":
        await controller.next()
    elif command == "previous":
        await controller.previous()
    return True
