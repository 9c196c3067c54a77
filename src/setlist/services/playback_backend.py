"""Playback engine contracts and raw engine event payloads.

`MediaBackendAdapter` depends on this protocol to stay engine-agnostic.
Concrete engines (fake/VLC) translate primitive-specific behavior into these
shared commands and events. Every event carries the `load_id` of the load it
belongs to so superseded loads can be recognized downstream.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Literal, Protocol

BackendStatus = Literal[
    "idle", "loading", "ready", "playing", "paused", "stopped", "ended", "error"
]


@dataclass(frozen=True)
class BackendEvent:
    """Marker base type for engine-originated events."""

    load_id: int


@dataclass(frozen=True)
class PositionUpdated(BackendEvent):
    """Periodic transport position update in milliseconds."""

    position_ms: int
    duration_ms: int


@dataclass(frozen=True)
class StateChanged(BackendEvent):
    """Engine playback state transition."""

    status: BackendStatus


@dataclass(frozen=True)
class MediaChanged(BackendEvent):
    """Loaded media metadata update (currently duration only)."""

    duration_ms: int


@dataclass(frozen=True)
class BackendError(BackendEvent):
    """Engine-reported runtime error for the given load."""

    message: str


class PlaybackBackend(Protocol):
    """Playback engine protocol consumed by `MediaBackendAdapter`."""

    def set_event_handler(
        self, handler: Callable[[BackendEvent], Awaitable[None]]
    ) -> None: ...

    async def start(self) -> None: ...

    async def shutdown(self) -> None: ...

    async def load(self, load_id: int, url: str) -> None: ...

    async def play(self) -> None: ...

    async def pause(self) -> None: ...

    async def seek_ms(self, position_ms: int) -> None: ...

    async def set_volume(self, volume: int) -> None: ...

    async def get_state(self) -> BackendStatus: ...
