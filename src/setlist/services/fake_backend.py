"""Fake playback engine for deterministic testing and the `fake` backend mode."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from contextlib import suppress
from dataclasses import dataclass

from .playback_backend import (
    BackendEvent,
    BackendStatus,
    MediaChanged,
    PositionUpdated,
    StateChanged,
)


@dataclass
class _PlaybackState:
    load_id: int = 0
    url: str | None = None
    status: BackendStatus = "idle"
    position_ms: int = 0
    duration_ms: int = 0
    volume: int = 100


class FakePlaybackBackend:
    """In-memory engine that simulates loading and playback progress.

    `auto_ready=False` leaves each load in `loading` until `mark_ready()` is
    called, which lets tests hold the controller in its loading state.
    """

    def __init__(
        self,
        *,
        tick_interval_ms: int = 250,
        default_duration_ms: int = 180_000,
        auto_ready: bool = True,
    ) -> None:
        self._tick_interval_ms = tick_interval_ms
        self._default_duration_ms = default_duration_ms
        self._auto_ready = auto_ready
        self._state = _PlaybackState()
        self._handler: Callable[[BackendEvent], Awaitable[None]] | None = None
        self._lock = asyncio.Lock()
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task[None] | None = None
        self.commands: list[tuple[object, ...]] = []

    def set_event_handler(
        self, handler: Callable[[BackendEvent], Awaitable[None]]
    ) -> None:
        self._handler = handler

    async def start(self) -> None:
        if self._task is not None:
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._ticker_loop())

    async def shutdown(self) -> None:
        if self._task is None:
            return
        self._stop_event.set()
        self._task.cancel()
        with suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    async def load(self, load_id: int, url: str) -> None:
        self.commands.append(("load", load_id, url))
        async with self._lock:
            self._state.load_id = load_id
            self._state.url = url
            self._state.status = "loading"
            self._state.position_ms = 0
            self._state.duration_ms = 0
        await self._emit(StateChanged(load_id, "loading"))
        if self._auto_ready:
            await self.mark_ready()

    async def mark_ready(self, duration_ms: int | None = None) -> None:
        """Finish the current load and report its duration."""
        async with self._lock:
            if self._state.status != "loading":
                return
            self._state.duration_ms = duration_ms or self._default_duration_ms
            self._state.status = "ready"
            load_id = self._state.load_id
            duration = self._state.duration_ms
        await self._emit(StateChanged(load_id, "ready"))
        await self._emit(MediaChanged(load_id, duration))

    async def play(self) -> None:
        self.commands.append(("play",))
        async with self._lock:
            if self._state.status not in {"ready", "paused", "stopped", "ended"}:
                return
            if self._state.status == "ended":
                self._state.position_ms = 0
            self._state.status = "playing"
            load_id = self._state.load_id
        await self._emit(StateChanged(load_id, "playing"))

    async def pause(self) -> None:
        self.commands.append(("pause",))
        async with self._lock:
            if self._state.status != "playing":
                return
            self._state.status = "paused"
            load_id = self._state.load_id
        await self._emit(StateChanged(load_id, "paused"))

    async def seek_ms(self, position_ms: int) -> None:
        self.commands.append(("seek_ms", position_ms))
        async with self._lock:
            pos = _clamp(position_ms, 0, self._state.duration_ms)
            self._state.position_ms = pos
            duration = self._state.duration_ms
            load_id = self._state.load_id
        await self._emit(PositionUpdated(load_id, pos, duration))

    async def set_volume(self, volume: int) -> None:
        self.commands.append(("set_volume", volume))
        async with self._lock:
            self._state.volume = _clamp(volume, 0, 100)

    async def get_state(self) -> BackendStatus:
        async with self._lock:
            return self._state.status

    @property
    def volume(self) -> int:
        return self._state.volume

    @property
    def load_id(self) -> int:
        return self._state.load_id

    async def emit(self, event: BackendEvent) -> None:
        """Deliver an arbitrary engine event, e.g. a late or failing one."""
        await self._emit(event)

    async def _ticker_loop(self) -> None:
        try:
            while not self._stop_event.is_set():
                await asyncio.sleep(self._tick_interval_ms / 1000)
                await self._tick()
        except asyncio.CancelledError:
            pass

    async def _tick(self) -> None:
        async with self._lock:
            if self._state.status != "playing":
                return
            duration = self._state.duration_ms
            if duration <= 0:
                return
            next_pos = self._state.position_ms + self._tick_interval_ms
            if next_pos >= duration:
                next_pos = duration
                self._state.status = "ended"
            self._state.position_ms = next_pos
            status = self._state.status
            load_id = self._state.load_id
        await self._emit(PositionUpdated(load_id, next_pos, duration))
        if status == "ended":
            await self._emit(StateChanged(load_id, "ended"))

    async def _emit(self, event: BackendEvent) -> None:
        if self._handler is None:
            return
        await self._handler(event)


def _clamp(value: int, min_value: int, max_value: int) -> int:
    return max(min_value, min(value, max_value))
