"""Uniform media adapter over a single playback engine.

The adapter owns the engine, validates commands before they reach it and
translates engine vocabulary (`StateChanged`, `PositionUpdated`, ...) into the
typed lifecycle events consumed by `PlaybackController`. Engine quirks stay
here; the controller only ever sees `LifecycleEvent` subclasses.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import PurePath
from urllib.parse import urlparse

from .playback_backend import (
    BackendError,
    BackendEvent,
    MediaChanged,
    PlaybackBackend,
    PositionUpdated,
    StateChanged,
)

logger = logging.getLogger(__name__)

SUPPORTED_URL_SCHEMES = frozenset({"http", "https", "file"})


@dataclass(frozen=True)
class LifecycleEvent:
    """Base type for adapter-to-controller events, tagged with their load."""

    load_id: int


@dataclass(frozen=True)
class Ready(LifecycleEvent):
    """Engine can accept commands for the currently loaded resource."""


@dataclass(frozen=True)
class Started(LifecycleEvent):
    """Playback audibly began for the first time after a load."""


@dataclass(frozen=True)
class Playing(LifecycleEvent):
    """Playback resumed after a pause."""


@dataclass(frozen=True)
class Paused(LifecycleEvent):
    """Playback stopped by the engine, whoever initiated it."""


@dataclass(frozen=True)
class TimeUpdate(LifecycleEvent):
    """Periodic position report in seconds."""

    seconds: float


@dataclass(frozen=True)
class DurationKnown(LifecycleEvent):
    """Duration of the loaded resource in seconds."""

    seconds: float


@dataclass(frozen=True)
class Ended(LifecycleEvent):
    """Playback reached the end of the resource."""


@dataclass(frozen=True)
class PlaybackFailed(LifecycleEvent):
    """Loading or playback failed."""

    message: str


def valid_duration(seconds: object) -> float | None:
    """Return `seconds` as float when it is a finite positive number."""
    if isinstance(seconds, bool) or not isinstance(seconds, (int, float)):
        return None
    value = float(seconds)
    if not math.isfinite(value) or value <= 0:
        return None
    return value


def valid_position(seconds: object) -> float | None:
    """Return `seconds` as float when it is a finite non-negative number."""
    if isinstance(seconds, bool) or not isinstance(seconds, (int, float)):
        return None
    value = float(seconds)
    if not math.isfinite(value) or value < 0:
        return None
    return value


def clamp_volume(volume: object) -> float | None:
    """Clamp a finite number into [0, 1]; None for non-numeric input."""
    if isinstance(volume, bool) or not isinstance(volume, (int, float)):
        return None
    value = float(volume)
    if not math.isfinite(value):
        return None
    return max(0.0, min(value, 1.0))


def is_supported_url(url: str | None) -> bool:
    """Return whether the adapter can hand `url` to an engine."""
    if not url or not url.strip():
        return False
    parsed = urlparse(url.strip())
    if parsed.scheme in SUPPORTED_URL_SCHEMES:
        return bool(parsed.netloc or parsed.path)
    # Windows drive letters parse as one-letter schemes.
    if not parsed.scheme or len(parsed.scheme) == 1:
        return bool(PurePath(url).name)
    return False


class MediaBackendAdapter:
    """Imperative media interface plus lifecycle event stream."""

    def __init__(self, backend: PlaybackBackend) -> None:
        self._backend = backend
        self._handler: Callable[[LifecycleEvent], Awaitable[None]] | None = None
        self._load_id: int | None = None
        self._ready = False
        self._started = False
        self._engine_active = False
        self._play_pending = False
        self._duration_s: float | None = None
        self._position_s = 0.0
        self._error: str | None = None
        self._backend.set_event_handler(self._handle_backend_event)

    def set_event_handler(
        self, handler: Callable[[LifecycleEvent], Awaitable[None]]
    ) -> None:
        self._handler = handler

    @property
    def load_id(self) -> int | None:
        return self._load_id

    @property
    def is_ready(self) -> bool:
        return self._ready

    @property
    def position_seconds(self) -> float:
        return self._position_s

    @property
    def duration_seconds(self) -> float | None:
        return self._duration_s

    @property
    def error(self) -> str | None:
        return self._error

    async def start(self) -> None:
        await self._backend.start()

    async def shutdown(self) -> None:
        await self._backend.shutdown()

    async def load(self, load_id: int, url: str | None) -> None:
        """Begin loading `url`; failures surface as `PlaybackFailed` events."""
        self._load_id = load_id
        self._ready = False
        self._started = False
        self._engine_active = False
        self._play_pending = False
        self._duration_s = None
        self._position_s = 0.0
        self._error = None
        if url is None or not is_supported_url(url):
            logger.warning("Rejected unsupported media URL %r (load %d).", url, load_id)
            await self._fail(load_id, f"Unsupported or empty media URL: {url!r}")
            return
        try:
            await self._backend.load(load_id, url.strip())
        except Exception as exc:
            logger.exception("Engine failed to load %s: %s", url, exc)
            await self._fail(load_id, str(exc))

    async def play(self) -> None:
        if self._load_id is None:
            logger.debug("play() ignored: nothing loaded.")
            return
        if self._error is not None:
            logger.debug("play() ignored: load %d failed.", self._load_id)
            return
        if not self._ready:
            logger.debug("play() deferred until load %d is ready.", self._load_id)
            self._play_pending = True
            return
        await self._send("play", self._backend.play())

    async def pause(self) -> None:
        self._play_pending = False
        if self._load_id is None or not self._ready:
            return
        await self._send("pause", self._backend.pause())

    async def seek(self, seconds: float) -> bool:
        """Forward a validated seek; return False when the value is rejected."""
        position = valid_position(seconds)
        if position is None:
            logger.warning("Rejected invalid seek time %r.", seconds)
            return False
        if self._duration_s is not None and position > self._duration_s:
            logger.warning(
                "Rejected seek to %.3fs beyond duration %.3fs.",
                position,
                self._duration_s,
            )
            return False
        if self._load_id is None or not self._ready:
            logger.debug("seek(%.3f) ignored: no ready media.", position)
            return False
        self._position_s = position
        await self._send("seek", self._backend.seek_ms(int(round(position * 1000))))
        return True

    async def set_volume(self, volume: float) -> None:
        """Clamp to [0, 1] and forward immediately, loaded or not."""
        level = clamp_volume(volume)
        if level is None:
            logger.warning("Rejected invalid volume %r.", volume)
            return
        await self._send("set_volume", self._backend.set_volume(round(level * 100)))

    async def _send(self, name: str, command: Awaitable[None]) -> None:
        try:
            await command
        except Exception as exc:
            logger.exception("Engine command %s failed: %s", name, exc)
            if self._load_id is not None:
                await self._fail(self._load_id, str(exc))

    async def _fail(self, load_id: int, message: str) -> None:
        if load_id == self._load_id:
            self._error = message
            self._play_pending = False
        await self._emit(PlaybackFailed(load_id, message))

    async def _handle_backend_event(self, event: BackendEvent) -> None:
        """Translate engine events for the current load into lifecycle events."""
        if event.load_id != self._load_id:
            logger.debug("Dropped stale engine event %r.", event)
            return
        load_id = event.load_id
        if isinstance(event, StateChanged):
            await self._handle_status(load_id, event)
        elif isinstance(event, MediaChanged):
            await self._report_duration(load_id, event.duration_ms / 1000)
        elif isinstance(event, PositionUpdated):
            if event.duration_ms > 0:
                await self._report_duration(load_id, event.duration_ms / 1000)
            seconds = valid_position(event.position_ms / 1000)
            if seconds is None:
                logger.debug("Dropped invalid position %r.", event.position_ms)
                return
            self._position_s = seconds
            await self._emit(TimeUpdate(load_id, seconds))
        elif isinstance(event, BackendError):
            await self._fail(load_id, event.message)

    async def _handle_status(self, load_id: int, event: StateChanged) -> None:
        status = event.status
        if status in {"ready", "playing", "paused"} and not self._ready:
            self._ready = True
            await self._emit(Ready(load_id))
            if self._play_pending and status != "playing":
                self._play_pending = False
                await self._send("play", self._backend.play())
                return
            self._play_pending = False
        if status == "playing":
            self._engine_active = True
            if not self._started:
                self._started = True
                await self._emit(Started(load_id))
            else:
                await self._emit(Playing(load_id))
        elif status == "paused":
            self._engine_active = True
            await self._emit(Paused(load_id))
        elif status == "stopped":
            # Engines report `stopped` right after media swaps; only a stop of
            # active playback is meaningful.
            if self._engine_active:
                self._engine_active = False
                await self._emit(Paused(load_id))
        elif status == "ended":
            self._engine_active = False
            self._position_s = 0.0
            await self._emit(Ended(load_id))
        elif status == "error":
            await self._fail(load_id, "Playback engine reported an error.")

    async def _report_duration(self, load_id: int, seconds: float) -> None:
        duration = valid_duration(seconds)
        if duration is None:
            logger.debug("Dropped invalid duration %r.", seconds)
            return
        if duration == self._duration_s:
            return
        self._duration_s = duration
        await self._emit(DurationKnown(load_id, duration))

    async def _emit(self, event: LifecycleEvent) -> None:
        if self._handler is None:
            return
        await self._handler(event)
