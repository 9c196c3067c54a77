"""Playback orchestration between presentation intents and the media adapter.

`PlaybackController` is the transport authority. It owns the one
`PlaybackState`, issues commands to the `MediaBackendAdapter`, reconciles the
adapter's lifecycle events against the current load and user intent, and
emits UI-facing events after every effective change.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Iterable
from contextlib import suppress
from dataclasses import replace
from typing import Callable

from setlist.events import PlaybackStateChanged, TrackChanged
from setlist.models import PlaybackState, Track
from setlist.services.media_adapter import (
    DurationKnown,
    Ended,
    LifecycleEvent,
    MediaBackendAdapter,
    Paused,
    PlaybackFailed,
    Playing,
    Ready,
    Started,
    TimeUpdate,
    clamp_volume,
    valid_duration,
    valid_position,
)
from setlist.services.track_source import PlaylistId, TrackSourceResolver

logger = logging.getLogger(__name__)

DEFAULT_LOAD_TIMEOUT_S = 15.0
DEFAULT_UNMUTE_VOLUME = 1.0


def _format_user_error(
    *, what_failed: str, likely_cause: str, next_step: str, detail: str | None = None
) -> str:
    message = f"{what_failed}\nLikely cause: {likely_cause}\nNext step: {next_step}"
    if detail:
        message = f"{message}\nDetails: {detail}"
    return message


LOAD_TIMEOUT_ERROR = _format_user_error(
    what_failed="Timed out waiting for the track to load.",
    likely_cause="The media source is unreachable or the engine stalled.",
    next_step="Check the track URL or network, then play the track again.",
)


def _check_unique_ids(tracks: tuple[Track, ...]) -> None:
    seen: set[int] = set()
    for track in tracks:
        if track.id in seen:
            raise ValueError(f"Duplicate track id in playlist: {track.id}")
        seen.add(track.id)


class PlaybackController:
    """Owns playback state and emits events to subscribers."""

    def __init__(
        self,
        *,
        adapter: MediaBackendAdapter,
        emit_event: Callable[[object], Awaitable[None]],
        track_source: TrackSourceResolver | None = None,
        load_timeout_s: float | None = DEFAULT_LOAD_TIMEOUT_S,
        initial_volume: float = 1.0,
    ) -> None:
        if load_timeout_s is not None and load_timeout_s <= 0:
            raise ValueError("load_timeout_s must be > 0 or None")
        self._adapter = adapter
        self._emit_event = emit_event
        self._track_source = track_source
        self._load_timeout_s = load_timeout_s
        volume = clamp_volume(initial_volume)
        self._state = PlaybackState(volume=1.0 if volume is None else volume)
        self._lock = asyncio.Lock()
        self._load_seq = 0
        self._active_load_id: int | None = None
        # True from a load until the engine reports it started or stopped.
        self._awaiting_start = False
        self._watchdog: asyncio.Task[None] | None = None
        self._adapter.set_event_handler(self._handle_lifecycle_event)

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def active_load_id(self) -> int | None:
        """Load id whose lifecycle events are currently applied."""
        return self._active_load_id

    async def start(self) -> None:
        """Start the adapter and align its volume with controller state."""
        await self._adapter.start()
        await self._adapter.set_volume(self._state.volume)

    async def shutdown(self) -> None:
        """Cancel pending work and perform best-effort adapter shutdown."""
        self._cancel_watchdog()
        with suppress(Exception):
            await self._adapter.shutdown()

    async def attach_playlist(self, playlist_id: PlaylistId) -> None:
        """Resolve a playlist and replace the playback state wholesale."""
        if self._track_source is None:
            raise RuntimeError("No track source configured.")
        tracks = tuple(await self._track_source.resolve_playlist(playlist_id))
        _check_unique_ids(tracks)
        async with self._lock:
            was_loaded = self._active_load_id is not None
            self._active_load_id = None
            self._state = PlaybackState(
                playlist=tracks,
                playlist_id=playlist_id,
                volume=self._state.volume,
                muted_previous_volume=self._state.muted_previous_volume,
            )
        self._cancel_watchdog()
        logger.info("Attached playlist %s (%d tracks).", playlist_id, len(tracks))
        if was_loaded:
            await self._adapter.pause()
        await self._emit_event(TrackChanged(None))
        await self._emit_state()

    async def set_playlist(self, tracks: Iterable[Track]) -> None:
        """Replace the track sequence, keeping the current track when present."""
        new_playlist = tuple(tracks)
        _check_unique_ids(new_playlist)
        async with self._lock:
            current_id = self._state.current_track_id
            reset = current_id is not None and all(
                track.id != current_id for track in new_playlist
            )
            was_loaded = self._active_load_id is not None
            if reset:
                self._active_load_id = None
                self._state = replace(
                    self._state,
                    playlist=new_playlist,
                    current_track_id=None,
                    is_playing=False,
                    position_seconds=0.0,
                    duration_seconds=0.0,
                    backend_ready=False,
                    error=None,
                )
            else:
                self._state = replace(self._state, playlist=new_playlist)
        if reset:
            logger.info("Current track %s left the playlist; now idle.", current_id)
            self._cancel_watchdog()
            if was_loaded:
                await self._adapter.pause()
            await self._emit_event(TrackChanged(None))
        await self._emit_state()

    async def play(self, track: Track) -> None:
        """Select and play `track`, resuming in place when it is already paused."""
        async with self._lock:
            if all(item.id != track.id for item in self._state.playlist):
                logger.warning("play() ignored: track %s not in playlist.", track.id)
                return
            resume_in_place = (
                track.id == self._state.current_track_id and not self._state.is_playing
            )
        if resume_in_place:
            await self.resume()
            return
        await self._load_track(track)

    async def play_track_id(self, track_id: int) -> None:
        track = next(
            (item for item in self._state.playlist if item.id == track_id), None
        )
        if track is None:
            logger.warning("play_track_id() ignored: unknown track %s.", track_id)
            return
        await self.play(track)

    async def pause(self) -> None:
        async with self._lock:
            if not self._state.is_playing:
                return
            self._state = replace(self._state, is_playing=False)
        await self._adapter.pause()
        await self._emit_state()

    async def resume(self) -> None:
        """Resume the current track; reload it when the previous load failed."""
        async with self._lock:
            track = self._state.current_track
            if track is None or self._state.is_playing:
                return
            if not track.is_playable:
                logger.debug("resume() ignored: track %s is not playable.", track.id)
                return
            needs_reload = (
                self._active_load_id is None or self._state.error is not None
            )
            if not needs_reload:
                self._state = replace(self._state, is_playing=True)
            load_id = self._active_load_id
        if needs_reload or load_id is None:
            await self._load_track(track)
            return
        if self._awaiting_start:
            self._arm_watchdog(load_id)
        await self._adapter.play()
        await self._emit_state()

    async def toggle_play_pause(self) -> None:
        if self._state.is_playing:
            await self.pause()
        else:
            await self.resume()

    async def next(self) -> None:
        """Advance to the following track; no-op on the last one."""
        target = self._neighbour(1)
        if target is not None:
            await self._load_track(target)

    async def previous(self) -> None:
        """Go back to the preceding track; no-op on the first one."""
        target = self._neighbour(-1)
        if target is not None:
            await self._load_track(target)

    async def on_ended(self) -> None:
        """Handle end of the current track: rewind, then auto-advance if possible."""
        async with self._lock:
            if self._state.current_track_id is None:
                return
            self._state = replace(self._state, is_playing=False, position_seconds=0.0)
        await self._emit_state()
        target = self._neighbour(1)
        if target is None:
            logger.info("Reached end of playlist.")
            return
        await self._load_track(target)

    async def seek(self, seconds: float) -> None:
        position = valid_position(seconds)
        if position is None:
            logger.warning("Rejected invalid seek time %r.", seconds)
            return
        async with self._lock:
            if self._active_load_id is None or not self._state.backend_ready:
                logger.debug("seek(%.3f) ignored: no ready track.", position)
                return
            duration = self._state.duration_seconds
            if duration > 0:
                position = min(position, duration)
            self._state = replace(self._state, position_seconds=position)
        await self._adapter.seek(position)
        await self._emit_state()

    async def seek_relative(self, delta_seconds: float) -> None:
        state = self._state
        target = state.position_seconds + delta_seconds
        if state.duration_seconds > 0:
            target = min(target, state.duration_seconds)
        await self.seek(max(0.0, target))

    async def set_volume(self, volume: float) -> None:
        level = clamp_volume(volume)
        if level is None:
            logger.warning("Rejected invalid volume %r.", volume)
            return
        async with self._lock:
            # Staying at zero keeps the unmute target.
            memory = self._state.muted_previous_volume if level == 0.0 else None
            self._state = replace(
                self._state, volume=level, muted_previous_volume=memory
            )
        await self._adapter.set_volume(level)
        await self._emit_state()

    async def step_volume(self, delta: float) -> None:
        await self.set_volume(round(self._state.volume + delta, 4))

    async def toggle_mute(self) -> None:
        async with self._lock:
            state = self._state
            if state.volume == 0.0:
                restored = state.muted_previous_volume
                volume = DEFAULT_UNMUTE_VOLUME if restored is None else restored
                self._state = replace(state, volume=volume, muted_previous_volume=None)
            else:
                self._state = replace(
                    state, volume=0.0, muted_previous_volume=state.volume
                )
            volume = self._state.volume
        await self._adapter.set_volume(volume)
        await self._emit_state()

    def _neighbour(self, step: int) -> Track | None:
        state = self._state
        if state.current_track_id is None or len(state.playlist) <= 1:
            return None
        index = state.current_index
        if index is None:
            return None
        target = index + step
        if not 0 <= target < len(state.playlist):
            return None
        return state.playlist[target]

    async def _load_track(self, track: Track) -> None:
        """Select `track`, reset transport fields and start a tagged load."""
        async with self._lock:
            self._load_seq += 1
            load_id = self._load_seq
            playable = track.is_playable
            was_loaded = self._active_load_id is not None
            self._active_load_id = load_id if playable else None
            self._awaiting_start = playable
            self._state = replace(
                self._state,
                current_track_id=track.id,
                is_playing=playable,
                position_seconds=0.0,
                duration_seconds=0.0,
                backend_ready=False,
                error=None,
            )
        self._cancel_watchdog()
        logger.info(
            "Selected track %s (%s - %s), load %d.",
            track.id,
            track.artist,
            track.title,
            load_id,
        )
        await self._emit_event(TrackChanged(track))
        await self._emit_state()
        if not playable:
            logger.info("Track %s has no playable URL; open it externally.", track.id)
            if was_loaded:
                await self._adapter.pause()
            return
        self._arm_watchdog(load_id)
        await self._adapter.load(load_id, track.playable_url)
        if self._active_load_id == load_id and self._state.is_playing:
            await self._adapter.play()

    async def _handle_lifecycle_event(self, event: LifecycleEvent) -> None:
        """Apply a lifecycle event if it still belongs to the current load."""
        repause = False
        handle_end = False
        async with self._lock:
            if event.load_id != self._active_load_id:
                logger.debug("Discarding stale lifecycle event %r.", event)
                return
            previous = self._state
            state = previous
            if isinstance(event, Ready):
                state = replace(state, backend_ready=True)
            elif isinstance(event, (Started, Playing)):
                self._awaiting_start = False
                state = replace(state, backend_ready=True)
                if not state.is_playing:
                    # A pause issued after this start was requested wins.
                    repause = True
            elif isinstance(event, Paused):
                self._awaiting_start = False
                state = replace(state, is_playing=False)
            elif isinstance(event, TimeUpdate):
                position = valid_position(event.seconds)
                if position is not None:
                    if state.duration_seconds > 0:
                        position = min(position, state.duration_seconds)
                    state = replace(state, position_seconds=position)
            elif isinstance(event, DurationKnown):
                duration = valid_duration(event.seconds)
                if duration is None:
                    logger.debug("Discarding invalid duration %r.", event.seconds)
                else:
                    state = replace(
                        state,
                        duration_seconds=duration,
                        position_seconds=min(state.position_seconds, duration),
                    )
            elif isinstance(event, Ended):
                handle_end = True
            elif isinstance(event, PlaybackFailed):
                self._awaiting_start = False
                logger.warning(
                    "Playback failed for track %s: %s",
                    state.current_track_id,
                    event.message,
                )
                state = replace(
                    state,
                    is_playing=False,
                    error=_format_user_error(
                        what_failed="Playback failed for the selected track.",
                        likely_cause="The media URL is unreachable or unsupported.",
                        next_step="Try another track or open it externally.",
                        detail=event.message,
                    ),
                )
            self._state = state
            # A ready load that should be playing stays watched until it starts.
            settled = not self._awaiting_start or (
                isinstance(event, Ready) and not state.is_playing
            )
        if settled:
            self._cancel_watchdog()
        if state != previous:
            await self._emit_state()
        if repause:
            await self._adapter.pause()
        if handle_end:
            await self.on_ended()

    def _arm_watchdog(self, load_id: int) -> None:
        self._cancel_watchdog()
        timeout_s = self._load_timeout_s
        if timeout_s is None:
            return
        self._watchdog = asyncio.create_task(self._load_watchdog(load_id, timeout_s))

    def _cancel_watchdog(self) -> None:
        task = self._watchdog
        self._watchdog = None
        if task is not None and task is not asyncio.current_task():
            task.cancel()

    async def _load_watchdog(self, load_id: int, timeout_s: float) -> None:
        """Fail a load that never becomes ready, or is ready but never starts."""
        try:
            await asyncio.sleep(timeout_s)
        except asyncio.CancelledError:
            return
        async with self._lock:
            state = self._state
            if load_id != self._active_load_id or state.error is not None:
                return
            stalled = not state.backend_ready or (
                state.is_playing and self._awaiting_start
            )
            if not stalled:
                return
            self._awaiting_start = False
            self._state = replace(state, is_playing=False, error=LOAD_TIMEOUT_ERROR)
        logger.warning("Load %d timed out after %.1fs.", load_id, timeout_s)
        if self._watchdog is asyncio.current_task():
            self._watchdog = None
        await self._adapter.pause()
        await self._emit_state()

    async def _emit_state(self) -> None:
        await self._emit_event(PlaybackStateChanged(self._state))
