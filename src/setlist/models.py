"""Track and playback-state value types shared by services and UI."""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Literal

from .errors import TrackRecordError

PlaybackStatus = Literal["idle", "loading", "playing", "paused", "unplayable", "error"]

_SPOTIFY_MARKERS = ("open.spotify.com", "spotify:")


@dataclass(frozen=True)
class Track:
    """One playable/display unit within a playlist."""

    id: int
    title: str
    artist: str
    album: str | None = None
    duration_hint: int | None = None
    playable_url: str | None = None
    external_url: str | None = None
    notes: str | None = None
    order: int = 0

    def __post_init__(self) -> None:
        if not self.title or not self.title.strip():
            raise ValueError("Track title must be non-empty")
        if not self.artist or not self.artist.strip():
            raise ValueError("Track artist must be non-empty")
        if self.duration_hint is not None and self.duration_hint < 0:
            raise ValueError("Track duration_hint must be >= 0")

    @property
    def is_playable(self) -> bool:
        return bool(self.playable_url)


@dataclass(frozen=True)
class PlaybackState:
    """Read-only snapshot of transport state exposed to the presentation layer."""

    playlist: tuple[Track, ...] = ()
    playlist_id: int | str | None = None
    current_track_id: int | None = None
    is_playing: bool = False
    position_seconds: float = 0.0
    duration_seconds: float = 0.0
    volume: float = 1.0
    muted_previous_volume: float | None = None
    backend_ready: bool = False
    error: str | None = None

    @property
    def current_index(self) -> int | None:
        if self.current_track_id is None:
            return None
        for index, track in enumerate(self.playlist):
            if track.id == self.current_track_id:
                return index
        return None

    @property
    def current_track(self) -> Track | None:
        index = self.current_index
        return None if index is None else self.playlist[index]

    @property
    def has_next(self) -> bool:
        index = self.current_index
        return index is not None and index < len(self.playlist) - 1

    @property
    def has_previous(self) -> bool:
        index = self.current_index
        return index is not None and index > 0

    @property
    def is_muted(self) -> bool:
        """Icon-level mute: explicit toggle or a volume dragged to zero."""
        return self.volume == 0.0

    @property
    def status(self) -> PlaybackStatus:
        track = self.current_track
        if track is None:
            return "idle"
        if not track.is_playable:
            return "unplayable"
        if self.error is not None:
            return "error"
        if not self.backend_ready:
            return "loading"
        return "playing" if self.is_playing else "paused"


def is_spotify_url(url: str | None) -> bool:
    """Return whether a URL points at Spotify and cannot be streamed directly."""
    if not url:
        return False
    return any(marker in url for marker in _SPOTIFY_MARKERS)


def track_from_record(record: Mapping[str, Any]) -> Track:
    """Build a `Track` from an untyped song record.

    Records follow the song table layout (`id`, `title`, `artist`, `album`,
    `duration`, `url`, `spotify_url`, `notes`, `order`). Spotify links are
    never handed to the media backend; they become the external URL.
    """

    def _text(value: Any) -> str | None:
        if not isinstance(value, str):
            return None
        stripped = value.strip()
        return stripped or None

    def _int_or_none(value: Any) -> int | None:
        if isinstance(value, bool):
            return None
        if isinstance(value, int):
            return value
        if isinstance(value, float) and math.isfinite(value):
            return int(value)
        return None

    track_id = _int_or_none(record.get("id"))
    title = _text(record.get("title"))
    artist = _text(record.get("artist"))
    if track_id is None or title is None or artist is None:
        raise TrackRecordError(
            f"Song record requires id, title and artist: {dict(record)!r}"
        )

    url = _text(record.get("url"))
    spotify_url = _text(record.get("spotify_url"))
    playable_url: str | None = url
    external_url: str | None = None
    if is_spotify_url(url):
        playable_url = None
        external_url = url
    if external_url is None:
        external_url = spotify_url

    duration = _int_or_none(record.get("duration"))
    if duration is not None and duration < 0:
        duration = None

    return Track(
        id=track_id,
        title=title,
        artist=artist,
        album=_text(record.get("album")),
        duration_hint=duration,
        playable_url=playable_url,
        external_url=external_url,
        notes=_text(record.get("notes")),
        order=_int_or_none(record.get("order")) or 0,
    )
