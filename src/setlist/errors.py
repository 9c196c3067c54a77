"""Domain exceptions raised by track sources and record mapping."""

from __future__ import annotations


class SetlistError(Exception):
    """Base class for setlist-player errors."""


class PlaylistNotFoundError(SetlistError):
    """Requested playlist id is unknown to the track source."""

    def __init__(self, playlist_id: object) -> None:
        super().__init__(f"Playlist not found: {playlist_id!r}")
        self.playlist_id = playlist_id


class PlaylistSourceError(SetlistError):
    """Playlist exists but could not be read or decoded."""


class TrackRecordError(SetlistError):
    """Song record is missing fields required to build a `Track`."""
