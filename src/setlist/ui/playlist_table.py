"""Playlist table with a now-playing marker and a text filter."""

from __future__ import annotations

from collections.abc import Sequence

from rich.text import Text
from textual.binding import Binding
from textual.widgets import DataTable

from setlist.models import PlaybackStatus, Track
from setlist.utils.time_format import format_seconds

_MARKERS: dict[PlaybackStatus, str] = {
    "loading": "…",
    "playing": "▶",
    "paused": "❚❚",
    "unplayable": "↗",
    "error": "!",
}


def track_matches(track: Track, needle: str) -> bool:
    """Case-insensitive match on title, artist and album."""
    needle = needle.strip().casefold()
    if not needle:
        return True
    fields = (track.title, track.artist, track.album or "")
    return any(needle in field.casefold() for field in fields)


class PlaylistTable(DataTable):
    """Row-per-track view; row keys are track ids rendered as strings."""

    # Arrow keys belong to the global transport shortcuts.
    BINDINGS = [
        Binding("j", "cursor_down", "Cursor down", show=False),
        Binding("k", "cursor_up", "Cursor up", show=False),
    ]

    def __init__(self, **kwargs) -> None:
        super().__init__(cursor_type="row", zebra_stripes=True, **kwargs)
        self._tracks: tuple[Track, ...] = ()
        self._visible_ids: list[int] = []
        self._filter = ""
        self._marked_id: int | None = None
        self._marker = ""
        self._columns_ready = False

    def on_mount(self) -> None:
        self.add_column("", key="marker", width=2)
        self.add_column("#", key="position", width=3)
        self.add_column("Title", key="title")
        self.add_column("Artist", key="artist")
        self.add_column("Length", key="length", width=7)
        self.add_column("Source", key="source", width=8)
        self._columns_ready = True
        self._rebuild()

    @property
    def visible_track_ids(self) -> list[int]:
        return list(self._visible_ids)

    @property
    def highlighted_track_id(self) -> int | None:
        if not self._visible_ids:
            return None
        row = self.cursor_row
        if not 0 <= row < len(self._visible_ids):
            return None
        return self._visible_ids[row]

    def set_tracks(self, tracks: Sequence[Track]) -> None:
        self._tracks = tuple(tracks)
        self._rebuild()

    def set_filter(self, text: str) -> None:
        if text == self._filter:
            return
        self._filter = text
        self._rebuild()

    def mark_current(self, track_id: int | None, status: PlaybackStatus) -> None:
        """Move the now-playing marker; a no-op when nothing changed."""
        marker = _MARKERS.get(status, "") if track_id is not None else ""
        if (track_id, marker) == (self._marked_id, self._marker):
            return
        previous = self._marked_id
        self._marked_id = track_id
        self._marker = marker
        if previous is not None and previous != track_id:
            self._set_marker(previous, "")
        if track_id is not None:
            self._set_marker(track_id, marker)

    def _set_marker(self, track_id: int, marker: str) -> None:
        if track_id in self._visible_ids:
            self.update_cell(str(track_id), "marker", marker)

    def _rebuild(self) -> None:
        if not self._columns_ready:
            return
        highlighted = self.highlighted_track_id
        self.clear()
        self._visible_ids = []
        for position, track in enumerate(self._tracks, start=1):
            if not track_matches(track, self._filter):
                continue
            self._visible_ids.append(track.id)
            marker = self._marker if track.id == self._marked_id else ""
            self.add_row(
                marker,
                str(position),
                track.title,
                track.artist,
                _length_cell(track),
                _source_cell(track),
                key=str(track.id),
            )
        if highlighted in self._visible_ids:
            self.move_cursor(row=self._visible_ids.index(highlighted))


def _length_cell(track: Track) -> str:
    if track.duration_hint is None:
        return "-:--"
    return format_seconds(track.duration_hint)


def _source_cell(track: Track) -> Text:
    if track.is_playable:
        return Text("stream", style="green")
    if track.external_url:
        return Text("external", style="yellow")
    return Text("none", style="dim")
