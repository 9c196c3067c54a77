"""Track source resolvers: playlist id in, ordered `Track` snapshot out.

Playlist persistence lives outside this project. The controller only needs a
one-shot snapshot, so the contract is a single async call. Two resolvers ship
here: an in-memory one and one reading exported playlist JSON files.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any, Protocol

from setlist.errors import (
    PlaylistNotFoundError,
    PlaylistSourceError,
    TrackRecordError,
)
from setlist.models import Track, track_from_record
from setlist.utils.async_utils import run_blocking

logger = logging.getLogger(__name__)

PlaylistId = int | str


class TrackSourceResolver(Protocol):
    """Resolve a playlist into its ordered tracks."""

    async def resolve_playlist(self, playlist_id: PlaylistId) -> list[Track]: ...


class InMemoryTrackSource:
    """Resolver over playlists already held in memory."""

    def __init__(self, playlists: Mapping[PlaylistId, Sequence[Track]]) -> None:
        self._playlists = {key: list(tracks) for key, tracks in playlists.items()}

    async def resolve_playlist(self, playlist_id: PlaylistId) -> list[Track]:
        try:
            return list(self._playlists[playlist_id])
        except KeyError:
            raise PlaylistNotFoundError(playlist_id) from None


class JsonPlaylistSource:
    """Resolver reading `<directory>/<playlist_id>.json` playlist exports.

    A file holds either a bare list of song records or an object with a
    `songs` list and an optional `name`.
    """

    def __init__(self, directory: Path) -> None:
        self._directory = directory

    @property
    def directory(self) -> Path:
        return self._directory

    async def resolve_playlist(self, playlist_id: PlaylistId) -> list[Track]:
        return await run_blocking(self._read_tracks, playlist_id)

    async def list_playlists(self) -> list[tuple[str, str]]:
        """Return `(playlist_id, name)` pairs for every readable export."""
        return await run_blocking(self._list_playlists)

    def _path_for(self, playlist_id: PlaylistId) -> Path:
        name = str(playlist_id).strip()
        if not name or Path(name).name != name:
            raise PlaylistNotFoundError(playlist_id)
        return self._directory / f"{name}.json"

    def _read_tracks(self, playlist_id: PlaylistId) -> list[Track]:
        path = self._path_for(playlist_id)
        payload = _read_json(path, playlist_id)
        _name, records = _split_payload(payload, path)
        ordered = sorted(
            (record for record in records if isinstance(record, dict)),
            key=_record_order,
        )
        tracks: list[Track] = []
        seen: set[int] = set()
        for record in ordered:
            try:
                track = track_from_record(record)
            except (TrackRecordError, ValueError) as exc:
                logger.warning("Skipping invalid song record in %s: %s", path, exc)
                continue
            if track.id in seen:
                logger.warning(
                    "Skipping duplicate song id %d in %s.", track.id, path
                )
                continue
            seen.add(track.id)
            tracks.append(track)
        logger.debug("Resolved playlist %s with %d tracks.", playlist_id, len(tracks))
        return tracks

    def _list_playlists(self) -> list[tuple[str, str]]:
        if not self._directory.is_dir():
            return []
        result: list[tuple[str, str]] = []
        for path in sorted(self._directory.glob("*.json")):
            try:
                payload = _read_json(path, path.stem)
                name, _records = _split_payload(payload, path)
            except (PlaylistNotFoundError, PlaylistSourceError) as exc:
                logger.warning("Ignoring unreadable playlist %s: %s", path, exc)
                continue
            result.append((path.stem, name or path.stem))
        return result


def _read_json(path: Path, playlist_id: PlaylistId) -> Any:
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise PlaylistNotFoundError(playlist_id) from None
    except OSError as exc:
        raise PlaylistSourceError(f"Failed to read playlist {path}: {exc}") from exc
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise PlaylistSourceError(f"Playlist {path} is invalid JSON: {exc}") from exc


def _split_payload(payload: Any, path: Path) -> tuple[str | None, list[Any]]:
    if isinstance(payload, list):
        return None, payload
    if isinstance(payload, dict) and isinstance(payload.get("songs"), list):
        name = payload.get("name")
        return (name if isinstance(name, str) else None), payload["songs"]
    raise PlaylistSourceError(f"Playlist {path} has no song list.")


def _record_order(record: dict[str, Any]) -> int:
    order = record.get("order")
    if isinstance(order, int) and not isinstance(order, bool):
        return order
    return 0
