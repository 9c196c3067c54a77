"""Service events emitted by `PlaybackController` for the presentation layer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from setlist.models import PlaybackState, Track


@dataclass(frozen=True)
class PlaybackStateChanged:
    """Service event emitted when the effective playback state changes."""

    state: PlaybackState


@dataclass(frozen=True)
class TrackChanged:
    """Service event emitted when the selected track changes."""

    track: Track | None
