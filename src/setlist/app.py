"""Textual TUI app for setlist-player."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import webbrowser
from collections.abc import Awaitable, Callable
from dataclasses import replace
from pathlib import Path

from rich.text import Text
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import DataTable, Footer, Header, Input, Static

from . import __version__
from .errors import SetlistError
from .events import PlaybackStateChanged, TrackChanged
from .keyboard import dispatch_key, key_press_from_textual
from .logging_utils import setup_logging
from .models import PlaybackState, Track
from .paths import log_dir, playlists_dir, settings_path
from .runtime_config import (
    PLAYBACK_BACKENDS,
    normalize_load_timeout,
    resolve_backend_name,
    resolve_log_level,
)
from .services.fake_backend import FakePlaybackBackend
from .services.media_adapter import MediaBackendAdapter
from .services.playback_backend import PlaybackBackend
from .services.playback_controller import DEFAULT_LOAD_TIMEOUT_S, PlaybackController
from .services.track_source import (
    JsonPlaylistSource,
    PlaylistId,
    TrackSourceResolver,
)
from .services.vlc_backend import VLCPlaybackBackend
from .settings_store import AppSettings, load_settings_with_notice, save_settings
from .ui.error_modal import ErrorModal
from .ui.playlist_table import PlaylistTable
from .ui.status_pane import StatusPane
from .utils.async_utils import run_blocking
from .version import build_help_epilog

logger = logging.getLogger(__name__)

SETTINGS_SAVE_DEBOUNCE_S = 1.0
VLC_UNAVAILABLE_NOTICE = (
    "VLC backend unavailable; using fake backend.\n"
    "Likely cause: VLC/libVLC runtime is not installed or not found.\n"
    "Next step: install VLC, run setlist-doctor, then restart with --backend vlc."
)

# Actions that must not fire while the user types into the filter.
_SHORTCUT_ACTIONS = frozenset({"shortcut", "toggle_mute", "open_external", "quit"})


def build_backend(name: str) -> PlaybackBackend:
    logger.info("Playback backend selected: %s", name)
    if name == "vlc":
        return VLCPlaybackBackend()
    return FakePlaybackBackend()


def build_controller(
    backend: PlaybackBackend,
    *,
    emit_event: Callable[[object], Awaitable[None]],
    track_source: TrackSourceResolver | None = None,
    load_timeout_s: float | None = DEFAULT_LOAD_TIMEOUT_S,
    initial_volume: float = 1.0,
) -> PlaybackController:
    """Wire engine -> adapter -> controller; the app owns the result."""
    return PlaybackController(
        adapter=MediaBackendAdapter(backend),
        emit_event=emit_event,
        track_source=track_source,
        load_timeout_s=load_timeout_s,
        initial_volume=initial_volume,
    )


class SetlistApp(App):
    TITLE = "setlist-player"
    ENABLE_COMMAND_PALETTE = False
    CSS = """
    Screen {
        layout: vertical;
    }

    #main {
        height: 1fr;
    }

    #playlist-column {
        width: 2fr;
    }

    #filter {
        height: 1;
        border: none;
        padding: 0 1;
        background: $panel;
    }

    #filter:focus {
        background: $boost;
    }

    #playlist {
        height: 1fr;
    }

    #now-playing {
        width: 1fr;
        border: solid $accent;
        padding: 0 1;
    }

    #status-pane {
        height: 5;
        border: solid $accent;
        padding: 0 1;
    }
    """
    BINDINGS = [
        Binding("space", "shortcut('space')", "Play/Pause", priority=True),
        Binding("left", "shortcut('left')", "Seek -10s", priority=True),
        Binding("right", "shortcut('right')", "Seek +10s", priority=True),
        Binding("up", "shortcut('up')", "Vol +", priority=True),
        Binding("down", "shortcut('down')", "Vol -", priority=True),
        Binding("ctrl+n", "shortcut('ctrl+n')", "Next", priority=True),
        Binding("ctrl+p", "shortcut('ctrl+p')", "Previous", priority=True),
        Binding("m", "toggle_mute", "Mute"),
        Binding("o", "open_external", "Open link"),
        Binding("slash", "focus_filter", "Filter"),
        Binding("escape", "clear_filter", "Clear filter", show=False),
        Binding("q", "quit", "Quit"),
    ]

    def __init__(
        self,
        *,
        settings: AppSettings | None = None,
        backend_name: str | None = None,
        track_source: TrackSourceResolver | None = None,
        playlist_id: PlaylistId | None = None,
        load_timeout_s: float | None = DEFAULT_LOAD_TIMEOUT_S,
        backend_factory: Callable[[str], PlaybackBackend] = build_backend,
        persist_settings: bool = True,
        startup_notice: str | None = None,
        auto_init: bool = True,
    ) -> None:
        super().__init__()
        self.settings = settings if settings is not None else AppSettings()
        self.controller: PlaybackController | None = None
        self.playback_state = PlaybackState()
        self.current_track: Track | None = None
        self.startup_failed = False
        self._backend_name = backend_name
        self._track_source = track_source
        self._playlist_id = playlist_id
        self._load_timeout_s = load_timeout_s
        self._backend_factory = backend_factory
        self._persist_settings = persist_settings
        self._startup_notice = startup_notice
        self._auto_init = auto_init
        self._shown_playlist: tuple[Track, ...] = ()
        self._settings_save_task: asyncio.Task[None] | None = None
        self._pending_volume: float | None = None
        self._init_task: asyncio.Task[None] | None = None

    def compose(self) -> ComposeResult:
        yield Header()
        yield Horizontal(
            Vertical(
                Input(placeholder="Filter by title, artist or album", id="filter"),
                PlaylistTable(id="playlist"),
                id="playlist-column",
            ),
            Static(render_now_playing(None), id="now-playing"),
            id="main",
        )
        yield StatusPane(id="status-pane")
        yield Footer()

    def on_mount(self) -> None:
        self.query_one(StatusPane).update_state(self.playback_state)
        if self._auto_init:
            self._init_task = asyncio.create_task(self._initialize())

    async def _initialize(self) -> None:
        try:
            self.query_one(PlaylistTable).focus()
            backend_name = resolve_backend_name(
                self._backend_name, self.settings.playback_backend
            )
            self.controller = await self._start_controller(backend_name)
            if self._startup_notice:
                await self.push_screen(ErrorModal(self._startup_notice))
            playlist_id = await self._pick_playlist_id()
            if playlist_id is not None:
                await self.attach_playlist(playlist_id)
        except Exception as exc:
            self.startup_failed = True
            logger.exception("Failed to initialize app: %s", exc)
            await self.push_screen(
                ErrorModal(
                    "Failed to initialize app.\n"
                    "Likely cause: playback backend or playlist source failure.\n"
                    "Next step: run setlist-doctor and review the log file.",
                    title="Startup failed",
                )
            )

    async def _start_controller(self, backend_name: str) -> PlaybackController:
        controller = self._make_controller(backend_name)
        try:
            await controller.start()
        except Exception as exc:
            if backend_name == "fake":
                raise
            logger.exception("Failed to start backend %s: %s", backend_name, exc)
            await controller.shutdown()
            backend_name = "fake"
            controller = self._make_controller(backend_name)
            await controller.start()
            self.query_one(StatusPane).set_runtime_notice("fake backend (VLC unavailable)")
            await self.push_screen(ErrorModal(VLC_UNAVAILABLE_NOTICE))
        if backend_name != self.settings.playback_backend:
            self.settings = replace(self.settings, playback_backend=backend_name)
            await self._save_settings()
        return controller

    def _make_controller(self, backend_name: str) -> PlaybackController:
        return build_controller(
            self._backend_factory(backend_name),
            emit_event=self._handle_playback_event,
            track_source=self._track_source,
            load_timeout_s=self._load_timeout_s,
            initial_volume=self.settings.volume,
        )

    async def _pick_playlist_id(self) -> PlaylistId | None:
        if self._playlist_id is not None:
            return self._playlist_id
        if self.settings.last_playlist_id is not None:
            return self.settings.last_playlist_id
        if isinstance(self._track_source, JsonPlaylistSource):
            available = await self._track_source.list_playlists()
            if available:
                return available[0][0]
            self.query_one(StatusPane).set_runtime_notice(
                f"no playlists in {self._track_source.directory}"
            )
        return None

    async def attach_playlist(self, playlist_id: PlaylistId) -> None:
        """Load a playlist into the controller, reporting lookup failures."""
        if self.controller is None:
            return
        try:
            await self.controller.attach_playlist(playlist_id)
        except SetlistError as exc:
            logger.warning("Could not attach playlist %s: %s", playlist_id, exc)
            await self.push_screen(
                ErrorModal(
                    f"Could not open playlist {playlist_id!s}.\n"
                    "Likely cause: the playlist file is missing or malformed.\n"
                    f"Next step: check the playlists directory. Details: {exc}",
                    title="Playlist unavailable",
                )
            )
            return
        self._playlist_id = playlist_id
        if self.settings.last_playlist_id != str(playlist_id):
            self.settings = replace(self.settings, last_playlist_id=str(playlist_id))
            await self._save_settings()

    async def on_unmount(self) -> None:
        if self._init_task is not None and not self._init_task.done():
            self._init_task.cancel()
        if self._settings_save_task is not None:
            self._settings_save_task.cancel()
            self._settings_save_task = None
            await self._flush_volume()
        if self.controller is not None:
            await self.controller.shutdown()

    def check_action(self, action: str, parameters: tuple[object, ...]) -> bool | None:
        if action in _SHORTCUT_ACTIONS and (
            self._text_input_focused() or isinstance(self.screen, ModalScreen)
        ):
            return False
        return True

    def _text_input_focused(self) -> bool:
        return isinstance(self.focused, Input)

    async def action_shortcut(self, key: str) -> None:
        if self.controller is None:
            return
        if key == "space" and self.playback_state.current_track is None:
            # Nothing selected yet: start from the highlighted row.
            await self._play_highlighted()
            return
        press = key_press_from_textual(
            key, focused_is_text_input=self._text_input_focused()
        )
        await dispatch_key(self.controller, press)

    async def action_toggle_mute(self) -> None:
        if self.controller is not None:
            await self.controller.toggle_mute()

    async def action_open_external(self) -> None:
        track = self.current_track
        if track is None or track.is_playable:
            track = self._highlighted_track()
        if track is None or not track.external_url:
            self.notify("No external link for this track.", severity="warning")
            return
        logger.info("Opening external URL for track %s.", track.id)
        opened = await run_blocking(webbrowser.open, track.external_url)
        if not opened:
            self.notify(f"Could not open {track.external_url}", severity="error")

    def action_focus_filter(self) -> None:
        self.query_one("#filter", Input).focus()

    def action_clear_filter(self) -> None:
        if isinstance(self.screen, ModalScreen):
            return
        field = self.query_one("#filter", Input)
        if field.value:
            field.value = ""
        self.query_one(PlaylistTable).focus()

    async def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        event.stop()
        if self.controller is None or event.row_key.value is None:
            return
        await self.controller.play_track_id(int(event.row_key.value))

    def on_input_changed(self, event: Input.Changed) -> None:
        if event.input.id == "filter":
            self.query_one(PlaylistTable).set_filter(event.value)

    def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id == "filter":
            self.query_one(PlaylistTable).focus()

    async def _play_highlighted(self) -> None:
        track = self._highlighted_track()
        if track is not None and self.controller is not None:
            await self.controller.play(track)

    def _highlighted_track(self) -> Track | None:
        track_id = self.query_one(PlaylistTable).highlighted_track_id
        if track_id is None:
            return None
        for track in self.playback_state.playlist:
            if track.id == track_id:
                return track
        return None

    async def _handle_playback_event(self, event: object) -> None:
        if isinstance(event, PlaybackStateChanged):
            state = event.state
            self.playback_state = state
            table = self.query_one(PlaylistTable)
            if state.playlist != self._shown_playlist:
                self._shown_playlist = state.playlist
                table.set_tracks(state.playlist)
            table.mark_current(state.current_track_id, state.status)
            self.query_one(StatusPane).update_state(state)
            saved = (
                self.settings.volume
                if self._pending_volume is None
                else self._pending_volume
            )
            if state.volume != saved:
                self._schedule_volume_save(state.volume)
        elif isinstance(event, TrackChanged):
            self.current_track = event.track
            self.query_one("#now-playing", Static).update(
                render_now_playing(event.track)
            )

    def _schedule_volume_save(self, volume: float) -> None:
        if self._settings_save_task is not None:
            self._settings_save_task.cancel()
        self._pending_volume = volume
        self._settings_save_task = asyncio.create_task(self._save_volume_debounced())

    async def _save_volume_debounced(self) -> None:
        try:
            await asyncio.sleep(SETTINGS_SAVE_DEBOUNCE_S)
        except asyncio.CancelledError:
            return
        self._settings_save_task = None
        await self._flush_volume()

    async def _flush_volume(self) -> None:
        if self._pending_volume is None:
            return
        self.settings = replace(self.settings, volume=self._pending_volume)
        self._pending_volume = None
        await self._save_settings()

    async def _save_settings(self) -> None:
        if not self._persist_settings:
            return
        try:
            await run_blocking(save_settings, settings_path(), self.settings)
        except OSError as exc:
            logger.warning("Failed to save settings: %s", exc)


def render_now_playing(track: Track | None) -> Text:
    text = Text()
    if track is None:
        text.append("Nothing selected", style="dim")
        return text
    text.append(track.title, style="bold")
    text.append("\n")
    text.append(track.artist)
    if track.album:
        text.append("\nAlbum: ", style="bold #F2C94C")
        text.append(track.album)
    if track.notes:
        text.append("\nNotes: ", style="bold #F2C94C")
        text.append(track.notes)
    if not track.is_playable:
        text.append("\n\n")
        if track.external_url:
            text.append("Not playable here. Press o to open:\n", style="yellow")
            text.append(track.external_url, style="underline")
        else:
            text.append("No playable source for this track.", style="dim")
    return text


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="setlist-player",
        description="Play a setlist of songs from exported playlist files.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=build_help_epilog(),
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument("--verbose", action="store_true", help="Enable verbose output")
    parser.add_argument(
        "--quiet", action="store_true", help="Only show warnings and errors"
    )
    parser.add_argument("--log-file", help="Write logs to a file path")
    parser.add_argument(
        "--backend",
        choices=PLAYBACK_BACKENDS,
        help="Playback backend to use (fake or vlc).",
    )
    parser.add_argument(
        "--playlists-dir",
        help="Directory holding exported <playlist id>.json files.",
    )
    parser.add_argument("--playlist", help="Playlist id to open at startup.")
    parser.add_argument(
        "--load-timeout",
        type=float,
        help="Seconds to wait for a track to load (0 disables the timeout).",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings, notice = load_settings_with_notice(settings_path())
        if args.verbose or args.quiet:
            level = resolve_log_level(verbose=args.verbose, quiet=args.quiet)
        else:
            level = settings.log_level
        setup_logging(
            log_dir(),
            level,
            log_file=Path(args.log_file) if args.log_file else None,
            console=False,
        )
        logging.getLogger(__name__).info("Starting setlist-player %s", __version__)
        if args.playlists_dir:
            directory = Path(args.playlists_dir).expanduser()
        elif settings.playlists_dir:
            directory = Path(settings.playlists_dir).expanduser()
        else:
            directory = playlists_dir()
        timeout = (
            args.load_timeout if args.load_timeout is not None else settings.load_timeout_s
        )
        app = SetlistApp(
            settings=settings,
            backend_name=args.backend,
            track_source=JsonPlaylistSource(directory),
            playlist_id=args.playlist,
            load_timeout_s=normalize_load_timeout(timeout),
            startup_notice=notice,
        )
        app.run()
        return 1 if app.startup_failed else 0
    except Exception as exc:  # pragma: no cover - top-level safety net
        logging.getLogger(__name__).exception("Fatal startup error: %s", exc)
        print(
            "Startup failed. Verify backend/settings/log paths and re-run with --verbose.",
            file=sys.stderr,
        )
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
