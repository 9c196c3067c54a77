"""VLC playback engine using python-vlc."""

from __future__ import annotations

import asyncio
import queue
import threading
from collections.abc import Awaitable, Callable, Coroutine
from dataclasses import dataclass
from pathlib import Path
from typing import Any, cast
from urllib.parse import urlparse

from .playback_backend import (
    BackendError,
    BackendEvent,
    BackendStatus,
    MediaChanged,
    PositionUpdated,
    StateChanged,
)

SHUTDOWN_TIMEOUT_S = 2.0


@dataclass
class _Command:
    name: str
    args: tuple[Any, ...]
    future: asyncio.Future[Any] | None


class VLCPlaybackBackend:
    """Playback engine backed by a dedicated VLC thread.

    libVLC calls are confined to one worker thread. Results and events are
    marshaled back onto the asyncio loop that called `start()`.
    """

    def __init__(self, *, poll_interval_ms: int = 200) -> None:
        self._poll_interval = poll_interval_ms / 1000
        self._handler: Callable[[BackendEvent], Awaitable[None]] | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._queue: queue.Queue[_Command] = queue.Queue()
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()
        self._load_id = 0

    def set_event_handler(
        self, handler: Callable[[BackendEvent], Awaitable[None]]
    ) -> None:
        self._handler = handler

    async def start(self) -> None:
        if self._thread is not None:
            return
        self._loop = asyncio.get_running_loop()
        ready_future: asyncio.Future[None] = self._loop.create_future()
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._thread_main,
            args=(ready_future,),
            name="VLCBackendThread",
            daemon=True,
        )
        self._thread.start()
        try:
            await ready_future
        except Exception:
            self._thread = None
            raise

    async def shutdown(self) -> None:
        if self._thread is None:
            return
        self._stop_event.set()
        self._queue.put(_Command("wake", (), None))
        thread = self._thread
        await asyncio.get_running_loop().run_in_executor(
            None, thread.join, SHUTDOWN_TIMEOUT_S
        )
        if thread.is_alive():
            raise RuntimeError(
                f"VLC backend thread did not stop within {SHUTDOWN_TIMEOUT_S} seconds"
            )
        self._thread = None

    async def load(self, load_id: int, url: str) -> None:
        await self._submit("load", load_id, url)

    async def play(self) -> None:
        await self._submit("play")

    async def pause(self) -> None:
        await self._submit("pause")

    async def seek_ms(self, position_ms: int) -> None:
        await self._submit("seek_ms", position_ms)

    async def set_volume(self, volume: int) -> None:
        await self._submit("set_volume", volume)

    async def get_state(self) -> BackendStatus:
        return cast(BackendStatus, await self._submit("get_state"))

    async def _submit(self, name: str, *args: Any) -> Any:
        if self._loop is None or self._thread is None or not self._thread.is_alive():
            raise RuntimeError("VLC backend not started.")
        future: asyncio.Future[Any] = self._loop.create_future()
        self._queue.put(_Command(name, args, future))
        return await future

    def _thread_main(self, ready_future: asyncio.Future[None]) -> None:
        try:
            import vlc

            instance = vlc.Instance()
            player = instance.media_player_new()
        except Exception as exc:  # pragma: no cover - depends on VLC install
            self._notify_future_exception(
                ready_future,
                RuntimeError(
                    "VLC backend unavailable. Ensure VLC/libVLC is installed."
                ),
            )
            self._emit_event(BackendError(self._load_id, str(exc)))
            return

        self._notify_future_result(ready_future, None)
        last_pos = -1
        last_duration = -1
        last_state: BackendStatus = "idle"

        while not self._stop_event.is_set():
            try:
                cmd = self._queue.get(timeout=self._poll_interval)
            except queue.Empty:
                cmd = None

            if cmd is not None and cmd.name != "wake":
                try:
                    result = self._handle_command(cmd, instance, player)
                    self._notify_future_result(cmd.future, result)
                except Exception as exc:  # pragma: no cover - backend safety net
                    self._notify_future_exception(cmd.future, exc)
                    self._emit_event(BackendError(self._load_id, str(exc)))
                if cmd.name == "load":
                    last_pos = -1
                    last_duration = -1
                    last_state = "ready"

            load_id = self._load_id
            state = _map_state(player)
            if state != last_state and state not in {"idle", "loading"}:
                last_state = state
                self._emit_event(StateChanged(load_id, state))

            if state in {"playing", "paused"}:
                pos = max(player.get_time(), 0)
                duration = max(player.get_length(), 0)
                if duration != last_duration:
                    last_duration = duration
                    if duration > 0:
                        self._emit_event(MediaChanged(load_id, duration))
                if pos != last_pos:
                    last_pos = pos
                    self._emit_event(PositionUpdated(load_id, pos, duration))

        player.stop()

    def _handle_command(self, cmd: _Command, instance: Any, player: Any) -> Any:
        name = cmd.name
        if name == "load":
            load_id, url = cmd.args
            player.stop()
            self._load_id = int(load_id)
            player.set_media(_new_media(instance, url))
            self._emit_event(StateChanged(self._load_id, "ready"))
            return None
        if name == "play":
            player.play()
            return None
        if name == "pause":
            player.set_pause(1)
            return None
        if name == "seek_ms":
            (pos,) = cmd.args
            player.set_time(int(pos))
            return None
        if name == "set_volume":
            (vol,) = cmd.args
            player.audio_set_volume(int(vol))
            return None
        if name == "get_state":
            return _map_state(player)
        raise ValueError(f"Unknown command {name}")

    def _emit_event(self, event: BackendEvent) -> None:
        if self._handler is None or self._loop is None:
            return
        coro = self._handler(event)
        asyncio.run_coroutine_threadsafe(
            cast(Coroutine[Any, Any, None], coro), self._loop
        )

    def _notify_future_result(
        self, future: asyncio.Future[Any] | None, value: Any
    ) -> None:
        if future is None or self._loop is None:
            return
        self._loop.call_soon_threadsafe(self._resolve_future_result, future, value)

    def _notify_future_exception(
        self, future: asyncio.Future[Any] | None, exc: Exception
    ) -> None:
        if future is None or self._loop is None:
            return
        self._loop.call_soon_threadsafe(self._resolve_future_exception, future, exc)

    @staticmethod
    def _resolve_future_result(future: asyncio.Future[Any], value: Any) -> None:
        if not future.done():
            future.set_result(value)

    @staticmethod
    def _resolve_future_exception(
        future: asyncio.Future[Any], exc: BaseException
    ) -> None:
        if not future.done():
            future.set_exception(exc)


def _new_media(instance: Any, url: str) -> Any:
    if urlparse(url).scheme in {"http", "https", "file"}:
        return instance.media_new(url)
    return instance.media_new_path(str(Path(url)))


def _map_state(player: Any) -> BackendStatus:
    try:
        state = player.get_state()
    except Exception:
        return "error"
    name = getattr(state, "name", "").lower()
    if name == "playing":
        return "playing"
    if name == "paused":
        return "paused"
    if name == "stopped":
        return "stopped"
    if name == "ended":
        return "ended"
    if name in {"opening", "buffering"}:
        return "loading"
    if name == "error":
        return "error"
    return "idle"
