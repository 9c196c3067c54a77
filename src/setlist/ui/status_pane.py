"""Status pane: transport status, progress and volume."""

from __future__ import annotations

from rich.text import Text
from textual.app import ComposeResult
from textual.widget import Widget
from textual.widgets import Static

from setlist.models import PlaybackState
from setlist.utils.time_format import format_progress

_STATUS_LABELS = {
    "idle": "Stopped",
    "loading": "Loading",
    "playing": "Playing",
    "paused": "Paused",
    "unplayable": "Not playable here",
    "error": "Error",
}


class StatusPane(Widget):
    DEFAULT_CSS = """
    StatusPane {
        height: 3;
        layout: vertical;
    }

    #status-line, #progress-line, #notice-line {
        height: 1;
        width: 1fr;
        overflow: hidden;
    }
    """

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._status_line = Static("", id="status-line")
        self._progress_line = Static("", id="progress-line")
        self._notice_line = Static("", id="notice-line")
        self._state: PlaybackState | None = None
        self._runtime_notice: str | None = None

    def compose(self) -> ComposeResult:
        yield self._status_line
        yield self._progress_line
        yield self._notice_line

    @property
    def status_text(self) -> str:
        return str(self._status_line.content)

    def update_state(self, state: PlaybackState) -> None:
        self._state = state
        self._status_line.update(render_status_line(state))
        self._progress_line.update(
            format_progress(state.position_seconds, state.duration_seconds)
        )
        self._update_notice()

    def set_runtime_notice(self, notice: str | None) -> None:
        self._runtime_notice = notice.strip() if notice else None
        self._update_notice()

    def _update_notice(self) -> None:
        text = Text()
        if self._runtime_notice:
            text.append("Notice: ", style="bold #FF5A36")
            text.append(self._runtime_notice)
        elif self._state is not None and self._state.error:
            text.append("Error: ", style="bold #FF5A36")
            text.append(self._state.error.splitlines()[0])
        self._notice_line.update(text)


def render_status_line(state: PlaybackState) -> Text:
    text = Text()
    text.append("Status: ", style="bold #F2C94C")
    text.append(_STATUS_LABELS[state.status])
    text.append(" | ")
    text.append("Vol: ", style="bold #F2C94C")
    if state.is_muted:
        text.append("muted")
    else:
        text.append(f"{round(state.volume * 100)}%")
    track = state.current_track
    if track is not None:
        index = state.current_index or 0
        text.append(" | ")
        text.append("Track: ", style="bold #F2C94C")
        text.append(f"{index + 1}/{len(state.playlist)}")
    return text
