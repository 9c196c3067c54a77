"""Modal used for startup notices and playback failures."""

from __future__ import annotations

from textual.app import ComposeResult
from textual.containers import Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Label, Static


class ErrorModal(ModalScreen[None]):
    """Show a multi-line notice until the user acknowledges it."""

    DEFAULT_CSS = """
    ErrorModal {
        align: center middle;
    }

    #notice-body {
        padding: 1 2;
        border: solid $error;
        width: 60%;
        height: auto;
    }

    #notice-title {
        text-style: bold;
        margin-bottom: 1;
    }
    """

    BINDINGS = [
        ("escape", "close", "Close"),
        ("enter", "close", "Close"),
    ]

    def __init__(self, message: str, *, title: str = "Notice") -> None:
        super().__init__()
        self.message = message
        self._title = title

    def compose(self) -> ComposeResult:
        yield Vertical(
            Static(self._title, id="notice-title"),
            Label(self.message, id="notice-message"),
            Button("OK", id="notice-ok"),
            id="notice-body",
        )

    def on_mount(self) -> None:
        self.query_one("#notice-ok", Button).focus()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        event.stop()
        self.action_close()

    def action_close(self) -> None:
        self.dismiss(None)
