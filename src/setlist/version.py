"""Help-text metadata shared by the command-line entrypoints."""

from __future__ import annotations

import platform

from . import __version__

__all__ = ["PROJECT_NAME", "build_help_epilog"]

PROJECT_NAME = "setlist-player"


def build_help_epilog() -> str:
    return (
        f"Platform: {platform.platform()}\n"
        f"Python: {platform.python_version()}\n"
        f"Version: {__version__}"
    )
