"""Per-user directory and file locations."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from platformdirs import AppDirs

APP_NAME = "setlist-player"


@lru_cache(maxsize=4)
def get_app_dirs(app_name: str = APP_NAME) -> AppDirs:
    return AppDirs(app_name)


def _ensure_dir(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path


def data_dir(app_name: str = APP_NAME) -> Path:
    """Return the per-user data directory, creating it if needed."""
    return _ensure_dir(Path(get_app_dirs(app_name).user_data_dir))


def config_dir(app_name: str = APP_NAME) -> Path:
    """Return the per-user config directory, creating it if needed."""
    return _ensure_dir(Path(get_app_dirs(app_name).user_config_dir))


def log_dir(app_name: str = APP_NAME) -> Path:
    return _ensure_dir(data_dir(app_name) / "logs")


def playlists_dir(app_name: str = APP_NAME) -> Path:
    """Return the default directory holding exported playlist JSON files."""
    return _ensure_dir(data_dir(app_name) / "playlists")


def settings_path(app_name: str = APP_NAME) -> Path:
    return config_dir(app_name) / "settings.json"
