"""Tests for per-user paths."""

from __future__ import annotations

from pathlib import Path

import setlist.paths as paths


class FakeAppDirs:
    """Minimal AppDirs stand-in used to control path roots during tests."""

    def __init__(self, data_dir: Path, config_dir: Path) -> None:
        self.user_data_dir = str(data_dir)
        self.user_config_dir = str(config_dir)


def test_paths_use_platformdirs_and_create_dirs(tmp_path, monkeypatch) -> None:
    data_dir = tmp_path / "data"
    config_dir = tmp_path / "config"
    seen: list[str] = []

    def fake_app_dirs(app_name: str) -> FakeAppDirs:
        seen.append(app_name)
        return FakeAppDirs(data_dir, config_dir)

    monkeypatch.setattr(paths, "AppDirs", fake_app_dirs)
    paths.get_app_dirs.cache_clear()
    try:
        assert paths.data_dir() == data_dir
        assert paths.config_dir() == config_dir
        assert paths.log_dir() == data_dir / "logs"
        assert paths.playlists_dir() == data_dir / "playlists"
        assert paths.settings_path() == config_dir / "settings.json"
        assert (data_dir / "logs").is_dir()
        assert (data_dir / "playlists").is_dir()
        assert config_dir.is_dir()
        assert seen == ["setlist-player"]
    finally:
        paths.get_app_dirs.cache_clear()
