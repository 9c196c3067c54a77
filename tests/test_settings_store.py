"""Tests for settings storage."""

from __future__ import annotations

from pathlib import Path

import pytest

from setlist.settings_store import (
    AppSettings,
    load_settings,
    load_settings_with_notice,
    save_settings,
)


def test_settings_roundtrip(tmp_path) -> None:
    path = tmp_path / "nested" / "settings.json"
    settings = AppSettings(
        volume=0.4,
        playback_backend="fake",
        playlists_dir="/srv/setlists",
        last_playlist_id="friday",
        load_timeout_s=30.0,
        log_level="DEBUG",
    )
    save_settings(path, settings)
    assert load_settings(path) == settings
    assert list(path.parent.glob("*.tmp")) == []


def test_missing_file_gives_defaults_without_notice(tmp_path) -> None:
    settings, notice = load_settings_with_notice(tmp_path / "absent.json")
    assert settings == AppSettings()
    assert notice is None


def test_corrupt_json_defaults_with_notice(tmp_path, caplog) -> None:
    path = tmp_path / "settings.json"
    path.write_text("{bad json", encoding="utf-8")
    settings, notice = load_settings_with_notice(path)
    assert settings == AppSettings()
    assert notice is not None and "corrupt" in notice
    assert any("invalid JSON" in record.message for record in caplog.records)


def test_non_object_defaults_with_notice(tmp_path) -> None:
    path = tmp_path / "settings.json"
    path.write_text("[1, 2]", encoding="utf-8")
    settings, notice = load_settings_with_notice(path)
    assert settings == AppSettings()
    assert notice is not None and "format is invalid" in notice


def test_invalid_values_are_coerced(tmp_path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(
        '{"volume": 3, "playback_backend": "", "last_playlist_id": 12,'
        ' "load_timeout_s": -4, "log_level": [], "playlists_dir": "  "}',
        encoding="utf-8",
    )
    settings = load_settings(path)
    assert settings.volume == 1.0
    assert settings.playback_backend == "vlc"
    assert settings.last_playlist_id == "12"
    assert settings.load_timeout_s == 15.0
    assert settings.log_level == "INFO"
    assert settings.playlists_dir is None


def test_null_load_timeout_disables_watchdog(tmp_path) -> None:
    path = tmp_path / "settings.json"
    path.write_text('{"load_timeout_s": null}', encoding="utf-8")
    assert load_settings(path).load_timeout_s is None


def test_save_replace_failure_keeps_previous_file(tmp_path, monkeypatch) -> None:
    path = tmp_path / "settings.json"
    original = AppSettings(volume=0.2)
    save_settings(path, original)

    def fail_replace(self: Path, target: Path) -> None:
        del target
        raise OSError("disk full")

    monkeypatch.setattr(Path, "replace", fail_replace)
    with pytest.raises(OSError, match="disk full"):
        save_settings(path, AppSettings(volume=0.9))
    monkeypatch.undo()
    assert load_settings(path) == original
    assert list(tmp_path.glob("*.tmp")) == []


def test_save_retries_transient_replace_errors(tmp_path, monkeypatch) -> None:
    path = tmp_path / "settings.json"
    real_replace = Path.replace
    attempts = {"count": 0}

    def flaky_replace(self: Path, target: Path) -> Path:
        attempts["count"] += 1
        if attempts["count"] == 1:
            raise PermissionError(13, "file in use")
        return real_replace(self, target)

    monkeypatch.setattr(Path, "replace", flaky_replace)
    monkeypatch.setattr("setlist.settings_store.time.sleep", lambda _s: None)
    save_settings(path, AppSettings(volume=0.7))
    monkeypatch.undo()
    assert attempts["count"] == 2
    assert load_settings(path).volume == 0.7
