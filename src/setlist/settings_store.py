"""JSON persistence for user settings.

The store is tolerant of invalid/missing values so upgrades and partial or
corrupt writes degrade to safe defaults instead of aborting startup. Playback
position is deliberately not part of the settings.
"""

from __future__ import annotations

import json
import logging
import math
import time
from contextlib import suppress
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any
from uuid import uuid4

logger = logging.getLogger(__name__)

DEFAULT_LOAD_TIMEOUT_S = 15.0


@dataclass(frozen=True)
class AppSettings:
    """Settings loaded at startup and updated during runtime."""

    volume: float = 1.0
    playback_backend: str = "vlc"
    playlists_dir: str | None = None
    last_playlist_id: str | None = None
    load_timeout_s: float | None = DEFAULT_LOAD_TIMEOUT_S
    log_level: str = "INFO"


def _coerce_settings(data: dict[str, Any]) -> AppSettings:
    """Coerce an untyped JSON object into validated `AppSettings`."""

    def _finite(value: Any) -> float | None:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        number = float(value)
        return number if math.isfinite(number) else None

    def _str_or_none(value: Any) -> str | None:
        if isinstance(value, str) and value.strip():
            return value.strip()
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return None

    volume = _finite(data.get("volume"))
    if volume is None or not 0.0 <= volume <= 1.0:
        volume = 1.0

    if "load_timeout_s" in data and data["load_timeout_s"] is None:
        load_timeout: float | None = None
    else:
        load_timeout = _finite(data.get("load_timeout_s"))
        if load_timeout is None or load_timeout <= 0:
            load_timeout = DEFAULT_LOAD_TIMEOUT_S

    return AppSettings(
        volume=volume,
        playback_backend=_str_or_none(data.get("playback_backend")) or "vlc",
        playlists_dir=_str_or_none(data.get("playlists_dir")),
        last_playlist_id=_str_or_none(data.get("last_playlist_id")),
        load_timeout_s=load_timeout,
        log_level=_str_or_none(data.get("log_level")) or "INFO",
    )


def load_settings_with_notice(path: Path) -> tuple[AppSettings, str | None]:
    """Load settings and return an optional user-facing notice."""
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        logger.info("Settings file missing at %s; using defaults.", path)
        return AppSettings(), None
    except OSError as exc:
        logger.warning("Failed to read settings %s: %s; using defaults.", path, exc)
        return (
            AppSettings(),
            "Settings were reset to defaults.\n"
            "Likely cause: settings file is unreadable due to permissions or IO issues.\n"
            f"Next step: verify access to '{path}' and restart.",
        )

    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Settings file at %s is invalid JSON; using defaults.", path)
        return (
            AppSettings(),
            "Settings were reset to defaults.\n"
            "Likely cause: settings file is corrupt or partially written.\n"
            f"Next step: remove or repair '{path}' and restart.",
        )

    if not isinstance(data, dict):
        logger.warning("Settings file at %s is not a JSON object.", path)
        return (
            AppSettings(),
            "Settings were reset to defaults.\n"
            "Likely cause: settings file format is invalid for this version.\n"
            f"Next step: remove '{path}' and restart.",
        )

    return _coerce_settings(data), None


def load_settings(path: Path) -> AppSettings:
    settings, _notice = load_settings_with_notice(path)
    return settings


def save_settings(path: Path, settings: AppSettings) -> None:
    """Persist settings atomically via write-then-replace."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f"{path.name}.{uuid4().hex}.tmp")
    payload = json.dumps(asdict(settings), indent=2, sort_keys=True)
    delay_s = 0.02
    try:
        for attempt in range(4):
            tmp_path.write_text(payload, encoding="utf-8")
            try:
                tmp_path.replace(path)
                return
            except OSError as exc:
                if not _is_retryable_replace_error(exc) or attempt >= 3:
                    raise
                time.sleep(delay_s)
                delay_s = min(0.25, delay_s * 2.0)
    finally:
        with suppress(OSError):
            tmp_path.unlink()


def _is_retryable_replace_error(exc: OSError) -> bool:
    """Return whether a replace failure is likely transient (file in use)."""
    if getattr(exc, "winerror", None) in {32, 5}:
        return True
    if getattr(exc, "errno", None) in {13, 16}:
        return True
    return "used by another process" in str(exc).lower()
