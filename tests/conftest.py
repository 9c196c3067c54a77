"""Test configuration."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from types import SimpleNamespace

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

import setlist.app as app_module  # noqa: E402
import setlist.paths as paths  # noqa: E402
import setlist.services.track_source as track_source_module  # noqa: E402


@pytest.fixture(autouse=True)
def isolated_user_dirs(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Point per-user data/config roots at the test's tmp dir."""
    roots = SimpleNamespace(
        user_data_dir=str(tmp_path / "user-data"),
        user_config_dir=str(tmp_path / "user-config"),
    )
    monkeypatch.setattr(paths, "AppDirs", lambda _app_name: roots)
    paths.get_app_dirs.cache_clear()
    yield roots
    paths.get_app_dirs.cache_clear()


@pytest.fixture(autouse=True)
def run_blocking_inline(monkeypatch: pytest.MonkeyPatch):
    """Run file IO inline so tests never wait on the executor thread."""

    async def _inline(func, /, *args, **kwargs):
        return func(*args, **kwargs)

    monkeypatch.setattr(track_source_module, "run_blocking", _inline)
    monkeypatch.setattr(app_module, "run_blocking", _inline)


@pytest.fixture(autouse=True)
def ensure_current_event_loop():
    """Give sync tests a current event loop and close it afterwards."""
    loop = asyncio.new_event_loop()
    try:
        asyncio.set_event_loop(loop)
        yield
    finally:
        loop.close()
        asyncio.set_event_loop(None)
