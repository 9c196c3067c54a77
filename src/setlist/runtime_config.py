"""Runtime configuration normalization helpers.

These helpers keep CLI flag and settings-file interpretation deterministic
across entrypoints.
"""

from __future__ import annotations

import math

PLAYBACK_BACKENDS = ("fake", "vlc")
DEFAULT_BACKEND = "fake"
MIN_LOAD_TIMEOUT_S = 1.0
MAX_LOAD_TIMEOUT_S = 300.0


def resolve_log_level(*, verbose: bool, quiet: bool) -> str:
    """Resolve effective log level from CLI flags.

    Precedence is deterministic: --quiet overrides --verbose.
    """
    if quiet:
        return "WARNING"
    if verbose:
        return "DEBUG"
    return "INFO"


def resolve_backend_name(cli_backend: str | None, settings_backend: str | None) -> str:
    """Pick the playback backend: CLI flag, then settings, then `fake`."""
    for candidate in (cli_backend, settings_backend):
        if candidate is None:
            continue
        normalized = candidate.strip().lower()
        if normalized in PLAYBACK_BACKENDS:
            return normalized
    return DEFAULT_BACKEND


def normalize_load_timeout(value: float | None) -> float | None:
    """Clamp a load timeout into the supported range; 0 or None disables it."""
    if value is None:
        return None
    if isinstance(value, bool) or not math.isfinite(value) or value <= 0:
        return None
    return max(MIN_LOAD_TIMEOUT_S, min(float(value), MAX_LOAD_TIMEOUT_S))
