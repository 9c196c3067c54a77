"""Runtime diagnostics for playback backend readiness."""

from __future__ import annotations

import argparse
import importlib
import sys
from dataclasses import dataclass
from typing import Literal

from . import __version__
from .runtime_config import PLAYBACK_BACKENDS

DoctorStatus = Literal["ok", "missing", "error"]


@dataclass(frozen=True)
class DoctorCheck:
    """One environment readiness check result."""

    name: str
    status: DoctorStatus
    required: bool
    detail: str
    hint: str | None = None


@dataclass(frozen=True)
class DoctorReport:
    """Collection of doctor checks and derived process exit contract."""

    backend: str
    checks: list[DoctorCheck]

    @property
    def exit_code(self) -> int:
        """Return non-zero when any required check failed or is missing."""
        for check in self.checks:
            if check.required and check.status != "ok":
                return 2
        return 0


def run_doctor(backend: str) -> DoctorReport:
    return DoctorReport(
        backend=backend,
        checks=[
            probe_module("textual", required=True),
            probe_module("platformdirs", required=True),
            probe_vlc(required=backend == "vlc"),
        ],
    )


def render_report(report: DoctorReport) -> str:
    """Render terminal-friendly diagnostics report text."""
    lines = [f"setlist-player doctor (backend={report.backend})", ""]
    for check in report.checks:
        req = "required" if check.required else "optional"
        lines.append(f"{_status_token(check.status)} {check.name:<12} [{req}] {check.detail}")
        if check.hint:
            lines.append(f"      hint: {check.hint}")
    lines.append("")
    lines.append("Result: OK" if report.exit_code == 0 else "Result: FAIL")
    return "\n".join(lines)


def probe_module(name: str, *, required: bool) -> DoctorCheck:
    try:
        module = importlib.import_module(name)
    except Exception as exc:
        return DoctorCheck(
            name=name,
            status="missing",
            required=required,
            detail=f"not importable ({exc.__class__.__name__})",
            hint="Install Python dependencies (pip install setlist-player).",
        )
    version = getattr(module, "__version__", None)
    detail = f"importable ({version})" if version else "importable"
    return DoctorCheck(name=name, status="ok", required=required, detail=detail)


def probe_vlc(*, required: bool) -> DoctorCheck:
    """Verify python-vlc import and that libVLC can create a media player."""
    hint = "Install VLC/libVLC and ensure python-vlc can locate libVLC."
    try:
        vlc = importlib.import_module("vlc")
    except Exception as exc:
        return DoctorCheck(
            name="vlc/libvlc",
            status="missing",
            required=required,
            detail=f"python-vlc import failed ({exc.__class__.__name__})",
            hint=hint,
        )
    version = getattr(vlc, "__version__", "unknown")
    try:
        instance = vlc.Instance()
        instance.media_player_new()
    except Exception as exc:
        return DoctorCheck(
            name="vlc/libvlc",
            status="error",
            required=required,
            detail=f"python-vlc {version}; libVLC unusable ({exc.__class__.__name__})",
            hint=hint,
        )
    return DoctorCheck(
        name="vlc/libvlc",
        status="ok",
        required=required,
        detail=f"python-vlc {version}; libVLC {_libvlc_version(vlc)}",
    )


def _status_token(status: DoctorStatus) -> str:
    if status == "ok":
        return "[OK]"
    if status == "missing":
        return "[MISS]"
    return "[ERR]"


def _libvlc_version(vlc: object) -> str:
    getter = getattr(vlc, "libvlc_get_version", None)
    if not callable(getter):
        return "unknown"
    try:
        release = getter()
    except Exception:
        return "unknown"
    if isinstance(release, bytes):
        return release.decode("utf-8", errors="replace")
    return str(release)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="setlist-doctor",
        description="Check that setlist-player's playback backend can run.",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        "--backend",
        choices=PLAYBACK_BACKENDS,
        default="vlc",
        help="Backend the checks should treat as required.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    report = run_doctor(args.backend)
    print(render_report(report), file=sys.stdout)
    return report.exit_code


if __name__ == "__main__":
    raise SystemExit(main())
