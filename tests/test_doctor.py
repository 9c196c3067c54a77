"""Tests for environment diagnostics probes and report behavior."""

from __future__ import annotations

import types

import setlist.doctor as doctor_module


def _check(name: str, status: str, required: bool) -> doctor_module.DoctorCheck:
    return doctor_module.DoctorCheck(
        name=name, status=status, required=required, detail="test"  # type: ignore[arg-type]
    )


def _patch_probes(monkeypatch, vlc_status: str) -> None:
    monkeypatch.setattr(
        doctor_module,
        "probe_module",
        lambda name, **kwargs: _check(name, "ok", kwargs["required"]),
    )
    monkeypatch.setattr(
        doctor_module,
        "probe_vlc",
        lambda **kwargs: _check("vlc/libvlc", vlc_status, kwargs["required"]),
    )


def test_run_doctor_fake_backend_allows_missing_vlc(monkeypatch) -> None:
    _patch_probes(monkeypatch, "missing")
    report = doctor_module.run_doctor("fake")
    assert report.exit_code == 0
    assert [check.name for check in report.checks] == [
        "textual",
        "platformdirs",
        "vlc/libvlc",
    ]


def test_run_doctor_vlc_backend_fails_when_vlc_missing(monkeypatch) -> None:
    _patch_probes(monkeypatch, "missing")
    report = doctor_module.run_doctor("vlc")
    assert report.exit_code == 2
    assert "Result: FAIL" in doctor_module.render_report(report)


def test_render_report_lists_checks_and_hints() -> None:
    report = doctor_module.DoctorReport(
        backend="vlc",
        checks=[
            doctor_module.DoctorCheck(
                name="vlc/libvlc",
                status="error",
                required=True,
                detail="libVLC unusable",
                hint="Install VLC.",
            )
        ],
    )
    text = doctor_module.render_report(report)
    assert "[ERR] vlc/libvlc" in text
    assert "[required]" in text
    assert "hint: Install VLC." in text


def test_probe_module_reports_missing_import() -> None:
    check = doctor_module.probe_module("setlist_missing_module_xyz", required=False)
    assert check.status == "missing"
    assert check.required is False


def test_probe_vlc_reports_unusable_libvlc(monkeypatch) -> None:
    def broken_instance():
        raise OSError("libvlc.so not found")

    fake_vlc = types.SimpleNamespace(__version__="3.0.20", Instance=broken_instance)
    monkeypatch.setattr(
        doctor_module,
        "importlib",
        types.SimpleNamespace(import_module=lambda _name: fake_vlc),
    )
    check = doctor_module.probe_vlc(required=True)
    assert check.status == "error"
    assert "python-vlc 3.0.20" in check.detail


def test_probe_vlc_ok_reports_libvlc_version(monkeypatch) -> None:
    class _Instance:
        def media_player_new(self) -> object:
            return object()

    fake_vlc = types.SimpleNamespace(
        __version__="3.0.20",
        Instance=_Instance,
        libvlc_get_version=lambda: b"3.0.18 Vetinari",
    )
    monkeypatch.setattr(
        doctor_module,
        "importlib",
        types.SimpleNamespace(import_module=lambda _name: fake_vlc),
    )
    check = doctor_module.probe_vlc(required=False)
    assert check.status == "ok"
    assert check.detail == "python-vlc 3.0.20; libVLC 3.0.18 Vetinari"


def test_main_prints_report_and_returns_exit_code(monkeypatch, capsys) -> None:
    _patch_probes(monkeypatch, "ok")
    assert doctor_module.main(["--backend", "vlc"]) == 0
    out = capsys.readouterr().out
    assert "setlist-player doctor (backend=vlc)" in out
    assert "Result: OK" in out
