"""Nox sessions for setlist-player quality gates."""

from __future__ import annotations

import nox

nox.options.sessions = ["lint", "typecheck", "tests"]


@nox.session
def lint(session: nox.Session) -> None:
    """Check lint and formatting without touching files."""
    session.install("ruff")
    session.run("ruff", "check", "src", "tests", "noxfile.py")
    session.run("ruff", "format", "--check", "src", "tests", "noxfile.py")


@nox.session(name="lint-fix")
def lint_fix(session: nox.Session) -> None:
    session.install("ruff")
    session.run("ruff", "check", "--fix", "src", "tests", "noxfile.py")
    session.run("ruff", "format", "src", "tests", "noxfile.py")


@nox.session
def typecheck(session: nox.Session) -> None:
    """Type-check the package with its runtime dependencies installed."""
    session.install("mypy")
    session.install("-e", ".")
    session.run("mypy", "src/setlist")


@nox.session
def tests(session: nox.Session) -> None:
    session.install("-e", ".[test]")
    session.run("pytest", *session.posargs)


@nox.session
def doctor(session: nox.Session) -> None:
    """Report whether libVLC is usable in this environment."""
    session.install("-e", ".")
    session.run("setlist-doctor", "--backend", "vlc", success_codes=[0, 2])


@nox.session(python=False)
def local(session: nox.Session) -> None:
    """Run the quality gates against the current environment."""
    session.run("ruff", "check", "--fix", "src", "tests", external=True)
    session.run("ruff", "format", "src", "tests", external=True)
    session.run("mypy", "src/setlist", external=True)
    session.run("pytest", external=True)
