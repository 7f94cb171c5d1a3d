"""Fixtures for CLI interface tests."""

from __future__ import annotations

import shlex
import sys
from pathlib import Path

import pytest

from ticketcli.config import CONFIG_DIR_NAME
from tests._helpers import ENDPOINT, PASSWORD, USER, FakeTracker


@pytest.fixture
def cli_project(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, tracker: FakeTracker) -> Path:
    """A working directory with a config pointing at the fake tracker."""
    project = tmp_path / "project"
    config_dir = project / CONFIG_DIR_NAME
    config_dir.mkdir(parents=True)
    (config_dir / "config.yml").write_text(f"endpoint: {ENDPOINT}\nuser: {USER}\n")
    monkeypatch.chdir(project)
    monkeypatch.setenv("TICKETCLI_PASSWORD", PASSWORD)
    monkeypatch.setattr("ticketcli.client.build_http_client", lambda options, timeout=30.0: tracker.client())
    return project


def replacing_editor(tmp_path: Path, old: str, new: str) -> str:
    """Editor command that swaps ``old`` for ``new`` in the file it is given."""
    script = tmp_path / "fake_editor.py"
    script.write_text(
        "import pathlib, sys\n"
        "p = pathlib.Path(sys.argv[1])\n"
        f"p.write_text(p.read_text().replace({old!r}, {new!r}))\n"
    )
    return f"{shlex.quote(sys.executable)} {shlex.quote(str(script))}"
