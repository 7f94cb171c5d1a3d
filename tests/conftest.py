"""Shared pytest fixtures for ticketcli tests."""

from __future__ import annotations

import logging
from collections.abc import Generator
from pathlib import Path

import pytest
from click.testing import CliRunner

from ticketcli.client import TrackerClient
from ticketcli.config import GlobalOptions
from tests._helpers import ENDPOINT, USER, FakeTracker


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point HOME at a scratch dir and clear editor/password variables."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    for var in ("EDITOR", "TICKETCLI_EDITOR", "TICKETCLI_PASSWORD"):
        monkeypatch.delenv(var, raising=False)
    return home


@pytest.fixture(autouse=True)
def _reset_logger() -> Generator[None, None, None]:
    yield
    logger = logging.getLogger("ticketcli")
    for handler in logger.handlers[:]:
        handler.close()
        logger.removeHandler(handler)


@pytest.fixture
def tracker() -> FakeTracker:
    """Fake service with no active session."""
    return FakeTracker()


@pytest.fixture
def options() -> GlobalOptions:
    return GlobalOptions(endpoint=ENDPOINT, user=USER)


@pytest.fixture
def client(tracker: FakeTracker) -> Generator[TrackerClient, None, None]:
    """TrackerClient talking to the fake tracker, no interceptor installed."""
    c = TrackerClient(ENDPOINT, tracker.client())
    yield c
    c.close()


@pytest.fixture
def cli_runner() -> CliRunner:
    """Click CLI test runner."""
    return CliRunner()
