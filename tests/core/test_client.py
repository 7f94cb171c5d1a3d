"""Tests for TrackerClient, session handling and the re-auth interceptor."""

from __future__ import annotations

import io
import json
import subprocess
from pathlib import Path

import httpx
import pytest

from ticketcli.client import ReauthInterceptor, TrackerClient, build_http_client, is_anonymous
from ticketcli.config import GlobalOptions
from ticketcli.errors import ApiError, LoginError
from ticketcli.session import (
    PASSWORD_SOURCES,
    install_reauth,
    login,
    logout,
    pass_password,
    password_source,
    prompt_password,
    stdin_password,
)
from tests._helpers import ENDPOINT, PASSWORD, TOKEN, USER, FakeTracker


def _password(user: str) -> str:
    return PASSWORD


class TestIsAnonymous:
    @pytest.mark.parametrize(
        ("headers", "expected"),
        [({}, True), ({"X-Ausername": "anonymous"}, True), ({"X-Ausername": ""}, True), ({"X-Ausername": USER}, False)],
    )
    def test_identity_header(self, headers: dict[str, str], expected: bool) -> None:
        assert is_anonymous(httpx.Response(200, headers=headers)) is expected


class TestReauth:
    def test_login_and_single_replay(
        self, client: TrackerClient, tracker: FakeTracker, options: GlobalOptions
    ) -> None:
        install_reauth(client, options, _password)
        issue = client.get_issue("PROJ-1")
        assert issue["key"] == "PROJ-1"
        assert tracker.paths() == [
            "GET /rest/api/2/issue/PROJ-1",
            "GET /rest/auth/1/session",
            "POST /rest/auth/1/session",
            "GET /rest/api/2/issue/PROJ-1",
        ]
        assert f"JSESSIONID={TOKEN}" in tracker.requests[-1].headers["cookie"]

    def test_replay_carries_body(self, client: TrackerClient, tracker: FakeTracker, options: GlobalOptions) -> None:
        install_reauth(client, options, _password)
        client.edit_issue("PROJ-1", {"fields": {"summary": "new"}})
        assert tracker.updates == [{"fields": {"summary": "new"}}]
        assert [p for p in tracker.paths() if p.startswith("PUT")] == ["PUT /rest/api/2/issue/PROJ-1"] * 2

    def test_authenticated_response_passes_through(self, options: GlobalOptions) -> None:
        tracker = FakeTracker(logged_in=True)
        calls: list[bool] = []
        with TrackerClient(ENDPOINT, tracker.client()) as client:
            ReauthInterceptor(client, options, lambda: calls.append(True)).install()
            client.get_issue("PROJ-1")
        assert calls == []
        assert tracker.paths() == ["GET /rest/api/2/issue/PROJ-1"]

    def test_quiet_forced_during_login_and_restored(self, client: TrackerClient, options: GlobalOptions) -> None:
        seen: list[bool] = []

        def fake_login() -> None:
            seen.append(options.quiet)
            login(client, options, _password)

        ReauthInterceptor(client, options, fake_login).install()
        client.get_issue("PROJ-1")
        assert seen == [True]
        assert options.quiet is False

    def test_login_chatter_suppressed(
        self, client: TrackerClient, options: GlobalOptions, capsys: pytest.CaptureFixture[str]
    ) -> None:
        install_reauth(client, options, _password)
        client.get_issue("PROJ-1")
        assert "logged in" not in capsys.readouterr().out

    def test_login_failure_propagates_without_replay(
        self, client: TrackerClient, tracker: FakeTracker, options: GlobalOptions
    ) -> None:
        install_reauth(client, options, lambda user: "wrong")
        with pytest.raises(LoginError, match="Login failed"):
            client.get_issue("PROJ-1")
        assert tracker.paths()[-1] == "POST /rest/auth/1/session"
        assert options.quiet is False

    def test_requests_during_login_not_intercepted(self, client: TrackerClient, tracker: FakeTracker, options: GlobalOptions) -> None:
        inner: list[int] = []

        def nested_login() -> None:
            inner.append(client.request("GET", "/rest/api/2/issue/PROJ-1").status_code)
            login(client, options, _password)

        ReauthInterceptor(client, options, nested_login).install()
        client.get_issue("PROJ-1")
        assert inner == [401]
        assert tracker.paths().count("POST /rest/auth/1/session") == 1

    def test_replay_error_surfaces(self, client: TrackerClient, tracker: FakeTracker, options: GlobalOptions) -> None:
        install_reauth(client, options, _password)
        tracker.fail_replays.append(500)
        with pytest.raises(ApiError) as excinfo:
            client.get_issue("PROJ-1")
        assert excinfo.value.status_code == 500
        assert tracker.paths().count("GET /rest/api/2/issue/PROJ-1") == 2

    def test_session_endpoint_never_intercepted(self, client: TrackerClient, options: GlobalOptions) -> None:
        calls: list[bool] = []
        ReauthInterceptor(client, options, lambda: calls.append(True)).install()
        assert client.get_session() is None
        assert calls == []


class TestSession:
    def test_login_creates_session(
        self, client: TrackerClient, options: GlobalOptions, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert login(client, options, _password) == USER
        assert capsys.readouterr().out == f"User {USER} logged in\n"
        assert client.get_session() == {"name": USER}

    def test_login_reuses_session(self, options: GlobalOptions) -> None:
        tracker = FakeTracker(logged_in=True)
        with TrackerClient(ENDPOINT, tracker.client()) as client:
            assert login(client, options, lambda user: pytest.fail("no prompt expected")) == USER
        assert tracker.paths() == ["GET /rest/auth/1/session"]

    def test_login_without_user(self, client: TrackerClient) -> None:
        with pytest.raises(LoginError, match="No user configured"):
            login(client, GlobalOptions(endpoint=ENDPOINT, user=""), _password)

    def test_logout(self, client: TrackerClient, options: GlobalOptions, capsys: pytest.CaptureFixture[str]) -> None:
        login(client, options, _password)
        capsys.readouterr()
        assert logout(client, options) is True
        assert capsys.readouterr().out == f"User {USER} logged out\n"
        assert len(client.http.cookies) == 0

    def test_logout_without_session(
        self, client: TrackerClient, options: GlobalOptions, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert logout(client, options) is False
        assert capsys.readouterr().out == "No active session\n"

    def test_unknown_password_source(self, client: TrackerClient) -> None:
        opts = GlobalOptions(endpoint=ENDPOINT, user=USER, password_source="keyring")
        with pytest.raises(LoginError, match="Unknown password-source 'keyring'"):
            login(client, opts)

    def test_configured_source_used(self, client: TrackerClient, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setitem(PASSWORD_SOURCES, "stdin", _password)
        assert login(client, GlobalOptions(endpoint=ENDPOINT, user=USER, password_source="stdin")) == USER


class TestPasswordSources:
    def test_default_is_prompt(self) -> None:
        assert password_source(GlobalOptions()) is prompt_password

    def test_prompt_prefers_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TICKETCLI_PASSWORD", "from-env")
        assert prompt_password(USER) == "from-env"

    def test_stdin_reads_one_line(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("sys.stdin", io.StringIO("s3cret\nignored\n"))
        assert stdin_password(USER) == "s3cret"

    def test_stdin_empty(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("sys.stdin", io.StringIO(""))
        with pytest.raises(LoginError, match="No password"):
            stdin_password(USER)

    def test_pass_first_line(self, monkeypatch: pytest.MonkeyPatch) -> None:
        calls: list[list[str]] = []

        def fake_run(argv: list[str], **kwargs: object) -> subprocess.CompletedProcess[str]:
            calls.append(argv)
            return subprocess.CompletedProcess(argv, 0, stdout="s3cret\nurl: x\n", stderr="")

        monkeypatch.setattr(subprocess, "run", fake_run)
        assert pass_password(USER) == "s3cret"
        assert calls == [["pass", "show", f"ticketcli/{USER}"]]

    def test_pass_failure(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def failing(argv: list[str], **kwargs: object) -> subprocess.CompletedProcess[str]:
            return subprocess.CompletedProcess(argv, 1, stdout="", stderr="not in the password store")

        monkeypatch.setattr(subprocess, "run", failing)
        with pytest.raises(LoginError, match="not in the password store"):
            pass_password(USER)

    def test_pass_missing(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def missing(argv: list[str], **kwargs: object) -> subprocess.CompletedProcess[str]:
            raise FileNotFoundError(argv[0])

        monkeypatch.setattr(subprocess, "run", missing)
        with pytest.raises(LoginError, match="Cannot run pass"):
            pass_password(USER)


class TestCookies:
    def test_cookies_persist_between_clients(self, tracker: FakeTracker, options: GlobalOptions, tmp_path: Path) -> None:
        cookie_file = tmp_path / "state" / "cookies.json"
        with TrackerClient(ENDPOINT, tracker.client(), cookie_file) as first:
            login(first, options, _password)
        assert cookie_file.stat().st_mode & 0o777 == 0o600
        assert any(c["value"] == TOKEN for c in json.loads(cookie_file.read_text()))

        with TrackerClient(ENDPOINT, tracker.client(), cookie_file) as second:
            assert second.get_session() == {"name": USER}

    def test_unreadable_cookie_file_ignored(self, tracker: FakeTracker, tmp_path: Path) -> None:
        cookie_file = tmp_path / "cookies.json"
        cookie_file.write_text("{not json")
        with TrackerClient(ENDPOINT, tracker.client(), cookie_file) as client:
            assert len(client.http.cookies) == 0

    @pytest.mark.parametrize("content", ["{}", "[1]", '[{"name": "JSESSIONID"}]', '[{"name": 1, "value": "x"}]', "null"])
    def test_malformed_cookie_file_ignored(self, tracker: FakeTracker, tmp_path: Path, content: str) -> None:
        cookie_file = tmp_path / "cookies.json"
        cookie_file.write_text(content)
        with TrackerClient(ENDPOINT, tracker.client(), cookie_file) as client:
            assert len(client.http.cookies) == 0


class TestErrors:
    def test_api_error_detail(self, options: GlobalOptions) -> None:
        tracker = FakeTracker(logged_in=True)
        with TrackerClient(ENDPOINT, tracker.client()) as client:
            with pytest.raises(ApiError) as excinfo:
                client.get_issue("PROJ-404")
        assert excinfo.value.status_code == 404
        assert "Issue Does Not Exist" in str(excinfo.value)

    def test_write_error_detail(self) -> None:
        tracker = FakeTracker(logged_in=True)
        tracker.fail_writes.append(400)
        with TrackerClient(ENDPOINT, tracker.client()) as client:
            with pytest.raises(ApiError, match="summary: rejected"):
                client.edit_issue("PROJ-1", {"fields": {}})


class TestBuildHttpClient:
    def test_default_headers(self) -> None:
        http = build_http_client(GlobalOptions(endpoint=ENDPOINT))
        try:
            assert http.headers["Accept"] == "application/json"
            assert http.headers["User-Agent"].startswith("ticketcli/")
        finally:
            http.close()

    def test_unixproxy_uses_socket_transport(self, tmp_path: Path) -> None:
        http = build_http_client(GlobalOptions(endpoint=ENDPOINT, unixproxy=str(tmp_path / "proxy.sock"), insecure=True))
        try:
            assert isinstance(http._transport, httpx.HTTPTransport)
        finally:
            http.close()

    def test_browse_url(self, client: TrackerClient) -> None:
        assert client.browse_url("PROJ-1") == f"{ENDPOINT}/browse/PROJ-1"
