"""HTTP client for the ticket-tracking service.

One ``TrackerClient`` (wrapping a single ``httpx.Client``) is shared by every
command. Each response passes through the client's post-callbacks; the
``ReauthInterceptor`` installed there turns an anonymous response into a
login followed by one replay of the original request, so callers never see
the anonymous response.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx

from ticketcli import __version__
from ticketcli.config import GlobalOptions, quieted
from ticketcli.errors import ApiError
from ticketcli.types import CommentPayload, CreatedIssue, ErrorBody, IssuePayload, SessionInfo

logger = logging.getLogger(__name__)

IDENTITY_HEADER = "X-Ausername"
ANONYMOUS_USER = "anonymous"
SESSION_PATH = "/rest/auth/1/session"
ISSUE_PATH = "/rest/api/2/issue"
DEFAULT_TIMEOUT = 30.0

PostCallback = Callable[[httpx.Request, httpx.Response], httpx.Response]


def build_http_client(options: GlobalOptions, timeout: float = DEFAULT_TIMEOUT) -> httpx.Client:
    """Create the shared ``httpx.Client``.

    ``insecure`` disables certificate verification; ``unixproxy`` routes every
    connection through a unix-domain socket instead of TCP.
    """
    verify = not options.insecure
    transport = None
    if options.unixproxy:
        transport = httpx.HTTPTransport(uds=options.unixproxy, verify=verify)
    return httpx.Client(
        timeout=httpx.Timeout(timeout),
        verify=verify,
        transport=transport,
        headers={
            "Accept": "application/json",
            "User-Agent": f"ticketcli/{__version__}",
        },
    )


def is_anonymous(response: httpx.Response) -> bool:
    """True if the response carries no authenticated identity."""
    user = response.headers.get(IDENTITY_HEADER, "")
    return user == "" or user == ANONYMOUS_USER


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text.strip()
    if not isinstance(body, dict):
        return ""
    error: ErrorBody = body  # type: ignore[assignment]
    parts = [str(m) for m in error.get("errorMessages") or []]
    parts.extend(f"{k}: {v}" for k, v in (error.get("errors") or {}).items())
    return "; ".join(parts)


class TrackerClient:
    """Thin REST wrapper around a shared ``httpx.Client``."""

    def __init__(self, endpoint: str, http: httpx.Client, cookie_file: Path | None = None) -> None:
        self.endpoint = endpoint.rstrip("/")
        self.http = http
        self.cookie_file = cookie_file
        self._post_callbacks: list[PostCallback] = []
        if cookie_file is not None:
            self.load_cookies(cookie_file)

    @classmethod
    def from_options(cls, options: GlobalOptions, cookie_file: Path | None = None) -> TrackerClient:
        return cls(options.endpoint, build_http_client(options), cookie_file)

    def close(self) -> None:
        if self.cookie_file is not None:
            self.save_cookies(self.cookie_file)
        self.http.close()

    def load_cookies(self, path: Path) -> None:
        """Load session cookies saved by a previous run. Unreadable files are ignored."""
        if not path.is_file():
            return
        try:
            saved = json.loads(path.read_text())
        except (ValueError, OSError) as exc:
            logger.warning("Ignoring unreadable cookie file %s: %s", path, exc)
            return
        if not isinstance(saved, list) or not all(
            isinstance(c, dict) and isinstance(c.get("name"), str) and isinstance(c.get("value"), str) for c in saved
        ):
            logger.warning("Ignoring malformed cookie file %s", path)
            return
        for c in saved:
            self.http.cookies.set(c["name"], c["value"], domain=c.get("domain") or "", path=c.get("path") or "/")

    def save_cookies(self, path: Path) -> None:
        cookies = [{"name": c.name, "value": c.value, "domain": c.domain, "path": c.path} for c in self.http.cookies.jar]
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(cookies, indent=2) + "\n")
        path.chmod(0o600)

    def __enter__(self) -> TrackerClient:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def add_post_callback(self, callback: PostCallback) -> None:
        self._post_callbacks.append(callback)

    def url(self, path: str) -> str:
        return f"{self.endpoint}{path}"

    def browse_url(self, key: str) -> str:
        return f"{self.endpoint}/browse/{key}"

    # -- transport ------------------------------------------------------------

    def _send_raw(self, request: httpx.Request) -> httpx.Response:
        start = time.monotonic()
        response = self.http.send(request)
        duration_ms = round((time.monotonic() - start) * 1000, 1)
        logger.debug(
            "%s %s -> %s",
            request.method,
            request.url,
            response.status_code,
            extra={
                "method": request.method,
                "url": str(request.url),
                "status": response.status_code,
                "duration_ms": duration_ms,
            },
        )
        return response

    def send(self, request: httpx.Request, *, intercept: bool = True) -> httpx.Response:
        response = self._send_raw(request)
        if intercept:
            for callback in self._post_callbacks:
                response = callback(request, response)
        return response

    def replay(self, request: httpx.Request) -> httpx.Response:
        """Send ``request`` again, skipping post-callbacks.

        The Cookie header is rebuilt from the client's jar so a session
        established since the first attempt is used.
        """
        headers = httpx.Headers(request.headers)
        if "cookie" in headers:
            del headers["cookie"]
        fresh = httpx.Request(request.method, request.url, headers=headers, content=request.content or None)
        self.http.cookies.set_cookie_header(fresh)
        return self._send_raw(fresh)

    def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        intercept: bool = True,
    ) -> httpx.Response:
        req = self.http.build_request(method, self.url(path), json=json)
        return self.send(req, intercept=intercept)

    def _checked(self, response: httpx.Response) -> httpx.Response:
        if response.status_code >= 400:
            raise ApiError(
                response.status_code,
                response.request.method,
                str(response.request.url),
                _error_detail(response),
            )
        return response

    # -- session --------------------------------------------------------------

    def get_session(self) -> SessionInfo | None:
        """Current session, or None if the service treats us as anonymous."""
        response = self.request("GET", SESSION_PATH, intercept=False)
        if response.status_code == 401 or is_anonymous(response):
            return None
        result: SessionInfo = self._checked(response).json()
        return result

    def new_session(self, user: str, password: str) -> None:
        response = self.request(
            "POST",
            SESSION_PATH,
            json={"username": user, "password": password},
            intercept=False,
        )
        body = self._checked(response).json()
        session = body.get("session") if isinstance(body, dict) else None
        # Set-Cookie normally carries the session; fall back to the body.
        if isinstance(session, dict) and session.get("name") and session.get("value"):
            if session["name"] not in self.http.cookies:
                self.http.cookies.set(session["name"], session["value"])

    def delete_session(self) -> bool:
        """End the session. Returns False if there was none."""
        response = self.request("DELETE", SESSION_PATH, intercept=False)
        if response.status_code == 401:
            return False
        self._checked(response)
        self.http.cookies.clear()
        return True

    # -- issues ---------------------------------------------------------------

    def get_issue(self, key: str) -> dict[str, Any]:
        result: dict[str, Any] = self._checked(self.request("GET", f"{ISSUE_PATH}/{key}")).json()
        return result

    def create_issue(self, payload: IssuePayload) -> CreatedIssue:
        result: CreatedIssue = self._checked(self.request("POST", ISSUE_PATH, json=payload)).json()
        return result

    def edit_issue(self, key: str, payload: IssuePayload) -> None:
        self._checked(self.request("PUT", f"{ISSUE_PATH}/{key}", json=payload))

    def add_comment(self, key: str, payload: CommentPayload) -> dict[str, Any]:
        result: dict[str, Any] = self._checked(self.request("POST", f"{ISSUE_PATH}/{key}/comment", json=payload)).json()
        return result


class ReauthInterceptor:
    """Post-callback that logs in and replays requests answered anonymously.

    While its own login is running the interceptor passes responses through
    untouched, so requests made by ``login`` are never intercepted.
    """

    def __init__(self, client: TrackerClient, options: GlobalOptions, login: Callable[[], object]) -> None:
        self.client = client
        self.options = options
        self.login = login
        self._logging_in = False

    def install(self) -> ReauthInterceptor:
        self.client.add_post_callback(self)
        return self

    def __call__(self, request: httpx.Request, response: httpx.Response) -> httpx.Response:
        if self._logging_in or not is_anonymous(response):
            return response
        logger.info("Anonymous response to %s %s, logging in", request.method, request.url)
        response.close()
        self._logging_in = True
        try:
            with quieted(self.options):
                self.login()
        finally:
            self._logging_in = False
        return self.client.replay(request)
