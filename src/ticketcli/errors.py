"""Error taxonomy and the abort result for ticketcli.

Recoverable errors (editor, document, submit) are handled inside the edit
loop's confirm/retry protocol. ``Abort`` is not an exception: it is returned
up through every frame until the CLI turns it into a process exit status.
"""

from __future__ import annotations

from dataclasses import dataclass


class TicketCliError(Exception):
    """Base class for all ticketcli errors."""


class ConfigError(TicketCliError):
    """Raised when a config file cannot be parsed."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid config file {path}: {reason}")


class EditorLaunchError(TicketCliError):
    """Raised when the editor fails to start or exits non-zero."""

    def __init__(self, command: list[str], reason: str) -> None:
        self.command = command
        self.reason = reason
        super().__init__(f"Editor {command[0] if command else '<none>'!r} failed: {reason}")


class DocumentSyntaxError(TicketCliError):
    """Raised when an edited document cannot be parsed or populated."""


class SubmitError(TicketCliError):
    """Raised when the remote operation behind a submit callback fails.

    The original exception is kept as ``__cause__``.
    """


class LoginError(TicketCliError):
    """Raised when a session cannot be established."""


class ApiError(TicketCliError):
    """Raised when the service answers with an error status."""

    def __init__(self, status_code: int, method: str, url: str, detail: str = "") -> None:
        self.status_code = status_code
        self.method = method
        self.url = url
        self.detail = detail
        msg = f"{method} {url} returned {status_code}"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)


@dataclass(frozen=True)
class Abort:
    """The user declined to continue; carries the process exit status."""

    code: int = 1
