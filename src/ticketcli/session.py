"""Session login and logout.

``login`` is what the re-auth interceptor calls; it talks to the session
endpoint with interception disabled.
"""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Callable

import click

from ticketcli.client import ReauthInterceptor, TrackerClient
from ticketcli.config import PASSWORD_ENV, GlobalOptions
from ticketcli.errors import ApiError, LoginError

logger = logging.getLogger(__name__)

PasswordFn = Callable[[str], str]

PASS_NAME_PREFIX = "ticketcli"


def prompt_password(user: str) -> str:
    """$TICKETCLI_PASSWORD, or an interactive hidden prompt."""
    password = os.environ.get(PASSWORD_ENV)
    if password:
        return password
    result: str = click.prompt(f"Password for {user}", hide_input=True, err=True)
    return result


def pass_password(user: str) -> str:
    """First line of ``pass show ticketcli/<user>``."""
    name = f"{PASS_NAME_PREFIX}/{user}"
    try:
        proc = subprocess.run(["pass", "show", name], capture_output=True, text=True, check=False)
    except OSError as exc:
        raise LoginError(f"Cannot run pass: {exc}") from exc
    if proc.returncode != 0:
        raise LoginError(f"pass show {name} failed: {proc.stderr.strip() or f'exit status {proc.returncode}'}")
    lines = proc.stdout.splitlines()
    if not lines or not lines[0]:
        raise LoginError(f"pass entry {name} is empty")
    return lines[0]


def stdin_password(user: str) -> str:
    """One line read from standard input."""
    line = click.get_text_stream("stdin").readline().rstrip("\r\n")
    if not line:
        raise LoginError(f"No password for {user} on standard input")
    return line


PASSWORD_SOURCES: dict[str, PasswordFn] = {
    "prompt": prompt_password,
    "pass": pass_password,
    "stdin": stdin_password,
}


def password_source(options: GlobalOptions) -> PasswordFn:
    """The password lookup selected by ``password-source`` (default: prompt)."""
    name = options.password_source or "prompt"
    try:
        return PASSWORD_SOURCES[name]
    except KeyError:
        raise LoginError(
            f"Unknown password-source {name!r}; expected one of: {', '.join(PASSWORD_SOURCES)}"
        ) from None


def login(client: TrackerClient, options: GlobalOptions, password_fn: PasswordFn | None = None) -> str:
    """Make sure a session exists, creating one if needed. Returns the user name.

    The password comes from ``password_fn``, else from the configured
    ``password-source``; it is only looked up when a new session is needed.
    """
    session = client.get_session()
    if session is not None:
        logger.debug("Already logged in as %s", session["name"])
        return session["name"]
    if not options.user:
        raise LoginError("No user configured; pass --user or set 'user' in config.yml")
    try:
        password = (password_fn or password_source(options))(options.user)
        client.new_session(options.user, password)
    except ApiError as exc:
        raise LoginError(f"Login failed for user {options.user}: {exc}") from exc
    logger.info("Logged in as %s", options.user)
    if not options.quiet:
        click.echo(f"User {options.user} logged in")
    return options.user


def logout(client: TrackerClient, options: GlobalOptions) -> bool:
    ended = client.delete_session()
    if not options.quiet:
        click.echo(f"User {options.user} logged out" if ended else "No active session")
    return ended


def install_reauth(
    client: TrackerClient,
    options: GlobalOptions,
    password_fn: PasswordFn | None = None,
) -> ReauthInterceptor:
    """Attach the re-auth interceptor, logging in through ``login`` above."""
    return ReauthInterceptor(client, options, lambda: login(client, options, password_fn)).install()
