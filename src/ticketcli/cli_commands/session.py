"""CLI commands for the service session: login, logout."""

from __future__ import annotations

import click

from ticketcli import session
from ticketcli.cli_common import AppContext, cli_errors, get_client


@click.command()
@click.pass_obj
def login(app: AppContext) -> None:
    """Authenticate and store a session cookie."""
    with cli_errors(), get_client(app) as client:
        session.login(client, app.options)


@click.command()
@click.pass_obj
def logout(app: AppContext) -> None:
    """End the current session."""
    with cli_errors(), get_client(app) as client:
        session.logout(client, app.options)
