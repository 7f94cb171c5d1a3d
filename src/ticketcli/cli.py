"""CLI for the ticket-tracking service.

Configuration is read from ``.ticketcli.d/`` directories (see config.py);
command-line flags override it.

Usage:
    ticketcli login                                   # Establish a session
    ticketcli logout                                  # End the session
    ticketcli view PROJ-1                             # Show an issue
    ticketcli edit PROJ-1                             # Edit an issue in $EDITOR
    ticketcli edit PROJ-1 -m "note" --noedit          # Comment without editing
    ticketcli create -p PROJ -i Task                  # Create an issue
    ticketcli create -o summary="Fix it" --noedit     # Create from presets
    ticketcli comment PROJ-1 -m "Looks good"          # Add a comment
"""

from __future__ import annotations

import sys

import click

from ticketcli import __version__
from ticketcli.cli_commands import issues, session
from ticketcli.cli_common import AppContext, flag_value
from ticketcli.config import GlobalOptions, find_config_dirs, load_config
from ticketcli.errors import ConfigError
from ticketcli.logging import setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="ticketcli")
@click.option("--endpoint", "-e", default=None, help="Base URI of the service")
@click.option("--insecure", "-k", is_flag=True, help="Disable TLS certificate verification")
@click.option("--quiet", "-Q", is_flag=True, help="Suppress output to console")
@click.option("--unixproxy", default=None, help="Path of a unix-socket proxy")
@click.option(
    "--password-source",
    type=click.Choice(["prompt", "pass", "stdin"]),
    default=None,
    help="Where the login password comes from (default: prompt)",
)
@click.option("--user", "-u", default=None, help="Login name used to authenticate with the service")
@click.option("--verbose", "-v", is_flag=True, help="Log debug output to stderr")
@click.pass_context
def cli(
    ctx: click.Context,
    endpoint: str | None,
    insecure: bool,
    quiet: bool,
    unixproxy: str | None,
    password_source: str | None,
    user: str | None,
    verbose: bool,
) -> None:
    """ticketcli: command-line client for a ticket-tracking service."""
    dirs = find_config_dirs()
    try:
        config = load_config(ctx.invoked_subcommand, dirs)
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    setup_logging(dirs[0] if dirs else None, verbose=verbose)
    options = GlobalOptions.resolve(
        config,
        endpoint=endpoint,
        insecure=flag_value(ctx, "insecure", insecure),
        quiet=flag_value(ctx, "quiet", quiet),
        unixproxy=unixproxy,
        password_source=password_source,
        user=user,
    )
    ctx.obj = AppContext(options=options, config=config, config_dirs=dirs)


cli.add_command(session.login)
cli.add_command(session.logout)
cli.add_command(issues.view)
cli.add_command(issues.edit)
cli.add_command(issues.create)
cli.add_command(issues.comment)


if __name__ == "__main__":
    cli()
