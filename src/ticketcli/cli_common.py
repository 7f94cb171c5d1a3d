"""Shared CLI helpers used by cli.py and the cli_commands/ modules.

Provides the per-invocation ``AppContext``, client construction with the
re-auth interceptor attached, error reporting and the edit-loop runner.
"""

from __future__ import annotations

import contextlib
import logging
import shutil
import sys
import tempfile
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import click
import httpx
from click.core import ParameterSource
from jinja2 import TemplateError

from ticketcli.client import TrackerClient
from ticketcli.config import CONFIG_DIR_NAME, COOKIE_FILENAME, CommonOptions, GlobalOptions, template_dirs
from ticketcli.editing import ConfirmFn, confirm_default_yes, edit_loop
from ticketcli.errors import Abort, TicketCliError
from ticketcli.session import install_reauth
from ticketcli.types import ConfigDict

logger = logging.getLogger(__name__)

LIST_OVERRIDES = frozenset({"labels", "components"})


@dataclass
class AppContext:
    options: GlobalOptions
    config: ConfigDict = field(default_factory=dict)  # type: ignore[assignment]
    config_dirs: list[Path] = field(default_factory=list)
    confirm: ConfirmFn = confirm_default_yes

    @property
    def template_dirs(self) -> list[Path]:
        return template_dirs(self.config_dirs)

    @property
    def cookie_file(self) -> Path:
        return Path.home() / CONFIG_DIR_NAME / COOKIE_FILENAME


def get_client(app: AppContext) -> TrackerClient:
    """Build the shared client with the re-auth interceptor installed."""
    if not app.options.endpoint:
        click.echo("Error: no endpoint configured; pass --endpoint or set 'endpoint' in config.yml", err=True)
        sys.exit(1)
    client = TrackerClient.from_options(app.options, app.cookie_file)
    install_reauth(client, app.options)
    return client


@contextlib.contextmanager
def cli_errors() -> Iterator[None]:
    """Report fatal errors as ``Error: ...`` on stderr and exit 1."""
    try:
        yield
    except (TicketCliError, httpx.HTTPError, TemplateError) as exc:
        logger.error("Command failed: %s", exc, extra={"error": type(exc).__name__})
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


def parse_overrides(values: tuple[str, ...]) -> dict[str, Any]:
    """``key=value`` pairs; ``labels`` and ``components`` take comma-separated lists."""
    overrides: dict[str, Any] = {}
    for item in values:
        if "=" not in item:
            click.echo(f"Invalid override format: {item} (expected key=value)", err=True)
            sys.exit(1)
        k, v = item.split("=", 1)
        if k in LIST_OVERRIDES:
            overrides[k] = [part.strip() for part in v.split(",") if part.strip()]
        else:
            overrides[k] = v
    return overrides


def run_edit(
    app: AppContext,
    options: CommonOptions,
    input_data: Any,
    output: Any,
    submit: Callable[[], Any],
) -> Abort | None:
    """Run the edit loop in a private temp directory.

    The directory is removed once the document was submitted (or rendering
    failed) and kept after an abort so the edits can be recovered.
    """
    workdir = Path(tempfile.mkdtemp(prefix="ticketcli-"))
    result: Abort | None = None
    try:
        result = edit_loop(
            options,
            input_data,
            output,
            submit,
            template_dirs=app.template_dirs,
            workdir=workdir,
            confirm=app.confirm,
        )
    finally:
        if result is None:
            shutil.rmtree(workdir, ignore_errors=True)
        else:
            logger.info("Edit aborted, leaving %s", workdir)
    return result


def editing_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Attach --editor, --noedit and --template to an editing command."""
    func = click.option("--template", "-t", default=None, help="Template to render the document with")(func)
    func = click.option("--noedit", is_flag=True, help="Submit the rendered document without opening an editor")(
        func
    )
    func = click.option("--editor", default=None, help="Editor to use")(func)
    return func


def flag_value(ctx: click.Context, name: str, value: bool) -> bool | None:
    """A boolean flag's value if given on the command line, else None (so config applies)."""
    source = ctx.get_parameter_source(name)
    if source is None or source == ParameterSource.DEFAULT:
        return None
    return value
