"""CLI commands for issues: view, edit, create, comment."""

from __future__ import annotations

import sys
from typing import Any

import click

from ticketcli.cli_common import (
    AppContext,
    cli_errors,
    editing_options,
    flag_value,
    get_client,
    parse_overrides,
    run_edit,
)
from ticketcli.config import CommonOptions
from ticketcli.documents import CommentDocument, IssueDocument
from ticketcli.templates import render_template

DEFAULT_ISSUETYPE = "Bug"


def _common_options(
    ctx: click.Context,
    default_template: str,
    editor: str | None,
    noedit: bool,
    template: str | None,
) -> CommonOptions:
    app: AppContext = ctx.obj
    return CommonOptions.resolve(
        app.config,
        default_template=default_template,
        editor=editor,
        skip_editing=flag_value(ctx, "noedit", noedit),
        template=template,
    )


@click.command()
@click.argument("issue")
@click.option("--template", "-t", default=None, help="Template to use for output (default: view)")
@click.pass_obj
def view(app: AppContext, issue: str, template: str | None) -> None:
    """Show an issue."""
    with cli_errors():
        with get_client(app) as client:
            data = client.get_issue(issue)
        click.echo(render_template(template or app.config.get("template") or "view", data, app.template_dirs), nl=False)


@click.command()
@click.argument("issue")
@editing_options
@click.option("--comment", "-m", default=None, help="Comment to add with the update")
@click.option("--override", "-o", multiple=True, help="Preset a field as key=value (repeatable)")
@click.pass_context
def edit(
    ctx: click.Context,
    issue: str,
    editor: str | None,
    noedit: bool,
    template: str | None,
    comment: str | None,
    override: tuple[str, ...],
) -> None:
    """Edit an issue in $EDITOR and submit the update."""
    app: AppContext = ctx.obj
    options = _common_options(ctx, "edit", editor, noedit, template)
    overrides = parse_overrides(override)
    if comment:
        overrides["comment"] = comment

    with cli_errors(), get_client(app) as client:
        data: dict[str, Any] = client.get_issue(issue)
        data["overrides"] = overrides
        doc = IssueDocument()
        abort = run_edit(app, options, data, doc, lambda: client.edit_issue(issue, doc.to_payload()))
        if abort is not None:
            sys.exit(abort.code)
        if not app.options.quiet:
            click.echo(f"OK {issue} {client.browse_url(issue)}")


@click.command()
@click.option("--project", "-p", default=None, help="Project key")
@click.option("--issuetype", "-i", default=None, help=f"Issue type (default: {DEFAULT_ISSUETYPE})")
@editing_options
@click.option("--override", "-o", multiple=True, help="Preset a field as key=value (repeatable)")
@click.pass_context
def create(
    ctx: click.Context,
    project: str | None,
    issuetype: str | None,
    editor: str | None,
    noedit: bool,
    template: str | None,
    override: tuple[str, ...],
) -> None:
    """Create an issue from an edited template."""
    app: AppContext = ctx.obj
    options = _common_options(ctx, "create", editor, noedit, template)
    overrides = parse_overrides(override)
    overrides.setdefault("project", project or app.config.get("project", ""))
    overrides.setdefault("issuetype", issuetype or app.config.get("issuetype") or DEFAULT_ISSUETYPE)
    overrides.setdefault("user", app.options.user)

    created: dict[str, Any] = {}
    with cli_errors(), get_client(app) as client:
        doc = IssueDocument()

        def submit() -> None:
            created.update(client.create_issue(doc.to_payload()))

        abort = run_edit(app, options, {"overrides": overrides}, doc, submit)
        if abort is not None:
            sys.exit(abort.code)
        if not app.options.quiet:
            click.echo(f"OK {created['key']} {client.browse_url(created['key'])}")


@click.command()
@click.argument("issue")
@click.option("--comment", "-m", default=None, help="Comment text")
@editing_options
@click.pass_context
def comment(
    ctx: click.Context,
    issue: str,
    comment: str | None,
    editor: str | None,
    noedit: bool,
    template: str | None,
) -> None:
    """Add a comment to an issue."""
    app: AppContext = ctx.obj
    options = _common_options(ctx, "comment", editor, noedit, template)
    data = {"key": issue, "overrides": {"comment": comment or ""}}

    with cli_errors(), get_client(app) as client:
        doc = CommentDocument()

        def submit() -> None:
            if not doc.body.strip():
                raise ValueError("comment body is empty")
            client.add_comment(issue, doc.to_payload())

        abort = run_edit(app, options, data, doc, submit)
        if abort is not None:
            sys.exit(abort.code)
        if not app.options.quiet:
            click.echo(f"OK {issue} {client.browse_url(issue)}")
