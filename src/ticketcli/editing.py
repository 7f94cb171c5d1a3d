"""Edit-submit-retry loop.

Renders a document to a temp file, lets the user edit it in an external
editor, parses and sanitizes the result into a typed document and hands it to
a submit callback. Every recoverable failure (editor error, bad YAML, a
rejected submit) asks the user whether to edit again; declining ends the loop
with an ``Abort`` result instead of an exception, so each caller sees the
outcome in its return value.

The document seen by ``submit`` is always either the pristine snapshot taken
at entry or that snapshot overlaid with a fully accepted edit, never the
leftovers of an earlier rejected attempt.
"""

from __future__ import annotations

import copy
import logging
import shlex
import subprocess
import tempfile
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any

import click

from ticketcli.config import CommonOptions
from ticketcli.documents import dump_tree, load_document, parse_tree, restore, sanitize
from ticketcli.errors import Abort, DocumentSyntaxError, EditorLaunchError, SubmitError
from ticketcli.filediff import files_differ, make_backup
from ticketcli.templates import render_template

logger = logging.getLogger(__name__)

ConfirmFn = Callable[[str], bool]
LaunchFn = Callable[[list[str]], None]

EDITOR_ERROR_PROMPT = "Editor reported an error, edit again?"
NO_CHANGES_PROMPT = "No changes detected, submit anyway?"
SYNTAX_ERROR_PROMPT = "Invalid YAML syntax, edit again?"
SUBMIT_ERROR_PROMPT = "Service reported an error, edit again?"


def confirm_default_yes(message: str) -> bool:
    return click.confirm(message, default=True)


def launch_editor(command: list[str]) -> None:
    """Run the editor in the foreground with inherited stdio."""
    logger.debug("Running: %r", command)
    try:
        proc = subprocess.run(command, check=False)
    except OSError as exc:
        raise EditorLaunchError(command, str(exc)) from exc
    if proc.returncode != 0:
        raise EditorLaunchError(command, f"exit status {proc.returncode}")


def render_editable(template: str, data: Any, search_dirs: Iterable[Path] = (), workdir: Path | None = None) -> Path:
    """Render ``template`` into a new file in a private temp directory.

    The caller owns the returned file and its directory.
    """
    text = render_template(template, data, search_dirs)
    directory = workdir or Path(tempfile.mkdtemp(prefix="ticketcli-"))
    fd, name = tempfile.mkstemp(prefix=f"{template}-", suffix=".yml", dir=directory)
    with open(fd, "w", encoding="utf-8") as fh:
        fh.write(text)
    return Path(name)


def edit_file(path: Path, editor: str, launch: LaunchFn = launch_editor) -> bool:
    """Open ``path`` in ``editor`` and report whether the file changed.

    The ``.orig`` backup used for the comparison is always removed.
    """
    try:
        argv = shlex.split(editor)
    except ValueError as exc:
        raise EditorLaunchError([editor], f"cannot parse command: {exc}") from exc
    if not argv:
        raise EditorLaunchError([editor], "empty command")
    backup = make_backup(path)
    try:
        launch([*argv, str(path)])
        return files_differ(backup, path)
    finally:
        backup.unlink(missing_ok=True)


class EditSubmitLoop:
    """State machine driving one edit session.

    ``confirm`` and ``launch`` default to the interactive prompt and the real
    editor subprocess.
    """

    def __init__(
        self,
        options: CommonOptions,
        *,
        template_dirs: Iterable[Path] = (),
        workdir: Path | None = None,
        confirm: ConfirmFn = confirm_default_yes,
        launch: LaunchFn = launch_editor,
    ) -> None:
        self.options = options
        self.template_dirs = list(template_dirs)
        self.workdir = workdir
        self.confirm = confirm
        self.launch = launch
        self.path: Path | None = None

    def _report(self, exc: Exception) -> None:
        click.echo(f"Error: {exc}", err=True)

    def _retry_or_abort(self, exc: Exception, prompt: str) -> Abort | None:
        self._report(exc)
        if self.confirm(prompt):
            return None
        logger.info("User aborted after: %s", exc, extra={"error": type(exc).__name__})
        return Abort(code=1)

    def run(self, input_data: Any, output: Any, submit: Callable[[], Any]) -> Abort | None:
        """Render, edit, parse and submit until ``submit`` succeeds or the user gives up.

        Returns None when the document was submitted, or an ``Abort`` carrying
        the exit status. Render failures propagate.
        """
        self.path = render_editable(self.options.template, input_data, self.template_dirs, self.workdir)
        pristine = copy.deepcopy(output)
        editor = self.options.editor_command()

        while True:
            if not self.options.skip_editing:
                try:
                    changed = edit_file(self.path, editor, self.launch)
                except EditorLaunchError as exc:
                    abort = self._retry_or_abort(exc, EDITOR_ERROR_PROMPT)
                    if abort is not None:
                        return abort
                    continue
                if not changed and not self.confirm(NO_CHANGES_PROMPT):
                    return Abort(code=1)

            text = self.path.read_text(encoding="utf-8")
            restore(output, pristine)
            try:
                tree = sanitize(parse_tree(text))
                load_document(output, dump_tree(tree))
            except DocumentSyntaxError as exc:
                abort = self._retry_or_abort(exc, SYNTAX_ERROR_PROMPT)
                if abort is not None:
                    return abort
                continue

            try:
                submit()
            except Exception as exc:  # any failure of the remote operation is retryable
                logger.error("Submit failed: %s", exc, exc_info=True)
                err = SubmitError(str(exc))
                err.__cause__ = exc
                abort = self._retry_or_abort(err, SUBMIT_ERROR_PROMPT)
                if abort is not None:
                    return abort
                continue
            return None


def edit_loop(
    options: CommonOptions,
    input_data: Any,
    output: Any,
    submit: Callable[[], Any],
    **kwargs: Any,
) -> Abort | None:
    """Convenience wrapper: ``EditSubmitLoop(options, **kwargs).run(...)``."""
    return EditSubmitLoop(options, **kwargs).run(input_data, output, submit)
