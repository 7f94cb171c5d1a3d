"""Layered YAML configuration and the resolved option sets.

Convention-based discovery: every ``.ticketcli.d/`` directory from the working
directory up to the filesystem root is consulted (closest first), followed by
``~/.ticketcli.d/``. Within each directory ``<command>.yml`` is read before
``config.yml``. The first source to set a key wins, and command-line flags
override everything.
"""

from __future__ import annotations

import contextlib
import logging
import os
from collections.abc import Iterator
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import yaml

from ticketcli.errors import ConfigError
from ticketcli.types import ConfigDict

logger = logging.getLogger(__name__)

CONFIG_DIR_NAME = ".ticketcli.d"
CONFIG_FILENAME = "config.yml"
TEMPLATES_DIR_NAME = "templates"
COOKIE_FILENAME = "cookies.json"

DEFAULT_EDITOR = "vim"
EDITOR_ENV = "TICKETCLI_EDITOR"
PASSWORD_ENV = "TICKETCLI_PASSWORD"


def find_config_dirs(start: Path | None = None, home: Path | None = None) -> list[Path]:
    """Return existing config directories, closest to ``start`` first."""
    current = (start or Path.cwd()).resolve()
    dirs: list[Path] = []
    for parent in [current, *current.parents]:
        candidate = parent / CONFIG_DIR_NAME
        if candidate.is_dir():
            dirs.append(candidate)
    home_dir = (home or Path.home()) / CONFIG_DIR_NAME
    if home_dir.is_dir() and home_dir.resolve() not in [d.resolve() for d in dirs]:
        dirs.append(home_dir)
    return dirs


def read_config_file(path: Path) -> ConfigDict:
    """Parse one YAML config file. A missing or empty file yields ``{}``."""
    if not path.is_file():
        return {}
    try:
        data = yaml.safe_load(path.read_text())
    except yaml.YAMLError as exc:
        raise ConfigError(str(path), str(exc)) from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(str(path), f"expected a mapping, got {type(data).__name__}")
    result: ConfigDict = data  # type: ignore[assignment]
    return result


def config_file_name(command: str) -> str:
    """``issue edit`` -> ``issue_edit.yml``."""
    return "_".join(command.split()) + ".yml"


def load_config(command: str | None, dirs: list[Path]) -> ConfigDict:
    """Merge ``<command>.yml`` and ``config.yml`` across ``dirs``; first key wins."""
    names = [config_file_name(command)] if command else []
    names.append(CONFIG_FILENAME)
    merged: dict[str, Any] = {}
    for name in names:
        for d in dirs:
            path = d / name
            data = read_config_file(path)
            if data:
                logger.debug("Loaded config %s", path)
            for key, value in data.items():
                merged.setdefault(key, value)
    result: ConfigDict = merged  # type: ignore[assignment]
    return result


def template_dirs(dirs: list[Path]) -> list[Path]:
    return [d / TEMPLATES_DIR_NAME for d in dirs if (d / TEMPLATES_DIR_NAME).is_dir()]


# ---------------------------------------------------------------------------
# Resolved options
# ---------------------------------------------------------------------------


def _config_key(name: str) -> str:
    """``password_source`` is spelled ``password-source`` in config files."""
    return name.replace("_", "-")


def _resolve(flag: Any, config: ConfigDict, key: str, default: Any) -> Any:
    if flag is not None:
        return flag
    value = config.get(key)
    if value is None:
        return default
    return value


@dataclass
class GlobalOptions:
    """Options shared by every command.

    ``quiet`` is the one piece of process-wide mutable state: the re-auth
    interceptor forces it on around login and restores it with ``quieted()``.
    """

    endpoint: str = ""
    user: str = ""
    insecure: bool = False
    quiet: bool = False
    unixproxy: str = ""
    password_source: str = ""

    @classmethod
    def resolve(cls, config: ConfigDict, **flags: Any) -> GlobalOptions:
        defaults = cls(user=os.environ.get("USER", ""))
        values = {
            f.name: _resolve(flags.get(f.name), config, _config_key(f.name), getattr(defaults, f.name))
            for f in fields(cls)
        }
        opts = cls(**values)
        opts.endpoint = opts.endpoint.rstrip("/")
        return opts


@dataclass
class CommonOptions:
    """Per-command options for commands that edit a document."""

    editor: str = ""
    skip_editing: bool = False
    template: str = ""

    @classmethod
    def resolve(
        cls,
        config: ConfigDict,
        *,
        default_template: str,
        editor: str | None = None,
        skip_editing: bool | None = None,
        template: str | None = None,
    ) -> CommonOptions:
        return cls(
            editor=_resolve(editor, config, "editor", ""),
            skip_editing=bool(_resolve(skip_editing, config, "noedit", False)),
            template=_resolve(template, config, "template", default_template),
        )

    def editor_command(self) -> str:
        """Per-command option, then $TICKETCLI_EDITOR, then $EDITOR, then vim."""
        for candidate in (self.editor, os.environ.get(EDITOR_ENV), os.environ.get("EDITOR"), DEFAULT_EDITOR):
            if candidate:
                return candidate
        return DEFAULT_EDITOR


@contextlib.contextmanager
def quieted(options: GlobalOptions) -> Iterator[GlobalOptions]:
    """Force ``options.quiet`` on for the block and restore it on every exit path."""
    saved = options.quiet
    options.quiet = True
    try:
        yield options
    finally:
        options.quiet = saved
