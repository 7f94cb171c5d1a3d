"""Template rendering for command output and editable documents.

Templates are jinja2 sources looked up first in the ``templates/`` directory
of each config dir (closest first), then among the built-ins in
templates_data.py.
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from jinja2 import ChainableUndefined, ChoiceLoader, DictLoader, Environment, FileSystemLoader, Undefined

from ticketcli.templates_data import BUILTIN_TEMPLATES


def yaml_scalar(value: Any) -> str:
    """Render a value as a double-quoted YAML scalar (JSON strings are valid YAML)."""
    if value is None or isinstance(value, Undefined):
        return '""'
    return json.dumps(str(value), ensure_ascii=False)


def yaml_block(value: Any, width: int = 2) -> str:
    """Indent continuation lines of a literal block body by ``width`` spaces.

    The template supplies the indentation of the first line.
    """
    if value is None or isinstance(value, Undefined) or value == "":
        return ""
    text = str(value).replace("\r\n", "\n").rstrip("\n")
    return ("\n" + " " * width).join(text.split("\n"))


def to_json(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False, default=str)


def build_environment(search_dirs: Iterable[Path] = ()) -> Environment:
    loaders: list[Any] = [FileSystemLoader([str(d) for d in search_dirs])]
    loaders.append(DictLoader(BUILTIN_TEMPLATES))
    env = Environment(
        loader=ChoiceLoader(loaders),
        undefined=ChainableUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
        autoescape=False,
    )
    env.filters["yaml_scalar"] = yaml_scalar
    env.filters["yaml_block"] = yaml_block
    env.filters["to_json"] = to_json
    return env


def render_template(name: str, data: Any, search_dirs: Iterable[Path] = ()) -> str:
    """Render template ``name`` with ``data``.

    Mapping keys are exposed as top-level names; the whole value is also
    available as ``data``. Raises ``jinja2.TemplateNotFound`` for unknown
    names.
    """
    env = build_environment(search_dirs)
    template = env.get_template(name)
    context: dict[str, Any] = dict(data) if isinstance(data, dict) else {}
    context["data"] = data
    return template.render(**context)
