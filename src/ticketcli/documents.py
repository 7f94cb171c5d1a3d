"""Editable documents and the parse pipeline that feeds them.

Editing goes through two phases. The YAML is first loaded as a plain tree
(dicts, lists, scalars) and sanitized generically; the sanitized tree is then
populated into a typed dataclass document, strictly: unknown keys and values
of the wrong shape are rejected.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field, fields, is_dataclass
from typing import Any

import yaml

from ticketcli.errors import DocumentSyntaxError
from ticketcli.types import CommentPayload, IssuePayload

# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


@dataclass
class IssueFields:
    project: str = ""
    issuetype: str = ""
    summary: str = ""
    priority: str = ""
    assignee: str = ""
    reporter: str = ""
    labels: list[str] = field(default_factory=list)
    components: list[str] = field(default_factory=list)
    description: str = ""
    # Service field id -> raw value, passed through untouched (customfield_10010: ...)
    custom: dict[str, Any] = field(default_factory=dict)


@dataclass
class IssueDocument:
    """Document behind ``create`` and ``edit``."""

    fields: IssueFields = field(default_factory=IssueFields)
    comment: str = ""

    def to_payload(self) -> IssuePayload:
        f = self.fields
        out: dict[str, Any] = {}
        if f.project:
            out["project"] = {"key": f.project}
        if f.issuetype:
            out["issuetype"] = {"name": f.issuetype}
        if f.summary:
            out["summary"] = f.summary
        if f.priority:
            out["priority"] = {"name": f.priority}
        if f.assignee:
            out["assignee"] = {"name": f.assignee}
        if f.reporter:
            out["reporter"] = {"name": f.reporter}
        if f.labels:
            out["labels"] = list(f.labels)
        if f.components:
            out["components"] = [{"name": c} for c in f.components]
        if f.description:
            out["description"] = f.description
        out.update(f.custom)
        payload: IssuePayload = {"fields": out}
        if self.comment.strip():
            payload["update"] = {"comment": [{"add": {"body": self.comment}}]}
        return payload


@dataclass
class CommentDocument:
    body: str = ""

    def to_payload(self) -> CommentPayload:
        return {"body": self.body}


# ---------------------------------------------------------------------------
# Phase 1: dynamic tree
# ---------------------------------------------------------------------------

_TYPED_SCALAR_TAGS = frozenset({"tag:yaml.org,2002:bool", "tag:yaml.org,2002:int", "tag:yaml.org,2002:float"})


def _text_resolvers() -> dict[Any, list[Any]]:
    return {
        first: [(tag, regexp) for tag, regexp in resolvers if tag not in _TYPED_SCALAR_TAGS]
        for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
    }


class DocumentLoader(yaml.SafeLoader):
    """SafeLoader that keeps plain scalars as the text the user typed.

    ``yes``, ``on`` and ``1.10`` load as those strings rather than as a bool
    and a float. Blank values still load as None, and explicit tags such as
    ``!!int 5`` still produce typed values.
    """


class DocumentDumper(yaml.SafeDumper):
    """SafeDumper matching DocumentLoader: typed scalars get explicit tags."""


DocumentLoader.yaml_implicit_resolvers = _text_resolvers()
DocumentDumper.yaml_implicit_resolvers = _text_resolvers()


def parse_tree(text: str) -> Any:
    """Load YAML into a plain tree. Raises DocumentSyntaxError on bad syntax."""
    try:
        return yaml.load(text, Loader=DocumentLoader)  # noqa: S506
    except yaml.YAMLError as exc:
        raise DocumentSyntaxError(str(exc)) from exc


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (dict, list)):
        return len(value) == 0
    return False


def sanitize(tree: Any) -> Any:
    """Return a copy of ``tree`` with semantically empty values removed.

    Mapping entries whose value is None, an empty list, an empty mapping or a
    blank string are dropped, and so are such sequence elements. Children are
    sanitized first, so a container that ends up empty is dropped by its
    parent.
    """
    if isinstance(tree, dict):
        result: dict[Any, Any] = {}
        for key, value in tree.items():
            cleaned = sanitize(value)
            if not _is_empty(cleaned):
                result[key] = cleaned
        return result
    if isinstance(tree, list):
        return [c for c in (sanitize(v) for v in tree) if not _is_empty(c)]
    return tree


def dump_tree(tree: Any) -> str:
    return yaml.dump(tree, Dumper=DocumentDumper, default_flow_style=False, allow_unicode=True, sort_keys=False)


# ---------------------------------------------------------------------------
# Phase 2: typed population
# ---------------------------------------------------------------------------

_SCALARS = (str, int, float, bool)


def _text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _coerce(value: Any, current: Any, where: str) -> Any:
    if isinstance(current, bool):
        if not isinstance(value, bool):
            raise DocumentSyntaxError(f"{where}: expected true/false, got {value!r}")
        return value
    if isinstance(current, str):
        if isinstance(value, (dict, list)):
            raise DocumentSyntaxError(f"{where}: expected a single value, got a {type(value).__name__}")
        return _text(value)
    if isinstance(current, list):
        if not isinstance(value, list):
            raise DocumentSyntaxError(f"{where}: expected a list, got {value!r}")
        items = []
        for i, item in enumerate(value):
            if isinstance(item, (dict, list)):
                raise DocumentSyntaxError(f"{where}[{i}]: expected a single value")
            items.append(_text(item))
        return items
    if isinstance(current, dict):
        if not isinstance(value, dict):
            raise DocumentSyntaxError(f"{where}: expected a mapping, got {value!r}")
        return {str(k): v for k, v in value.items()}
    if isinstance(current, int):
        if isinstance(value, bool) or not isinstance(value, int):
            raise DocumentSyntaxError(f"{where}: expected an integer, got {value!r}")
        return value
    if value is not None and not isinstance(value, _SCALARS):
        raise DocumentSyntaxError(f"{where}: unsupported value {value!r}")
    return value


def populate(target: Any, data: Any, path: str = "") -> None:
    """Overlay ``data`` onto the dataclass ``target`` in place.

    Only fields that exist on the dataclass are accepted. Fields absent from
    ``data`` keep their current value.
    """
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise DocumentSyntaxError(f"{path or 'document'}: expected a mapping, got {type(data).__name__}")
    known = {f.name for f in fields(target)}
    for key, value in data.items():
        name = str(key)
        where = f"{path}.{name}" if path else name
        if name not in known:
            raise DocumentSyntaxError(f"unknown field {where!r}")
        current = getattr(target, name)
        if is_dataclass(current):
            populate(current, value, where)
        else:
            setattr(target, name, _coerce(value, current, where))


def restore(target: Any, source: Any) -> None:
    """Reset ``target`` field-for-field to deep copies of ``source``'s fields.

    ``target`` keeps its identity, so callers holding a reference see the
    reset.
    """
    for f in fields(source):
        setattr(target, f.name, copy.deepcopy(getattr(source, f.name)))


def load_document(target: Any, text: str) -> None:
    """Populate ``target`` from YAML text, all or nothing.

    Population runs on a deep copy; ``target`` is only updated when the whole
    document was accepted.
    """
    data = parse_tree(text)
    staged = copy.deepcopy(target)
    populate(staged, data)
    restore(target, staged)
