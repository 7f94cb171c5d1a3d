# IMPORT CONSTRAINT: types/ modules must only import from typing, stdlib, and each other.
"""TypedDicts for the request and response bodies ticketcli exchanges with the service."""

from __future__ import annotations

from typing import Any, NotRequired, TypedDict


class SessionInfo(TypedDict):
    """Body of GET /rest/auth/1/session."""

    name: str
    self: NotRequired[str]


class ErrorBody(TypedDict, total=False):
    """Error envelope the service returns with 4xx/5xx responses."""

    errorMessages: list[str]
    errors: dict[str, str]


class IssuePayload(TypedDict, total=False):
    """Body of POST /rest/api/2/issue and PUT /rest/api/2/issue/{key}."""

    fields: dict[str, Any]
    update: dict[str, list[dict[str, Any]]]


class CreatedIssue(TypedDict):
    """Body returned by POST /rest/api/2/issue."""

    id: str
    key: str
    self: str


class CommentPayload(TypedDict):
    """Body of POST /rest/api/2/issue/{key}/comment."""

    body: str
