# IMPORT CONSTRAINT: types/ modules must only import from typing, stdlib, and each other.
"""Typed wire shapes and config contracts for ticketcli."""

from __future__ import annotations

from ticketcli.types.api import (
    CommentPayload,
    CreatedIssue,
    ErrorBody,
    IssuePayload,
    SessionInfo,
)
from ticketcli.types.core import ConfigDict

__all__ = [
    "CommentPayload",
    "ConfigDict",
    "CreatedIssue",
    "ErrorBody",
    "IssuePayload",
    "SessionInfo",
]
