# IMPORT CONSTRAINT: types/ modules must only import from typing, stdlib, and each other.
"""Shape of the YAML config files."""

from __future__ import annotations

from typing import TypedDict

# Functional form: ``password-source`` is not a valid identifier.
ConfigDict = TypedDict(
    "ConfigDict",
    {
        "endpoint": str,
        "user": str,
        "insecure": bool,
        "quiet": bool,
        "unixproxy": str,
        "password-source": str,
        "editor": str,
        "noedit": bool,
        "template": str,
        "project": str,
        "issuetype": str,
    },
    total=False,
)
"""Keys recognised in config.yml and <command>.yml."""
