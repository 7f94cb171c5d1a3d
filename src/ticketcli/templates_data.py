# src/ticketcli/templates_data.py
"""Built-in output and editing templates.

Logic lives in templates.py; this file is pure data. A file with the same
name under ``.ticketcli.d/templates/`` replaces the built-in.

Editing templates (``edit``, ``create``, ``comment``) must render YAML that
populates the matching document class in documents.py. Block scalars carry an
explicit indentation indicator (``|2-``, relative to the parent key) so text
whose first line is indented still parses.
"""

from __future__ import annotations

_VIEW = """\
issue: {{ key }}
status: {{ fields.status.name }}
summary: {{ fields.summary }}
project: {{ fields.project.key }}
issuetype: {{ fields.issuetype.name }}
priority: {{ fields.priority.name }}
assignee: {{ fields.assignee.displayName or fields.assignee.name }}
reporter: {{ fields.reporter.displayName or fields.reporter.name }}
labels: {{ (fields.labels or []) | join(" ") }}
components: {{ (fields.components or []) | map(attribute="name") | join(", ") }}
description: |2
  {{ fields.description | yaml_block(2) }}
{% if fields.comment and fields.comment.comments %}
comments:
{% for c in fields.comment.comments %}
  - |2 # {{ c.author.displayName or c.author.name }}, {{ c.created }}
    {{ c.body | yaml_block(4) }}
{% endfor %}
{% endif %}
"""

_EDIT = """\
# issue: {{ key }} - {{ fields.summary }}
# Blank values and empty lists are left out of the update.
fields:
  summary: {{ (overrides.summary or fields.summary) | yaml_scalar }}
  priority: {{ (overrides.priority or fields.priority.name) | yaml_scalar }}
  assignee: {{ (overrides.assignee or fields.assignee.name) | yaml_scalar }}
  labels:
{% for label in overrides.labels or fields.labels or [] %}
    - {{ label | yaml_scalar }}
{% endfor %}
  components:
{% for component in overrides.components or ((fields.components or []) | map(attribute="name") | list) %}
    - {{ component | yaml_scalar }}
{% endfor %}
  description: |2-
    {{ (overrides.description or fields.description) | yaml_block(4) }}
comment: |2-
  {{ overrides.comment | yaml_block(2) }}
"""

_CREATE = """\
# new issue
fields:
  project: {{ overrides.project | yaml_scalar }}
  issuetype: {{ overrides.issuetype | yaml_scalar }}
  summary: {{ overrides.summary | yaml_scalar }}
  priority: {{ overrides.priority | yaml_scalar }}
  assignee: {{ overrides.assignee | yaml_scalar }}
  reporter: {{ (overrides.reporter or overrides.user) | yaml_scalar }}
  labels:
{% for label in overrides.labels or [] %}
    - {{ label | yaml_scalar }}
{% endfor %}
  components:
{% for component in overrides.components or [] %}
    - {{ component | yaml_scalar }}
{% endfor %}
  description: |2-
    {{ overrides.description | yaml_block(4) }}
"""

_COMMENT = """\
# comment on {{ key }}
body: |2-
  {{ overrides.comment | yaml_block(2) }}
"""

_JSON = """\
{{ data | to_json }}
"""

BUILTIN_TEMPLATES: dict[str, str] = {
    "view": _VIEW,
    "edit": _EDIT,
    "create": _CREATE,
    "comment": _COMMENT,
    "json": _JSON,
}
