"""YAML load/dump helpers shared by every document type."""

from __future__ import annotations

from typing import Any

import yaml


class _StringTimestampLoader(yaml.SafeLoader):
    """SafeLoader that keeps ISO timestamps as the strings they were written as."""


_StringTimestampLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != "tag:yaml.org,2002:timestamp"]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


def load_document(text: str) -> Any:
    """Parse one YAML document. Raises yaml.YAMLError on invalid input."""
    return yaml.load(text, Loader=_StringTimestampLoader)


def dump_document(data: dict[str, Any]) -> str:
    """Render a mapping as a framed document (leading ``---`` line)."""
    body = yaml.safe_dump(
        data,
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
        width=100,
    )
    return "---\n" + body


def as_text(value: Any) -> str:
    """Coerce a scalar YAML value to str; containers and null become ""."""
    if value is None or isinstance(value, (dict, list)):
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def as_list(value: Any) -> list[Any]:
    """Loose list coercion: null -> [], scalar/mapping -> [value]."""
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]
