"""Splitting and framing of multi-document store text."""

from __future__ import annotations

import re

DELIMITER = "---"

# A delimiter is a line holding only "---" at column 0. Indented "---" lines
# inside block scalars (details: |) are document content.
_DELIMITER_LINE = re.compile(r"^---[ \t]*$", re.MULTILINE)


def split_documents(content: str) -> list[str]:
    """Split store text into document bodies.

    Leading/trailing delimiters and blank lines between documents are
    tolerated. Never raises; malformed YAML is left for the per-document
    decode step.
    """
    docs = []
    for part in _DELIMITER_LINE.split(content):
        part = part.strip()
        if part and part != DELIMITER:
            docs.append(part)
    return docs


def join_documents(docs: list[str]) -> str:
    """Inverse of split_documents: one delimiter line before each body."""
    return "".join(f"{DELIMITER}\n{doc.strip()}\n" for doc in docs)


def frame_document(rendered: str) -> str:
    """Ensure a rendered document starts with a delimiter line and ends with a newline."""
    body = rendered
    if not _DELIMITER_LINE.match(body.split("\n", 1)[0]):
        body = f"{DELIMITER}\n{body}"
    if not body.endswith("\n"):
        body += "\n"
    return body
