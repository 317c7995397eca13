"""Identity helpers for the changelog meta document and display."""

from __future__ import annotations

import hashlib
import secrets
import time
from pathlib import Path

_ULID_ALPHABET = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"
_ULID_LENGTH = 26


def new_ulid(*, timestamp_ms: int | None = None) -> str:
    """
    Project id: a 26-char Crockford base32 ULID.

    The high 48 bits are the creation time in milliseconds, so ids sort by
    creation; the low 80 bits are random.
    """
    millis = int(time.time() * 1000) if timestamp_ms is None else timestamp_ms
    if millis < 0 or millis >= 1 << 48:
        raise ValueError(f"timestamp_ms out of range for ULID: {millis}")

    value = (millis << 80) | secrets.randbits(80)
    digits = []
    for _ in range(_ULID_LENGTH):
        value, index = divmod(value, 32)
        digits.append(_ULID_ALPHABET[index])
    return "".join(reversed(digits))


def path_hash(project_path: Path) -> str:
    """First 16 hex chars of sha256 over the absolute project path."""
    absolute = str(project_path.resolve())
    return hashlib.sha256(absolute.encode("utf-8")).hexdigest()[:16]


def short_hash(commit_hash: str) -> str:
    """Display form of a commit hash. Never use the result for lookups."""
    return commit_hash[:8]
