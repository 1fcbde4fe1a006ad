"""Content fingerprints for managed files and blocks.

A fingerprint is ``sha256:`` followed by the first 12 hex characters of the
SHA-256 digest of the UTF-8 encoded text. Callers decide what text goes in:
managed metadata must already be stripped.
"""

from __future__ import annotations

import hashlib
import re

HASH_PREFIX = "sha256:"
HASH_LENGTH = 12

_HASH_RE = re.compile(rf"^{HASH_PREFIX}[0-9a-f]{{{HASH_LENGTH}}}$")


def hash_content(content: str) -> str:
    """Fingerprint ``content`` byte for byte."""
    digest = hashlib.sha256(content.encode("utf-8")).hexdigest()
    return f"{HASH_PREFIX}{digest[:HASH_LENGTH]}"


def hash_block(content: str) -> str:
    """Fingerprint a marker-delimited block; surrounding whitespace is ignored."""
    return hash_content(content.strip())


def is_content_hash(value: str) -> bool:
    return bool(_HASH_RE.match(value))


def hash_files(files: list[tuple[str, str]]) -> str:
    """Aggregate fingerprint over ``(relative_path, body)`` pairs.

    Order-insensitive; empty input gives an empty string.
    """
    if not files:
        return ""
    combined = "\n---\n".join(f"{path}:{body}" for path, body in sorted(files))
    return hash_content(combined)
