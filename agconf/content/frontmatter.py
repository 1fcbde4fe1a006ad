"""Frontmatter codec — parse and serialize the header block of markdown files.

Skills, rules and agents carry a small YAML-like header between ``---``
delimiters at the very top of the file. Only a restricted grammar is
supported:

    name: value                 scalar (quotes stripped)
    tools:                      block sequence
      - Read
    metadata:                   one-level mapping
      key: value
    paths: ["a", "b"]           inline JSON array

This is intentionally not a YAML parser. Its quirks are part of the on-disk
format that downstream repositories already carry, and content hashes are
computed over the re-serialized output, so they are reproduced as-is:

- Lines are split on ``\\n`` only. A header written with CRLF endings keeps a
  trailing ``\\r`` on every line, which never satisfies the key/value pattern,
  so only the last key/value line survives (a bare ``key:`` still matches,
  so block sequences survive).
- A bare ``key:`` that is not followed by ``  - item`` is an empty mapping.
- Malformed input never raises; at worst the document has no frontmatter.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass

FrontmatterValue = str | list[str] | dict[str, str]
Frontmatter = dict[str, FrontmatterValue]

DELIMITER = "---"

# Anchored at the start of the document; delimiters further down never count.
_FRONTMATTER_RE = re.compile(r"^---\r?\n([\s\S]*?)\r?\n---\r?\n?")

# "Any character except a line terminator", so a trailing \r breaks a match.
_LINE_CHAR = "[^\\n\\r\\u2028\\u2029]"
_WORD = "[A-Za-z0-9_]"

_KEY_VALUE_RE = re.compile(rf"^({_WORD}+):\s*({_LINE_CHAR}*)$")
_NESTED_RE = re.compile(rf"^\s+({_WORD}+):\s*[\"']?({_LINE_CHAR}*)[\"']?$")
_LIST_ITEM_RE = re.compile(r"^\s+-\s+")
_QUOTES_RE = re.compile(r"^[\"']|[\"']$")
_DIGITS_RE = re.compile(r"^[0-9]+$")


@dataclass
class ParsedFrontmatter:
    """Result of splitting a markdown document into header and body."""

    frontmatter: Frontmatter | None
    body: str
    raw: str = ""

    @property
    def has_frontmatter(self) -> bool:
        return self.frontmatter is not None


class _MalformedHeader(Exception):
    """Raised internally when the header cannot be interpreted."""


def parse_frontmatter(content: str) -> ParsedFrontmatter:
    """Split ``content`` into frontmatter, body and the raw header text.

    Returns ``frontmatter=None`` (and the untouched content as body) when the
    document has no header, an empty header, or one that cannot be read.
    """
    match = _FRONTMATTER_RE.match(content)
    if not match or not match.group(1):
        return ParsedFrontmatter(frontmatter=None, body=content)

    raw = match.group(1)
    body = content[match.end():]

    try:
        frontmatter = _parse_header(raw)
    except _MalformedHeader:
        return ParsedFrontmatter(frontmatter=None, body=content)

    return ParsedFrontmatter(frontmatter=frontmatter, body=body, raw=raw)


def _strip_quotes(value: str) -> str:
    return _QUOTES_RE.sub("", value)


def _parse_header(header: str) -> Frontmatter:
    result: Frontmatter = {}
    lines = header.split("\n")
    current_key: str | None = None
    current_value: list[str] | dict[str, str] | None = None
    is_list = False

    for index, line in enumerate(lines):
        if line.strip() == "":
            continue

        if _LIST_ITEM_RE.match(line):
            if current_key and is_list and isinstance(current_value, list):
                item = _strip_quotes(_LIST_ITEM_RE.sub("", line, count=1)).strip()
                current_value.append(item)
            continue

        # An indented line keeps feeding the open mapping. A key that was
        # already closed by an unrecognised line leaves nothing to feed.
        if line.startswith("  ") and current_key and not is_list and not isinstance(
            current_value, list
        ):
            nested = _NESTED_RE.match(line)
            if nested:
                if current_value is None:
                    raise _MalformedHeader(line)
                current_value[nested.group(1)] = _strip_quotes(nested.group(2))
            continue

        if current_key and current_value is not None:
            result[current_key] = current_value
            current_value = None
            is_list = False

        match = _KEY_VALUE_RE.match(line)
        if not match:
            continue

        key = match.group(1)
        value = match.group(2).strip()
        current_key = key

        if value == "":
            next_line = lines[index + 1] if index + 1 < len(lines) else ""
            if _LIST_ITEM_RE.match(next_line):
                current_value = []
                is_list = True
            else:
                current_value = {}
                is_list = False
        elif value.startswith("[") and value.endswith("]"):
            try:
                result[key] = json.loads(value)
            except json.JSONDecodeError:
                result[key] = _strip_quotes(value)
            current_key = None
            current_value = None
        else:
            result[key] = _strip_quotes(value)
            current_key = None
            current_value = None

    if current_key and current_value is not None:
        result[current_key] = current_value

    return result


# --- Serialization ---


def needs_quoting(value: str) -> bool:
    """Whether a scalar must be double-quoted to survive a parse round trip."""
    return (
        ":" in value
        or "#" in value
        or "@" in value
        or value.lower() in ("true", "false")
        or bool(_DIGITS_RE.match(value))
    )


def _to_text(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _format_scalar(value: object) -> str:
    text = _to_text(value)
    return f'"{text}"' if needs_quoting(text) else text


def serialize_frontmatter(frontmatter: Frontmatter) -> str:
    """Render frontmatter as header text, without the ``---`` delimiters.

    Example::

        >>> print(serialize_frontmatter({"name": "test", "tools": ["Read"]}))
        name: test
        tools:
          - "Read"
    """
    lines: list[str] = []

    for key, value in frontmatter.items():
        if value is None:
            continue

        if isinstance(value, (list, tuple)):
            lines.append(f"{key}:")
            for item in value:
                lines.append(f'  - "{_to_text(item)}"')
        elif isinstance(value, dict):
            lines.append(f"{key}:")
            for nested_key, nested_value in value.items():
                if nested_value is None:
                    continue
                lines.append(f"  {nested_key}: {_format_scalar(nested_value)}")
        else:
            lines.append(f"{key}: {_format_scalar(value)}")

    return "\n".join(lines)


def wrap_frontmatter(frontmatter: Frontmatter, body: str) -> str:
    """Assemble a full document from frontmatter and body."""
    return f"{DELIMITER}\n{serialize_frontmatter(frontmatter)}\n{DELIMITER}\n{body}"
