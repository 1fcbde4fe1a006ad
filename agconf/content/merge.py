"""Merging canonical instructions into a downstream AGENTS.md.

The global block is always rebuilt from the canonical content. Whatever the
repository wrote in its repo block is carried over verbatim; a document
without our markers is treated as repository content in its entirety and
moved into the repo block, so nothing pre-existing is ever dropped.

Existing ``CLAUDE.md`` files are folded into the repo block as well, after
which the root ``CLAUDE.md`` is reduced to an ``@AGENTS.md`` reference.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from agconf.config import CLI_NAME, DEFAULT_PREFIX
from agconf.content.markers import (
    GlobalBlockMetadata,
    build_global_document,
    extract_repo_block_content,
    parse_global_document,
    strip_metadata_comments,
)
from agconf.log import get_logger
from agconf.utils.fs import read_text_if_exists, write_text

logger = get_logger(__name__)

AGENTS_MD = "AGENTS.md"
CLAUDE_MD = "CLAUDE.md"
AGENTS_REFERENCE = "@AGENTS.md"

_AGENTS_REFERENCE_RE = re.compile(r"^@(\.\./|\.claude/)?AGENTS\.md$")
_SYNC_METADATA_LEADS = ("<!-- Source:", "<!-- Last synced:")


@dataclass
class MergeResult:
    content: str
    merged: bool
    preserved_repo_content: bool
    changed: bool


def without_sync_metadata(document: str, marker_prefix: str = DEFAULT_PREFIX) -> str:
    """The document without the global block's Source and Last synced lines."""
    parsed = parse_global_document(document, marker_prefix)
    if not parsed.global_block:
        return document
    lines = parsed.global_block.split("\n")
    kept = "\n".join(line for line in lines if not line.strip().startswith(_SYNC_METADATA_LEADS))
    return document.replace(parsed.global_block, kept, 1)


def _global_block_changed(existing: str | None, global_content: str, marker_prefix: str) -> bool:
    if existing is None:
        return True
    parsed = parse_global_document(existing, marker_prefix)
    if parsed.global_block is None:
        return True
    return strip_metadata_comments(parsed.global_block) != global_content.strip()


def merge_global_document(
    existing: str | None,
    global_content: str,
    source: str | None = None,
    override: bool = False,
    marker_prefix: str = DEFAULT_PREFIX,
    extra_repo_content: list[str] | None = None,
    synced_at: str | None = None,
    cli_name: str = CLI_NAME,
) -> MergeResult:
    """Build the new global document from canonical content.

    Args:
        existing: Current AGENTS.md text, or None when the file is absent.
        global_content: Canonical instructions for the global block.
        source: Human-readable source descriptor for the metadata comment.
        override: Discard everything already on disk.
        marker_prefix: Prefix the markers are read and written with.
        extra_repo_content: Additional repository content (e.g. from
            CLAUDE.md) appended to the repo block.
        synced_at: Timestamp for the metadata comment; defaults to now.
    """
    to_merge: list[str] = []

    if existing is not None and not override:
        parsed = parse_global_document(existing, marker_prefix)
        if parsed.has_markers:
            repo_content = extract_repo_block_content(parsed)
            if repo_content:
                to_merge.append(repo_content)
        elif existing.strip():
            logger.debug("no markers found, preserving document as repo content", prefix=marker_prefix)
            to_merge.append(existing.strip())

    if not override:
        for extra in extra_repo_content or []:
            # Already folded in by an earlier sync.
            if not extra or any(extra in merged for merged in to_merge):
                continue
            to_merge.append(extra)

    metadata = GlobalBlockMetadata(
        source=source,
        synced_at=synced_at or datetime.now(timezone.utc).isoformat(),
    )
    content = build_global_document(
        global_content,
        "\n\n".join(to_merge) if to_merge else None,
        metadata,
        prefix=marker_prefix,
        cli_name=cli_name,
    )

    changed = _global_block_changed(existing, global_content, marker_prefix)

    return MergeResult(
        content=content,
        merged=not override and (existing is not None or bool(extra_repo_content)),
        preserved_repo_content=bool(to_merge),
        changed=changed,
    )


# --- CLAUDE.md consolidation ---


def strip_agents_reference(content: str) -> str:
    """Drop ``@AGENTS.md`` style reference lines from CLAUDE.md content."""
    lines = [line for line in content.split("\n") if not _AGENTS_REFERENCE_RE.match(line.strip())]
    return "\n".join(lines).strip()


def collect_claude_md_contents(target_dir: str | Path) -> list[str]:
    """Repository content from the root and ``.claude/`` CLAUDE.md files.

    Identical content in both locations is returned once.
    """
    target = Path(target_dir)
    contents: list[str] = []
    for path in (target / CLAUDE_MD, target / ".claude" / CLAUDE_MD):
        existing = read_text_if_exists(path)
        if existing is None:
            continue
        stripped = strip_agents_reference(existing)
        if stripped and stripped not in contents:
            contents.append(stripped)
    return contents


@dataclass
class ConsolidateResult:
    created: bool = False
    updated: bool = False
    deleted_dot_claude_md: bool = False


def consolidate_claude_md(target_dir: str | Path) -> ConsolidateResult:
    """Point the root CLAUDE.md at AGENTS.md and remove ``.claude/CLAUDE.md``.

    Call after the CLAUDE.md content has been merged into AGENTS.md.
    """
    target = Path(target_dir)
    root_path = target / CLAUDE_MD
    result = ConsolidateResult()

    existing = read_text_if_exists(root_path)
    if existing is None:
        write_text(root_path, f"{AGENTS_REFERENCE}\n")
        result.created = True
    elif AGENTS_REFERENCE not in existing:
        write_text(root_path, f"{AGENTS_REFERENCE}\n")
        result.updated = True

    dot_claude_path = target / ".claude" / CLAUDE_MD
    if dot_claude_path.exists():
        dot_claude_path.unlink()
        result.deleted_dot_claude_md = True

    return result
