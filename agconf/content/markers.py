"""Marker blocks in the global instructions document (AGENTS.md).

The global document mixes engine-owned content with free-form repository
content, so instead of frontmatter it is split by HTML comment markers::

    <!-- agconf:global:start -->
    <!-- DO NOT EDIT THIS SECTION - Managed by agconf CLI -->
    <!-- Source: github:acme/standards@v1.2.0 -->
    <!-- Last synced: 2026-01-01T00:00:00+00:00 -->
    <!-- Content hash: sha256:1a2b3c4d5e6f -->

    ...canonical instructions...

    <!-- agconf:global:end -->

    <!-- agconf:repo:start -->
    <!-- Repository-specific instructions below -->

    ...maintained by the repository...

    <!-- agconf:repo:end -->

An optional ``rules`` block holds concatenated rules for targets that read
everything from one file. All strings derive from a single prefix; markers
written under another prefix are invisible.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from agconf.config import CLI_NAME, DEFAULT_PREFIX
from agconf.content.hashing import hash_block

REPO_BLOCK_LEAD_IN = "<!-- Repository-specific instructions below -->"

_GLOBAL_METADATA_LEADS = (
    "<!-- DO NOT EDIT",
    "<!-- Source:",
    "<!-- Last synced:",
    "<!-- Content hash:",
)
_RULES_METADATA_LEADS = (
    "<!-- DO NOT EDIT",
    "<!-- Content hash:",
    "<!-- Rule count:",
)

_SOURCE_RE = re.compile(r"<!--\s*Source:\s*(.+?)\s*-->")
_SYNCED_RE = re.compile(r"<!--\s*Last synced:\s*(.+?)\s*-->")
_HASH_RE = re.compile(r"<!--\s*Content hash:\s*(.+?)\s*-->")
_RULE_COUNT_RE = re.compile(r"<!--\s*Rule count:\s*(\d+)\s*-->")


@dataclass(frozen=True)
class Markers:
    global_start: str
    global_end: str
    repo_start: str
    repo_end: str
    rules_start: str
    rules_end: str


def get_markers(prefix: str = DEFAULT_PREFIX) -> Markers:
    return Markers(
        global_start=f"<!-- {prefix}:global:start -->",
        global_end=f"<!-- {prefix}:global:end -->",
        repo_start=f"<!-- {prefix}:repo:start -->",
        repo_end=f"<!-- {prefix}:repo:end -->",
        rules_start=f"<!-- {prefix}:rules:start -->",
        rules_end=f"<!-- {prefix}:rules:end -->",
    )


@dataclass
class ParsedDocument:
    """Blocks found in a global document (trimmed), or None when absent."""

    global_block: str | None
    repo_block: str | None
    has_markers: bool


@dataclass
class GlobalBlockMetadata:
    source: str | None = None
    synced_at: str | None = None
    content_hash: str | None = None


def _between(content: str, start: str, end: str) -> str | None:
    start_idx = content.find(start)
    end_idx = content.find(end)
    if start_idx == -1 or end_idx == -1 or end_idx <= start_idx:
        return None
    return content[start_idx + len(start):end_idx].strip()


def parse_global_document(content: str, prefix: str = DEFAULT_PREFIX) -> ParsedDocument:
    markers = get_markers(prefix)
    has_markers = markers.global_start in content or markers.repo_start in content
    return ParsedDocument(
        global_block=_between(content, markers.global_start, markers.global_end),
        repo_block=_between(content, markers.repo_start, markers.repo_end),
        has_markers=has_markers,
    )


def _drop_lines(block: str, leads: tuple[str, ...]) -> str:
    lines = [line for line in block.split("\n") if not line.strip().startswith(leads)]
    return "\n".join(lines).strip()


def strip_metadata_comments(global_block: str) -> str:
    """Remove the metadata comment lines from a global block."""
    return _drop_lines(global_block, _GLOBAL_METADATA_LEADS)


def parse_global_block_metadata(global_block: str) -> GlobalBlockMetadata:
    def first(pattern: re.Pattern) -> str | None:
        match = pattern.search(global_block)
        return match.group(1) if match else None

    return GlobalBlockMetadata(
        source=first(_SOURCE_RE),
        synced_at=first(_SYNCED_RE),
        content_hash=first(_HASH_RE),
    )


def build_global_block(
    content: str,
    metadata: GlobalBlockMetadata | None = None,
    prefix: str = DEFAULT_PREFIX,
    cli_name: str = CLI_NAME,
) -> str:
    metadata = metadata or GlobalBlockMetadata()
    markers = get_markers(prefix)
    content_hash = metadata.content_hash or hash_block(content)

    lines = [
        markers.global_start,
        f"<!-- DO NOT EDIT THIS SECTION - Managed by {cli_name} CLI -->",
    ]
    if metadata.source:
        lines.append(f"<!-- Source: {metadata.source} -->")
    if metadata.synced_at:
        lines.append(f"<!-- Last synced: {metadata.synced_at} -->")
    lines += [
        f"<!-- Content hash: {content_hash} -->",
        "",
        content.strip(),
        "",
        markers.global_end,
    ]
    return "\n".join(lines)


def build_repo_block(content: str | None, prefix: str = DEFAULT_PREFIX) -> str:
    markers = get_markers(prefix)
    lines = [
        markers.repo_start,
        REPO_BLOCK_LEAD_IN,
        "",
        (content or "").strip(),
        "",
        markers.repo_end,
    ]
    return "\n".join(lines)


def build_global_document(
    global_content: str,
    repo_content: str | None,
    metadata: GlobalBlockMetadata | None = None,
    prefix: str = DEFAULT_PREFIX,
    cli_name: str = CLI_NAME,
) -> str:
    global_block = build_global_block(global_content, metadata, prefix, cli_name)
    repo_block = build_repo_block(repo_content, prefix)
    return f"{global_block}\n\n{repo_block}\n"


def extract_repo_block_content(parsed: ParsedDocument) -> str | None:
    """Repository content of a parsed document, without the engine's lead-in."""
    if not parsed.repo_block:
        return None
    lines = [line for line in parsed.repo_block.split("\n") if line.strip() != REPO_BLOCK_LEAD_IN]
    return "\n".join(lines).strip() or None


def is_global_document_managed(content: str, prefix: str = DEFAULT_PREFIX) -> bool:
    parsed = parse_global_document(content, prefix)
    return parsed.has_markers and parsed.global_block is not None


def global_block_hashes(content: str, prefix: str = DEFAULT_PREFIX) -> tuple[str, str] | None:
    """Return ``(stored, current)`` hashes of the global block.

    None when there is no global block or it predates the hash comment.
    """
    parsed = parse_global_document(content, prefix)
    if not parsed.global_block:
        return None

    stored = parse_global_block_metadata(parsed.global_block).content_hash
    if not stored:
        return None

    return stored, hash_block(strip_metadata_comments(parsed.global_block))


def has_global_block_changes(content: str, prefix: str = DEFAULT_PREFIX) -> bool:
    """Whether the global block was edited since it was written."""
    hashes = global_block_hashes(content, prefix)
    return hashes is not None and hashes[0] != hashes[1]


# --- Rules section ---


@dataclass
class ParsedRulesSection:
    content: str | None
    has_markers: bool


@dataclass
class RulesSectionMetadata:
    content_hash: str | None = None
    rule_count: int | None = None


def parse_rules_section(content: str, prefix: str = DEFAULT_PREFIX) -> ParsedRulesSection:
    markers = get_markers(prefix)
    section = _between(content, markers.rules_start, markers.rules_end)
    return ParsedRulesSection(content=section, has_markers=section is not None)


def parse_rules_section_metadata(rules_section: str) -> RulesSectionMetadata:
    result = RulesSectionMetadata()
    hash_match = _HASH_RE.search(rules_section)
    if hash_match:
        result.content_hash = hash_match.group(1)
    count_match = _RULE_COUNT_RE.search(rules_section)
    if count_match:
        result.rule_count = int(count_match.group(1))
    return result


def strip_rules_section_metadata(rules_section: str) -> str:
    return _drop_lines(rules_section, _RULES_METADATA_LEADS)


def rules_section_hashes(content: str, prefix: str = DEFAULT_PREFIX) -> tuple[str, str] | None:
    parsed = parse_rules_section(content, prefix)
    if not parsed.content:
        return None

    stored = parse_rules_section_metadata(parsed.content).content_hash
    if not stored:
        return None

    return stored, hash_block(strip_rules_section_metadata(parsed.content))


def has_rules_section_changes(content: str, prefix: str = DEFAULT_PREFIX) -> bool:
    hashes = rules_section_hashes(content, prefix)
    return hashes is not None and hashes[0] != hashes[1]
