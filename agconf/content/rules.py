"""Rules — project rules distributed from the canonical ``rules/`` directory.

Targets that understand rule files (Claude) get one managed file per rule
under ``.claude/rules/``. Targets that only read AGENTS.md (Codex) get all
rules concatenated into a ``rules`` marker block instead.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from agconf.config import CLI_NAME, DEFAULT_PREFIX
from agconf.content.frontmatter import Frontmatter, parse_frontmatter
from agconf.content.hashing import hash_block, hash_files
from agconf.content.markers import get_markers
from agconf.content.metadata import add_managed_metadata

_HEADING_RE = re.compile(r"^(#{1,6})(\s+.*)$")


@dataclass
class Rule:
    """A rule file read from the canonical source."""

    relative_path: str  # e.g. "security/api-auth.md"
    raw_content: str
    frontmatter: Frontmatter | None
    body: str

    @property
    def paths(self) -> list[str]:
        """Glob patterns the rule is scoped to, if any."""
        paths = (self.frontmatter or {}).get("paths")
        if isinstance(paths, list):
            return [str(p) for p in paths if str(p)]
        return []


def parse_rule(content: str, relative_path: str) -> Rule:
    parsed = parse_frontmatter(content)
    return Rule(
        relative_path=relative_path,
        raw_content=content,
        frontmatter=parsed.frontmatter,
        body=parsed.body,
    )


def compute_rules_hash(rules: list[Rule]) -> str:
    """Aggregate hash recorded in the lockfile."""
    return hash_files([(r.relative_path, r.body) for r in rules])


def adjust_heading_levels(content: str, increment: int) -> str:
    """Shift ATX heading levels by ``increment``, clamped to 1..6.

    Headings inside fenced code blocks are left alone.
    """
    if not content:
        return ""

    in_code_block = False
    adjusted = []
    for line in content.split("\n"):
        if line.strip().startswith("```"):
            in_code_block = not in_code_block
            adjusted.append(line)
            continue

        match = None if in_code_block else _HEADING_RE.match(line)
        if not match:
            adjusted.append(line)
            continue

        level = min(6, max(1, len(match.group(1)) + increment))
        adjusted.append("#" * level + match.group(2))

    return "\n".join(adjusted)


def generate_paths_comment(paths: list[str]) -> str:
    if not paths:
        return ""
    if len(paths) == 1:
        return f"<!-- Applies to: {paths[0]} -->"
    items = "\n".join(f"     - {p}" for p in paths)
    return f"<!-- Applies to:\n{items}\n-->"


def generate_rules_section(
    rules: list[Rule],
    marker_prefix: str = DEFAULT_PREFIX,
    cli_name: str = CLI_NAME,
) -> str:
    """Build the ``rules`` marker block for AGENTS.md.

    Rules are sorted by path and their headings pushed one level down so
    they nest under the ``# Project Rules`` title.
    """
    parts = ["# Project Rules", ""]
    for rule in sorted(rules, key=lambda r: r.relative_path):
        parts.append(f"<!-- Rule: {rule.relative_path} -->")
        if rule.paths:
            parts.append(generate_paths_comment(rule.paths))
        parts.append(adjust_heading_levels(rule.body.strip(), 1))
        parts.append("")

    body = "\n".join(parts).strip()
    markers = get_markers(marker_prefix)

    return "\n".join(
        [
            markers.rules_start,
            f"<!-- DO NOT EDIT THIS SECTION - Managed by {cli_name} -->",
            f"<!-- Content hash: {hash_block(body)} -->",
            f"<!-- Rule count: {len(rules)} -->",
            "",
            body,
            "",
            markers.rules_end,
        ]
    )


def update_document_with_rules(
    document: str,
    rules_section: str,
    marker_prefix: str = DEFAULT_PREFIX,
) -> str:
    """Insert or replace the rules block in AGENTS.md content.

    Replaces an existing rules block; otherwise inserts after the global
    block, before the repo block, or at the end, in that order of preference.
    """
    markers = get_markers(marker_prefix)

    start_idx = document.find(markers.rules_start)
    end_idx = document.find(markers.rules_end)
    if start_idx != -1 and end_idx != -1:
        return document[:start_idx] + rules_section + document[end_idx + len(markers.rules_end):]

    global_end_idx = document.find(markers.global_end)
    if global_end_idx != -1:
        insert_at = global_end_idx + len(markers.global_end)
        return f"{document[:insert_at]}\n\n{rules_section}{document[insert_at:]}"

    repo_start_idx = document.find(markers.repo_start)
    if repo_start_idx != -1:
        return f"{document[:repo_start_idx]}{rules_section}\n\n{document[repo_start_idx:]}"

    return f"{document.rstrip()}\n\n{rules_section}\n"


def add_rule_metadata(rule: Rule, metadata_prefix: str = DEFAULT_PREFIX) -> str:
    """Managed content for a rule file, recording where it came from."""
    return add_managed_metadata(rule.raw_content, metadata_prefix, source_path=rule.relative_path)
