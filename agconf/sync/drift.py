"""Drift detection — find managed files that were edited by hand.

Every managed file and block carries the hash it was written with. Drift is
a mismatch between that stored hash and a hash recomputed from the content
on disk. Checking never modifies anything.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from agconf.config import DEFAULT_PREFIX, get_target_config, to_metadata_prefix
from agconf.content.markers import (
    global_block_hashes,
    is_global_document_managed,
    parse_global_block_metadata,
    parse_global_document,
    parse_rules_section,
    rules_section_hashes,
)
from agconf.content.merge import AGENTS_MD
from agconf.content.metadata import (
    compute_content_hash,
    get_managed_metadata,
    get_stored_hash,
    has_manual_changes,
    is_managed,
    metadata_keys,
)
from agconf.sync.lockfile import read_lockfile
from agconf.utils.file_scanner import find_markdown_files, find_skill_files
from agconf.utils.fs import read_text_if_exists


class FileType:
    GLOBAL = "agents"  # Global block of AGENTS.md
    RULES_SECTION = "rules-section"  # Rules block of AGENTS.md
    SKILL = "skill"
    RULE = "rule"
    AGENT = "agent"


@dataclass
class ManagedFileCheck:
    """State of a single managed file (or block)."""

    path: str
    type: str
    has_changes: bool
    expected_hash: str = ""
    current_hash: str = ""
    name: str = ""  # skill name, rule source path, or agent file name
    source: str | None = None
    synced_at: str | None = None


@dataclass
class DriftReport:
    """Result of checking one downstream repository."""

    synced: bool
    files: list[ManagedFileCheck] = field(default_factory=list)
    marker_prefix: str = DEFAULT_PREFIX
    schema_warning: str | None = None
    schema_error: str | None = None

    @property
    def modified(self) -> list[ManagedFileCheck]:
        return [f for f in self.files if f.has_changes]

    @property
    def has_drift(self) -> bool:
        return bool(self.modified)

    @property
    def passed(self) -> bool:
        """Check succeeds when synced, compatible, managed files exist and none drifted."""
        if not self.synced:
            return True
        return self.schema_error is None and bool(self.files) and not self.has_drift

    def summary(self) -> str:
        if not self.synced:
            return "Not synced"
        if self.schema_error:
            return f"Schema error: {self.schema_error}"
        if not self.files:
            return "No managed files found"
        if not self.has_drift:
            return "All managed files are unchanged"
        return f"{len(self.modified)} managed file(s) have been modified"


def _flat_file_check(path: Path, relative: str, file_type: str, name: str, metadata_prefix: str) -> ManagedFileCheck | None:
    content = read_text_if_exists(path)
    if content is None or not is_managed(content, metadata_prefix):
        return None
    return ManagedFileCheck(
        path=relative,
        type=file_type,
        name=name,
        has_changes=has_manual_changes(content, metadata_prefix),
        expected_hash=get_stored_hash(content, metadata_prefix) or "unknown",
        current_hash=compute_content_hash(content, metadata_prefix),
    )


def check_global_document(target_dir: Path, marker_prefix: str = DEFAULT_PREFIX) -> list[ManagedFileCheck]:
    """Checks for the global block and the rules block of AGENTS.md."""
    content = read_text_if_exists(target_dir / AGENTS_MD)
    if content is None:
        return []

    results = []
    if is_global_document_managed(content, marker_prefix):
        global_block = parse_global_document(content, marker_prefix).global_block or ""
        metadata = parse_global_block_metadata(global_block)
        hashes = global_block_hashes(content, marker_prefix)
        results.append(
            ManagedFileCheck(
                path=AGENTS_MD,
                type=FileType.GLOBAL,
                has_changes=hashes is not None and hashes[0] != hashes[1],
                expected_hash=hashes[0] if hashes else "",
                current_hash=hashes[1] if hashes else "",
                source=metadata.source,
                synced_at=metadata.synced_at,
            )
        )

    rules = parse_rules_section(content, marker_prefix)
    if rules.has_markers and rules.content:
        hashes = rules_section_hashes(content, marker_prefix)
        results.append(
            ManagedFileCheck(
                path=AGENTS_MD,
                type=FileType.RULES_SECTION,
                has_changes=hashes is not None and hashes[0] != hashes[1],
                expected_hash=hashes[0] if hashes else "",
                current_hash=hashes[1] if hashes else "",
            )
        )

    return results


def check_managed_files(
    target_dir: str | Path,
    targets: list[str] | None = None,
    marker_prefix: str = DEFAULT_PREFIX,
) -> list[ManagedFileCheck]:
    """Inspect every managed file in a downstream repository."""
    target_dir = Path(target_dir)
    targets = targets or ["claude"]
    metadata_prefix = to_metadata_prefix(marker_prefix)
    source_key = metadata_keys(metadata_prefix).source_path

    results = check_global_document(target_dir, marker_prefix)

    for target in targets:
        config = get_target_config(target)

        skills_dir = target_dir / config.dir / "skills"
        for skill_file in find_skill_files(skills_dir):
            check = _flat_file_check(
                skill_file,
                skill_file.relative_to(target_dir).as_posix(),
                FileType.SKILL,
                skill_file.parent.name,
                metadata_prefix,
            )
            if check:
                results.append(check)

        rules_dir = target_dir / config.dir / "rules"
        for rule_file in find_markdown_files(rules_dir):
            rule_path = rule_file.relative_to(rules_dir).as_posix()
            check = _flat_file_check(
                rule_file,
                rule_file.relative_to(target_dir).as_posix(),
                FileType.RULE,
                rule_path,
                metadata_prefix,
            )
            if check:
                managed = get_managed_metadata(rule_file.read_text(encoding="utf-8"), metadata_prefix)
                check.name = managed.get(source_key) or rule_path
                results.append(check)

        if config.supports_agents:
            agents_dir = target_dir / config.dir / "agents"
            for agent_file in find_markdown_files(agents_dir, recursive=False):
                check = _flat_file_check(
                    agent_file,
                    agent_file.relative_to(target_dir).as_posix(),
                    FileType.AGENT,
                    agent_file.name,
                    metadata_prefix,
                )
                if check:
                    results.append(check)

    return results


class DriftDetector:
    """Checks a downstream repository against the hashes it was synced with."""

    def __init__(self, repo_path: str | Path):
        self.repo_path = Path(repo_path)

    def check(self) -> DriftReport:
        result = read_lockfile(self.repo_path)
        if result is None:
            return DriftReport(synced=False)

        lockfile = result.lockfile
        marker_prefix = lockfile.marker_prefix or DEFAULT_PREFIX
        report = DriftReport(
            synced=True,
            marker_prefix=marker_prefix,
            schema_warning=result.compatibility.warning,
            schema_error=result.compatibility.error,
        )
        if not result.compatibility.compatible:
            return report

        report.files = check_managed_files(self.repo_path, lockfile.targets, marker_prefix)
        return report
