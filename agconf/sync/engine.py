"""Sync engine — apply a resolved canonical source to one downstream repository.

A sync runs these steps in order:
1. Merge the canonical instructions into AGENTS.md (repo content preserved)
2. Reduce CLAUDE.md to an ``@AGENTS.md`` reference
3. Copy skills into every target, marking each SKILL.md as managed
4. Write rules (files for Claude, an AGENTS.md section for Codex)
5. Write agents (Claude only)
6. Delete orphans left over from the previous sync
7. Record everything in the lockfile

Validation problems in individual skills or agents are collected in the
result instead of aborting the run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from agconf.config import CLI_NAME, get_target_config, to_metadata_prefix
from agconf.content.agents import (
    AgentValidationError,
    add_agent_metadata,
    compute_agents_hash,
    validate_agent_frontmatter,
)
from agconf.content.hashing import hash_block
from agconf.content.merge import (
    AGENTS_MD,
    ConsolidateResult,
    MergeResult,
    collect_claude_md_contents,
    consolidate_claude_md,
    merge_global_document,
    without_sync_metadata,
)
from agconf.content.metadata import add_managed_metadata, has_manual_changes
from agconf.content.rules import (
    add_rule_metadata,
    compute_rules_hash,
    generate_rules_section,
    update_document_with_rules,
)
from agconf.content.skills import SKILL_FILE, SkillValidationError, validate_skill_frontmatter
from agconf.log import get_logger
from agconf.sync.lockfile import (
    FileSet,
    Lockfile,
    LockfileResult,
    now_iso,
    read_lockfile,
    write_lockfile,
)
from agconf.sync.orphans import (
    OrphanResult,
    delete_orphaned_agents,
    delete_orphaned_rules,
    delete_orphaned_skills,
    find_orphans,
)
from agconf.sync.source import ResolvedSource
from agconf.utils.file_scanner import discover_agents, discover_rules, discover_skill_names
from agconf.utils.fs import read_text_if_exists, write_if_changed

logger = get_logger(__name__)


@dataclass
class SyncOptions:
    override: bool = False
    targets: list[str] | None = None  # None: use the source's targets
    pinned_version: str | None = None
    delete_orphans: bool = True


@dataclass
class SyncResult:
    merge: MergeResult
    claude_md: ConsolidateResult
    agents_md_written: bool
    lockfile: Lockfile | None = None
    targets: list[str] = field(default_factory=list)
    skills: list[str] = field(default_factory=list)
    skills_modified: list[str] = field(default_factory=list)  # hand edits that were overwritten
    skill_errors: list[SkillValidationError] = field(default_factory=list)
    files_written: int = 0
    rules: list[str] = field(default_factory=list)
    agents: list[str] = field(default_factory=list)
    agent_errors: list[AgentValidationError] = field(default_factory=list)
    orphaned_skills: OrphanResult = field(default_factory=OrphanResult)
    orphaned_rules: OrphanResult = field(default_factory=OrphanResult)
    orphaned_agents: OrphanResult = field(default_factory=OrphanResult)


def _write_bytes_if_changed(source: Path, dest: Path) -> bool:
    data = source.read_bytes()
    if dest.is_file() and dest.read_bytes() == data:
        return False
    dest.parent.mkdir(parents=True, exist_ok=True)
    dest.write_bytes(data)
    return True


def _sync_skill(source_dir: Path, dest_dir: Path, metadata_prefix: str) -> tuple[int, bool]:
    """Copy one skill directory. Returns (files written, SKILL.md had hand edits)."""
    written = 0
    modified = False

    for path in sorted(source_dir.rglob("*")):
        if not path.is_file():
            continue
        relative = path.relative_to(source_dir)
        dest = dest_dir / relative

        if relative.as_posix() == SKILL_FILE:
            existing = read_text_if_exists(dest)
            if existing is not None and has_manual_changes(existing, metadata_prefix):
                modified = True
            content = add_managed_metadata(path.read_text(encoding="utf-8"), metadata_prefix)
            written += write_if_changed(dest, content)
        else:
            written += _write_bytes_if_changed(path, dest)

    return written, modified


def _sync_global_document(
    target_dir: Path,
    resolved: ResolvedSource,
    options: SyncOptions,
    rules_section: str | None,
    synced_at: str,
) -> tuple[MergeResult, bool]:
    agents_md_path = target_dir / AGENTS_MD
    existing = read_text_if_exists(agents_md_path)
    global_content = resolved.global_path.read_text(encoding="utf-8")

    merge = merge_global_document(
        existing,
        global_content,
        source=resolved.source.describe(),
        override=options.override or not resolved.preserve_repo_content,
        marker_prefix=resolved.marker_prefix,
        extra_repo_content=collect_claude_md_contents(target_dir),
        synced_at=synced_at,
        cli_name=CLI_NAME,
    )

    document = merge.content
    if rules_section:
        document = update_document_with_rules(document, rules_section, resolved.marker_prefix)

    # Only the source descriptor or timestamp moved: leave the file alone.
    prefix = resolved.marker_prefix
    if existing is not None and without_sync_metadata(existing, prefix) == without_sync_metadata(document, prefix):
        return merge, False

    write_if_changed(agents_md_path, document)
    return merge, True


def sync(target_dir: str | Path, resolved: ResolvedSource, options: SyncOptions | None = None) -> SyncResult:
    """Sync ``resolved`` into ``target_dir`` and write the lockfile."""
    target_dir = Path(target_dir)
    options = options or SyncOptions()
    targets = options.targets or resolved.targets
    for target in targets:
        get_target_config(target)

    metadata_prefix = to_metadata_prefix(resolved.marker_prefix)
    synced_at = now_iso()

    previous_result = read_lockfile(target_dir)
    previous = previous_result.lockfile if previous_result else None

    log = logger.bind(target_dir=str(target_dir), source=resolved.source.describe())
    log.info("sync started", targets=targets)

    rules = discover_rules(resolved.rules_path) if resolved.rules_path else []
    agents = discover_agents(resolved.agents_path) if resolved.agents_path else []

    rules_section = None
    if rules and any(not get_target_config(t).rules_as_files for t in targets):
        rules_section = generate_rules_section(rules, resolved.marker_prefix, CLI_NAME)

    # ── AGENTS.md and CLAUDE.md ──
    merge, agents_md_written = _sync_global_document(target_dir, resolved, options, rules_section, synced_at)
    claude_md = consolidate_claude_md(target_dir)

    # ── Skills ──
    skill_names = []
    skill_errors = []
    skills_modified = []
    files_written = 0
    for name in discover_skill_names(resolved.skills_path):
        skill_source = resolved.skills_path / name
        skill_file = skill_source / SKILL_FILE
        skill_content = read_text_if_exists(skill_file)
        if skill_content is None:
            skill_errors.append(
                SkillValidationError(skill_name=name, path=str(skill_file), errors=[f"Missing {SKILL_FILE}"])
            )
            continue
        error = validate_skill_frontmatter(skill_content, name, str(skill_file))
        if error:
            log.warning("skill has invalid frontmatter", skill=name, errors=error.errors)
            skill_errors.append(error)
        skill_names.append(name)

        for target in targets:
            dest = target_dir / get_target_config(target).dir / "skills" / name
            written, modified = _sync_skill(skill_source, dest, metadata_prefix)
            files_written += written
            if modified and name not in skills_modified:
                log.warning("overwrote local changes to skill", skill=name, target=target)
                skills_modified.append(name)

    # ── Rules ──
    rule_paths = [rule.relative_path for rule in rules]
    for target in targets:
        config = get_target_config(target)
        if not config.rules_as_files:
            continue
        for rule in rules:
            dest = target_dir / config.dir / "rules" / rule.relative_path
            files_written += write_if_changed(dest, add_rule_metadata(rule, metadata_prefix))

    # ── Agents ──
    agent_errors = []
    valid_agents = []
    for agent in agents:
        error = validate_agent_frontmatter(agent.raw_content, agent.relative_path)
        if error:
            log.warning("skipping invalid agent", agent=agent.relative_path, errors=error.errors)
            agent_errors.append(error)
        else:
            valid_agents.append(agent)

    for target in targets:
        config = get_target_config(target)
        if not config.supports_agents:
            continue
        for agent in valid_agents:
            dest = target_dir / config.dir / "agents" / agent.relative_path
            files_written += write_if_changed(dest, add_agent_metadata(agent, metadata_prefix))
    agent_paths = [agent.relative_path for agent in valid_agents]

    result = SyncResult(
        merge=merge,
        claude_md=claude_md,
        agents_md_written=agents_md_written,
        targets=list(targets),
        skills=skill_names,
        skills_modified=skills_modified,
        skill_errors=skill_errors,
        files_written=files_written,
        rules=rule_paths,
        agents=agent_paths,
        agent_errors=agent_errors,
    )

    # ── Orphans ──
    if previous and options.delete_orphans:
        skill_orphans = find_orphans(previous.skills, skill_names)
        if skill_orphans:
            orphan_targets = list(dict.fromkeys([*targets, *previous.targets]))
            result.orphaned_skills = delete_orphaned_skills(
                target_dir, skill_orphans, orphan_targets, previous.skills, metadata_prefix
            )

        if "claude" in targets:
            rule_orphans = find_orphans(previous.rule_files, rule_paths)
            if rule_orphans:
                result.orphaned_rules = delete_orphaned_rules(
                    target_dir, rule_orphans, previous.rule_files, metadata_prefix
                )
            agent_orphans = find_orphans(previous.agent_files, agent_paths)
            if agent_orphans:
                result.orphaned_agents = delete_orphaned_agents(
                    target_dir, agent_orphans, previous.agent_files, metadata_prefix
                )

    # ── Lockfile ──
    global_content = resolved.global_path.read_text(encoding="utf-8")
    result.lockfile = Lockfile(
        source=resolved.source,
        synced_at=synced_at,
        global_block_hash=hash_block(global_content),
        merged=merge.merged,
        skills=skill_names,
        rules=FileSet(files=rule_paths, content_hash=compute_rules_hash(rules)) if rules else None,
        agents=FileSet(files=agent_paths, content_hash=compute_agents_hash(valid_agents)) if valid_agents else None,
        targets=list(targets),
        marker_prefix=resolved.marker_prefix,
        pinned_version=options.pinned_version,
    )
    write_lockfile(target_dir, result.lockfile)

    log.info(
        "sync finished",
        skills=len(skill_names),
        rules=len(rule_paths),
        agents=len(agent_paths),
        files_written=files_written,
    )
    return result


def get_sync_status(target_dir: str | Path) -> LockfileResult | None:
    """The lockfile of the last sync, or None if the repository was never synced."""
    return read_lockfile(target_dir)
