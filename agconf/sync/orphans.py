"""Orphans — previously synced artifacts the canonical source no longer has.

Deletion is gated by a fixed policy, applied per artifact:

1. Nothing on disk: nothing to do.
2. Not managed under the current prefix: never ours to delete.
3. Managed and listed in the previous lockfile: delete. The lockfile confirms
   we wrote it.
4. Managed, not listed, but its stored hash still matches: delete. Older
   lockfiles did not record rules or agents.
5. Managed, not listed and edited locally: keep it and report it as orphaned
   but skipped. It may be a hand-copied artifact.
"""

from __future__ import annotations

import shutil
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from agconf.config import DEFAULT_PREFIX, get_target_config
from agconf.content.metadata import has_manual_changes, is_managed
from agconf.content.skills import SKILL_FILE
from agconf.log import get_logger
from agconf.utils.fs import read_text_if_exists

logger = get_logger(__name__)


class OrphanDecision(Enum):
    DELETE = "delete"
    SKIP = "skip"


@dataclass
class OrphanResult:
    deleted: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


def find_orphans(previous: Iterable[str], current: Iterable[str]) -> set[str]:
    """Names in the previous manifest that the current one no longer has."""
    return set(previous) - set(current)


def resolve_deletion(
    name: str,
    was_in_previous_manifest: bool,
    on_disk_content: str | None,
    metadata_prefix: str = DEFAULT_PREFIX,
) -> OrphanDecision:
    """Decide whether an orphaned artifact may be deleted."""
    if on_disk_content is None:
        return OrphanDecision.SKIP

    if not is_managed(on_disk_content, metadata_prefix):
        logger.info("orphan is not managed, keeping it", name=name)
        return OrphanDecision.SKIP

    if was_in_previous_manifest:
        return OrphanDecision.DELETE

    if has_manual_changes(on_disk_content, metadata_prefix):
        logger.warning("orphan not in previous lockfile was modified locally, keeping it", name=name)
        return OrphanDecision.SKIP

    return OrphanDecision.DELETE


def _record(result: OrphanResult, name: str, decision: OrphanDecision) -> None:
    bucket = result.deleted if decision is OrphanDecision.DELETE else result.skipped
    if name not in bucket:
        bucket.append(name)


def delete_orphaned_skills(
    target_dir: str | Path,
    orphans: Iterable[str],
    targets: Iterable[str],
    previous_skills: Iterable[str],
    metadata_prefix: str = DEFAULT_PREFIX,
) -> OrphanResult:
    """Remove orphaned skill directories from every target that has them.

    The skill's SKILL.md decides; a directory without one is kept.
    """
    result = OrphanResult()
    previous = set(previous_skills)
    targets = list(targets)

    for name in sorted(orphans):
        for target in targets:
            skill_dir = Path(target_dir) / get_target_config(target).dir / "skills" / name
            if not skill_dir.is_dir():
                continue

            content = read_text_if_exists(skill_dir / SKILL_FILE)
            decision = resolve_deletion(name, name in previous, content, metadata_prefix)
            if decision is OrphanDecision.DELETE:
                shutil.rmtree(skill_dir)
                logger.info("deleted orphaned skill", name=name, target=target)
            _record(result, name, decision)

    # A skill kept in one target is still reported as skipped.
    result.deleted = [name for name in result.deleted if name not in result.skipped]
    return result


def _delete_orphaned_files(
    base_dir: Path,
    orphans: Iterable[str],
    previous: Iterable[str],
    metadata_prefix: str,
    kind: str,
) -> OrphanResult:
    result = OrphanResult()
    previous = set(previous)

    for name in sorted(orphans):
        path = base_dir / name
        if not path.is_file():
            continue

        content = read_text_if_exists(path)
        decision = resolve_deletion(name, name in previous, content, metadata_prefix)
        if decision is OrphanDecision.DELETE:
            path.unlink()
            _prune_empty_dirs(path.parent, base_dir)
            logger.info(f"deleted orphaned {kind}", name=name)
        _record(result, name, decision)

    return result


def _prune_empty_dirs(directory: Path, stop_at: Path) -> None:
    while directory != stop_at and stop_at in directory.parents and not any(directory.iterdir()):
        directory.rmdir()
        directory = directory.parent


def delete_orphaned_rules(
    target_dir: str | Path,
    orphans: Iterable[str],
    previous_rules: Iterable[str],
    metadata_prefix: str = DEFAULT_PREFIX,
) -> OrphanResult:
    """Remove orphaned rule files from ``.claude/rules/``."""
    rules_dir = Path(target_dir) / get_target_config("claude").dir / "rules"
    return _delete_orphaned_files(rules_dir, orphans, previous_rules, metadata_prefix, "rule")


def delete_orphaned_agents(
    target_dir: str | Path,
    orphans: Iterable[str],
    previous_agents: Iterable[str],
    metadata_prefix: str = DEFAULT_PREFIX,
) -> OrphanResult:
    """Remove orphaned agent files from ``.claude/agents/``."""
    agents_dir = Path(target_dir) / get_target_config("claude").dir / "agents"
    return _delete_orphaned_files(agents_dir, orphans, previous_agents, metadata_prefix, "agent")
