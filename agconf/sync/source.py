"""Source resolution — locate the canonical content on the local filesystem.

Fetching from GitHub happens outside this package; a checked-out canonical
repository (or any directory laid out like one) is resolved here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from git import InvalidGitRepositoryError, NoSuchPathError, Repo

from agconf.config import (
    CANONICAL_CONFIG_FILE,
    DEFAULT_PREFIX,
    CanonicalPaths,
    load_canonical_config,
)
from agconf.exceptions import SourceError
from agconf.log import get_logger
from agconf.sync.lockfile import Source

logger = get_logger(__name__)

CANONICAL_DIR_NAME = "agconf"


@dataclass
class ResolvedSource:
    """Everything the sync engine needs to read from the canonical source."""

    source: Source
    base_path: Path
    global_path: Path
    skills_path: Path
    rules_path: Path | None = None
    agents_path: Path | None = None
    marker_prefix: str = DEFAULT_PREFIX
    targets: list[str] = field(default_factory=lambda: ["claude"])
    preserve_repo_content: bool = True


def get_commit_sha(path: Path) -> str:
    """HEAD commit of the git repository containing ``path``, or ''."""
    try:
        repo = Repo(path, search_parent_directories=True)
        return repo.head.commit.hexsha
    except (InvalidGitRepositoryError, NoSuchPathError):
        return ""
    except ValueError:
        # Repository without any commit yet.
        return ""


def is_canonical_repo(path: Path) -> bool:
    return (path / CANONICAL_CONFIG_FILE).is_file() or (
        path / CanonicalPaths().instructions
    ).is_file()


def find_canonical_repo(start: Path) -> Path:
    """Search ``start`` and its parents, then sibling ``agconf`` directories."""
    start = start.resolve()

    for candidate in (start, *start.parents):
        if is_canonical_repo(candidate):
            return candidate

    for parent in start.parents:
        sibling = parent / CANONICAL_DIR_NAME
        if sibling != start and is_canonical_repo(sibling):
            return sibling

    raise SourceError(
        "Could not find canonical repository. "
        "Please specify --local <path> or run from within the canonical repo."
    )


def resolve_local_source(path: str | Path | None = None) -> ResolvedSource:
    """Resolve a canonical repository on disk.

    Raises SourceError if the directory lacks the global instructions file
    or the skills directory.
    """
    base_path = Path(path).resolve() if path else find_canonical_repo(Path.cwd())

    config = load_canonical_config(base_path)
    paths = config.content if config else CanonicalPaths()

    global_path = base_path / paths.instructions
    skills_path = base_path / paths.skills_dir
    if not global_path.is_file():
        raise SourceError(f"Invalid canonical repository: missing {paths.instructions} at {base_path}")
    if not skills_path.is_dir():
        raise SourceError(f"Invalid canonical repository: missing {paths.skills_dir}/ directory at {base_path}")

    rules_path = base_path / paths.rules_dir if paths.rules_dir else None
    agents_path = base_path / paths.agents_dir if paths.agents_dir else None

    commit_sha = get_commit_sha(base_path)
    logger.debug("resolved local source", path=str(base_path), commit=commit_sha[:7])

    return ResolvedSource(
        source=Source(type="local", path=str(base_path), commit_sha=commit_sha),
        base_path=base_path,
        global_path=global_path,
        skills_path=skills_path,
        rules_path=rules_path if rules_path and rules_path.is_dir() else None,
        agents_path=agents_path if agents_path and agents_path.is_dir() else None,
        marker_prefix=config.marker_prefix if config else DEFAULT_PREFIX,
        targets=list(config.targets) if config else ["claude"],
        preserve_repo_content=config.preserve_repo_content if config else True,
    )
