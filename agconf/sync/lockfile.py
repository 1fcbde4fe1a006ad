"""Lockfile — what the last sync wrote, persisted for the next one.

The lockfile (``.agconf/lockfile.json``) is the only state kept between runs.
It records the source, the manifest of synced skills/rules/agents (input to
orphan detection), the global block hash, and the marker prefix in effect.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from agconf import __version__
from agconf.config import CONFIG_DIR
from agconf.exceptions import LockfileError

LOCKFILE_NAME = "lockfile.json"
SUPPORTED_SCHEMA_VERSION = "1.0.0"


@dataclass
class Source:
    """Where the canonical content came from."""

    type: str  # github | local
    repository: str = ""
    ref: str = ""
    path: str = ""
    commit_sha: str = ""

    def describe(self) -> str:
        sha = self.commit_sha[:7]
        if self.type == "github":
            return f"github:{self.repository}@{sha or self.ref}"
        if sha:
            return f"local:{self.path}@{sha}"
        return f"local:{self.path}"

    def to_dict(self) -> dict:
        if self.type == "github":
            return {
                "type": "github",
                "repository": self.repository,
                "commit_sha": self.commit_sha,
                "ref": self.ref,
            }
        data = {"type": "local", "path": self.path}
        if self.commit_sha:
            data["commit_sha"] = self.commit_sha
        return data

    @classmethod
    def from_dict(cls, data: dict) -> Source:
        source_type = data.get("type")
        if source_type == "github":
            for key in ("repository", "commit_sha", "ref"):
                if not isinstance(data.get(key), str):
                    raise LockfileError(f"GitHub source is missing '{key}'")
            return cls(
                type="github",
                repository=data["repository"],
                commit_sha=data["commit_sha"],
                ref=data["ref"],
            )
        if source_type == "local":
            if not isinstance(data.get("path"), str):
                raise LockfileError("Local source is missing 'path'")
            return cls(type="local", path=data["path"], commit_sha=data.get("commit_sha") or "")
        raise LockfileError(f"Unknown source type: {source_type!r}")


@dataclass
class FileSet:
    """Synced files of one kind (rules or agents) and their aggregate hash."""

    files: list[str] = field(default_factory=list)
    content_hash: str = ""


@dataclass
class Lockfile:
    source: Source
    synced_at: str
    global_block_hash: str
    skills: list[str] = field(default_factory=list)
    rules: FileSet | None = None
    agents: FileSet | None = None
    targets: list[str] = field(default_factory=lambda: ["claude"])
    marker_prefix: str | None = None
    merged: bool = True
    pinned_version: str | None = None
    version: str = SUPPORTED_SCHEMA_VERSION
    cli_version: str = __version__

    @property
    def rule_files(self) -> list[str]:
        return self.rules.files if self.rules else []

    @property
    def agent_files(self) -> list[str]:
        return self.agents.files if self.agents else []

    def to_dict(self) -> dict:
        content: dict = {
            "agents_md": {
                "global_block_hash": self.global_block_hash,
                "merged": self.merged,
            },
            "skills": self.skills,
        }
        if self.rules:
            content["rules"] = {"files": self.rules.files, "content_hash": self.rules.content_hash}
        if self.agents:
            content["agents"] = {"files": self.agents.files, "content_hash": self.agents.content_hash}
        content["targets"] = self.targets
        if self.marker_prefix:
            content["marker_prefix"] = self.marker_prefix

        data: dict = {"version": self.version}
        if self.pinned_version:
            data["pinned_version"] = self.pinned_version
        data["synced_at"] = self.synced_at
        data["source"] = self.source.to_dict()
        data["content"] = content
        data["cli_version"] = self.cli_version
        return data

    @classmethod
    def from_dict(cls, data: dict) -> Lockfile:
        if not isinstance(data, dict):
            raise LockfileError("Lockfile must be a JSON object")

        content = data.get("content")
        if not isinstance(content, dict):
            raise LockfileError("Lockfile is missing 'content'")
        agents_md = content.get("agents_md") or {}

        def file_set(key: str) -> FileSet | None:
            entry = content.get(key)
            if not entry:
                return None
            return FileSet(files=list(entry.get("files", [])), content_hash=entry.get("content_hash", ""))

        return cls(
            version=str(data.get("version", "")),
            pinned_version=data.get("pinned_version"),
            synced_at=str(data.get("synced_at", "")),
            source=Source.from_dict(data.get("source") or {}),
            global_block_hash=str(agents_md.get("global_block_hash", "")),
            merged=bool(agents_md.get("merged", True)),
            skills=list(content.get("skills", [])),
            rules=file_set("rules"),
            agents=file_set("agents"),
            targets=list(content.get("targets") or ["claude"]),
            marker_prefix=content.get("marker_prefix"),
            cli_version=str(data.get("cli_version", "")),
        )


@dataclass
class SchemaCompatibility:
    compatible: bool
    warning: str | None = None
    error: str | None = None


def check_schema_compatibility(content_version: str) -> SchemaCompatibility:
    """Compare a lockfile schema version with the one this CLI supports.

    A different major version is an error, a newer minor version a warning.
    """

    def parts(version: str) -> tuple[int, int]:
        numbers = [int(p) if p.isdigit() else 0 for p in version.split(".")]
        numbers += [0, 0]
        return numbers[0], numbers[1]

    major, minor = parts(content_version)
    supported_major, supported_minor = parts(SUPPORTED_SCHEMA_VERSION)

    if major > supported_major:
        return SchemaCompatibility(
            compatible=False,
            error=f"Schema version {content_version} requires a newer CLI. Upgrade agconf.",
        )
    if major < supported_major:
        return SchemaCompatibility(
            compatible=False,
            error=(
                f"Schema version {content_version} is outdated and no longer supported. "
                "This content was created with an older version of agconf."
            ),
        )
    if minor > supported_minor:
        return SchemaCompatibility(
            compatible=True,
            warning=(
                f"Content uses schema {content_version}, CLI supports {SUPPORTED_SCHEMA_VERSION}. "
                "Some features may not work."
            ),
        )
    return SchemaCompatibility(compatible=True)


@dataclass
class LockfileResult:
    lockfile: Lockfile
    compatibility: SchemaCompatibility


def get_lockfile_path(target_dir: str | Path) -> Path:
    return Path(target_dir) / CONFIG_DIR / LOCKFILE_NAME


def read_lockfile(target_dir: str | Path) -> LockfileResult | None:
    """Read the lockfile, or return None if the repository was never synced."""
    path = get_lockfile_path(target_dir)
    if not path.exists():
        return None

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise LockfileError(f"Invalid lockfile {path}: {e}") from e

    lockfile = Lockfile.from_dict(data)
    return LockfileResult(lockfile=lockfile, compatibility=check_schema_compatibility(lockfile.version))


def write_lockfile(target_dir: str | Path, lockfile: Lockfile) -> Path:
    path = get_lockfile_path(target_dir)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(lockfile.to_dict(), indent=2) + "\n", encoding="utf-8")
    return path


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
