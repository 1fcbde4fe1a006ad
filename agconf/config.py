"""Configuration — prefixes, targets, and the canonical/downstream config files.

The marker prefix (``agconf`` by default) drives every marker string and
metadata key the engine writes. It is always passed explicitly; nothing in
agconf keeps it in module state.

Marker prefixes use dashes (``my-prefix``) while metadata keys use
underscores (``my_prefix_managed``).
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from agconf.exceptions import ConfigError

DEFAULT_PREFIX = "agconf"
CLI_NAME = "agconf"

CANONICAL_CONFIG_FILE = "agconf.yaml"
CONFIG_DIR = ".agconf"
DOWNSTREAM_CONFIG_FILE = "config.yaml"

_SEMVER_RE = re.compile(r"^\d+\.\d+\.\d+$")


def to_metadata_prefix(marker_prefix: str) -> str:
    """Convert a marker prefix (dashes) to a metadata key prefix (underscores)."""
    return marker_prefix.replace("-", "_")


def to_marker_prefix(metadata_prefix: str) -> str:
    """Convert a metadata key prefix (underscores) to a marker prefix (dashes)."""
    return metadata_prefix.replace("_", "-")


# --- Targets ---


@dataclass(frozen=True)
class TargetConfig:
    """Where a downstream agent looks for its files."""

    name: str
    dir: str
    supports_agents: bool = False
    rules_as_files: bool = False


SUPPORTED_TARGETS: dict[str, TargetConfig] = {
    "claude": TargetConfig(name="claude", dir=".claude", supports_agents=True, rules_as_files=True),
    "codex": TargetConfig(name="codex", dir=".codex"),
}


def get_target_config(target: str) -> TargetConfig:
    try:
        return SUPPORTED_TARGETS[target]
    except KeyError:
        supported = ", ".join(sorted(SUPPORTED_TARGETS))
        raise ConfigError(f"Unknown target '{target}'. Supported targets: {supported}") from None


def parse_targets(values: list[str] | tuple[str, ...]) -> list[str]:
    """Validate and de-duplicate target names, keeping their order.

    Comma-separated values are accepted (``claude,codex``).
    """
    targets: list[str] = []
    for value in values:
        for name in value.split(","):
            name = name.strip().lower()
            if not name:
                continue
            get_target_config(name)
            if name not in targets:
                targets.append(name)
    return targets or ["claude"]


# --- Canonical repository config (agconf.yaml) ---


@dataclass
class CanonicalPaths:
    instructions: str = "instructions/AGENTS.md"
    skills_dir: str = "skills"
    rules_dir: str | None = None
    agents_dir: str | None = None


@dataclass
class CanonicalConfig:
    """Config that lives at the root of the canonical source repository."""

    name: str
    version: str = "1.0.0"
    organization: str = ""
    description: str = ""
    content: CanonicalPaths = field(default_factory=CanonicalPaths)
    targets: list[str] = field(default_factory=lambda: ["claude"])
    marker_prefix: str = DEFAULT_PREFIX
    preserve_repo_content: bool = True

    @property
    def metadata_prefix(self) -> str:
        return to_metadata_prefix(self.marker_prefix)


def _read_yaml(path: Path) -> dict:
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")
    return data


def _section(data: dict, key: str, path: Path) -> dict:
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"'{key}' in {path} must be a mapping")
    return value


def load_canonical_config(base_path: str | Path) -> CanonicalConfig | None:
    """Load ``agconf.yaml`` from a canonical repository.

    Returns None when the file does not exist; raises ConfigError when it
    exists but is invalid.
    """
    path = Path(base_path) / CANONICAL_CONFIG_FILE
    if not path.exists():
        return None

    data = _read_yaml(path)

    version = str(data.get("version", ""))
    if not _SEMVER_RE.match(version):
        raise ConfigError(f"Version must be in semver format (e.g., 1.0.0), got '{version}'")

    meta = _section(data, "meta", path)
    if not meta.get("name"):
        raise ConfigError(f"Missing required field meta.name in {path}")

    content = _section(data, "content", path)
    markers = _section(data, "markers", path)
    merge = _section(data, "merge", path)

    targets = data.get("targets") or ["claude"]
    if not isinstance(targets, list):
        raise ConfigError(f"'targets' in {path} must be a list")

    return CanonicalConfig(
        name=str(meta["name"]),
        version=version,
        organization=str(meta.get("organization", "")),
        description=str(meta.get("description", "")),
        content=CanonicalPaths(
            instructions=content.get("instructions", "instructions/AGENTS.md"),
            skills_dir=content.get("skills_dir", "skills"),
            rules_dir=content.get("rules_dir"),
            agents_dir=content.get("agents_dir"),
        ),
        targets=[str(t) for t in targets],
        marker_prefix=str(markers.get("prefix", DEFAULT_PREFIX)),
        preserve_repo_content=bool(merge.get("preserve_repo_content", True)),
    )


# --- Downstream repository config (.agconf/config.yaml) ---


@dataclass
class SourceConfig:
    repository: str = ""
    url: str = ""
    ref: str = ""
    priority: int = 0


@dataclass
class DownstreamConfig:
    """User preferences stored in the downstream repository."""

    sources: list[SourceConfig] = field(default_factory=list)
    targets: list[str] | None = None


def load_downstream_config(target_dir: str | Path) -> DownstreamConfig | None:
    path = Path(target_dir) / CONFIG_DIR / DOWNSTREAM_CONFIG_FILE
    if not path.exists():
        return None

    data = _read_yaml(path)

    sources = []
    for entry in data.get("sources") or []:
        if not isinstance(entry, dict):
            raise ConfigError(f"Each entry of 'sources' in {path} must be a mapping")
        sources.append(
            SourceConfig(
                repository=str(entry.get("repository", "")),
                url=str(entry.get("url", "")),
                ref=str(entry.get("ref", "")),
                priority=int(entry.get("priority", 0)),
            )
        )

    targets = data.get("targets")
    if targets is not None and not isinstance(targets, list):
        raise ConfigError(f"'targets' in {path} must be a list")

    return DownstreamConfig(
        sources=sources,
        targets=[str(t) for t in targets] if targets is not None else None,
    )
