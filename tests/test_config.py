"""Tests for prefixes, targets and YAML configuration."""

import tempfile
from pathlib import Path

import pytest

from agconf.config import (
    get_target_config,
    load_canonical_config,
    load_downstream_config,
    parse_targets,
    to_marker_prefix,
    to_metadata_prefix,
)
from agconf.exceptions import ConfigError

CANONICAL_YAML = """\
version: "1.0.0"
meta:
  name: acme-standards
  organization: Acme
content:
  instructions: docs/AGENTS.md
  skills_dir: skills
  rules_dir: rules
targets:
  - claude
  - codex
markers:
  prefix: acme-std
merge:
  preserve_repo_content: false
"""


def test_prefix_conversion():
    assert to_metadata_prefix("my-org") == "my_org"
    assert to_marker_prefix("my_org") == "my-org"
    assert to_metadata_prefix("agconf") == "agconf"


def test_target_configs():
    claude = get_target_config("claude")
    assert claude.dir == ".claude"
    assert claude.supports_agents
    assert claude.rules_as_files

    codex = get_target_config("codex")
    assert codex.dir == ".codex"
    assert not codex.supports_agents


def test_unknown_target():
    with pytest.raises(ConfigError, match="Unknown target"):
        get_target_config("cursor")


def test_parse_targets():
    assert parse_targets([]) == ["claude"]
    assert parse_targets(["claude,codex"]) == ["claude", "codex"]
    assert parse_targets(["Codex", "claude", "codex"]) == ["codex", "claude"]


# --- Canonical config ---


def test_missing_canonical_config():
    with tempfile.TemporaryDirectory() as tmpdir:
        assert load_canonical_config(tmpdir) is None


def test_load_canonical_config():
    with tempfile.TemporaryDirectory() as tmpdir:
        (Path(tmpdir) / "agconf.yaml").write_text(CANONICAL_YAML)
        config = load_canonical_config(tmpdir)

        assert config.name == "acme-standards"
        assert config.organization == "Acme"
        assert config.content.instructions == "docs/AGENTS.md"
        assert config.content.rules_dir == "rules"
        assert config.content.agents_dir is None
        assert config.targets == ["claude", "codex"]
        assert config.marker_prefix == "acme-std"
        assert config.metadata_prefix == "acme_std"
        assert not config.preserve_repo_content


def test_canonical_config_requires_semver():
    with tempfile.TemporaryDirectory() as tmpdir:
        (Path(tmpdir) / "agconf.yaml").write_text('version: "1.0"\nmeta:\n  name: x\n')
        with pytest.raises(ConfigError, match="semver"):
            load_canonical_config(tmpdir)


def test_canonical_config_requires_name():
    with tempfile.TemporaryDirectory() as tmpdir:
        (Path(tmpdir) / "agconf.yaml").write_text('version: "1.0.0"\nmeta: {}\n')
        with pytest.raises(ConfigError, match="meta.name"):
            load_canonical_config(tmpdir)


def test_canonical_config_invalid_yaml():
    with tempfile.TemporaryDirectory() as tmpdir:
        (Path(tmpdir) / "agconf.yaml").write_text("version: [unclosed\n")
        with pytest.raises(ConfigError):
            load_canonical_config(tmpdir)


# --- Downstream config ---


def test_load_downstream_config():
    with tempfile.TemporaryDirectory() as tmpdir:
        config_dir = Path(tmpdir) / ".agconf"
        config_dir.mkdir()
        (config_dir / "config.yaml").write_text(
            "sources:\n  - repository: acme/standards\n    ref: v1.0.0\n    priority: 1\ntargets: [codex]\n"
        )
        config = load_downstream_config(tmpdir)
        assert config.targets == ["codex"]
        assert config.sources[0].repository == "acme/standards"
        assert config.sources[0].priority == 1


def test_missing_downstream_config():
    with tempfile.TemporaryDirectory() as tmpdir:
        assert load_downstream_config(tmpdir) is None
