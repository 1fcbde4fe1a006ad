"""Tests for the agconf command line."""

import tempfile
from pathlib import Path

from click.testing import CliRunner

from agconf import __version__
from agconf.cli import main


def _make_canonical(root: Path) -> Path:
    (root / "instructions").mkdir(parents=True)
    (root / "instructions" / "AGENTS.md").write_text("# Standards\n\nUse tabs.\n")
    (root / "skills" / "deploy").mkdir(parents=True)
    (root / "skills" / "deploy" / "SKILL.md").write_text("---\nname: deploy\ndescription: Deploys\n---\n# Deploy\n")
    return root


def _setup(tmpdir: str) -> tuple[Path, Path]:
    canonical = _make_canonical(Path(tmpdir) / "canonical")
    target = Path(tmpdir) / "project"
    target.mkdir()
    return canonical, target


def test_version():
    result = CliRunner().invoke(main, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_sync_and_check():
    with tempfile.TemporaryDirectory() as tmpdir:
        canonical, target = _setup(tmpdir)
        runner = CliRunner()

        result = runner.invoke(main, ["sync", str(target), "--local", str(canonical)])
        assert result.exit_code == 0, result.output
        assert "Sync complete" in result.output
        assert (target / ".agconf" / "lockfile.json").exists()

        result = runner.invoke(main, ["check", str(target)])
        assert result.exit_code == 0, result.output
        assert "OK" in result.output


def test_check_reports_drift():
    with tempfile.TemporaryDirectory() as tmpdir:
        canonical, target = _setup(tmpdir)
        runner = CliRunner()
        runner.invoke(main, ["sync", str(target), "--local", str(canonical)])

        skill = target / ".claude" / "skills" / "deploy" / "SKILL.md"
        skill.write_text(skill.read_text() + "\nLocal edit\n")

        result = runner.invoke(main, ["check", str(target)])
        assert result.exit_code == 1
        assert "DRIFT" in result.output
        assert "Expected hash" in result.output
        assert "Current hash" in result.output


def test_check_quiet():
    with tempfile.TemporaryDirectory() as tmpdir:
        canonical, target = _setup(tmpdir)
        runner = CliRunner()
        runner.invoke(main, ["sync", str(target), "--local", str(canonical)])

        result = runner.invoke(main, ["check", str(target), "--quiet"])
        assert result.exit_code == 0
        assert result.output == ""

        (target / "AGENTS.md").write_text((target / "AGENTS.md").read_text().replace("Use tabs.", "Use spaces."))
        result = runner.invoke(main, ["check", str(target), "--quiet"])
        assert result.exit_code == 1


def test_check_not_synced():
    with tempfile.TemporaryDirectory() as tmpdir:
        result = CliRunner().invoke(main, ["check", tmpdir])
        assert result.exit_code == 0
        assert "Not synced" in result.output


def test_sync_with_codex_target():
    with tempfile.TemporaryDirectory() as tmpdir:
        canonical, target = _setup(tmpdir)
        result = CliRunner().invoke(
            main, ["sync", str(target), "--local", str(canonical), "--target", "claude,codex"]
        )
        assert result.exit_code == 0, result.output
        assert (target / ".codex" / "skills" / "deploy" / "SKILL.md").exists()


def test_sync_uses_downstream_config_targets():
    with tempfile.TemporaryDirectory() as tmpdir:
        canonical, target = _setup(tmpdir)
        (target / ".agconf").mkdir()
        (target / ".agconf" / "config.yaml").write_text("targets:\n  - codex\n")

        result = CliRunner().invoke(main, ["sync", str(target), "--local", str(canonical)])
        assert result.exit_code == 0, result.output
        assert (target / ".codex" / "skills" / "deploy" / "SKILL.md").exists()
        assert not (target / ".claude" / "skills").exists()


def test_sync_unknown_target():
    with tempfile.TemporaryDirectory() as tmpdir:
        canonical, target = _setup(tmpdir)
        result = CliRunner().invoke(main, ["sync", str(target), "--local", str(canonical), "-t", "cursor"])
        assert result.exit_code == 1
        assert "Unknown target" in result.output


def test_sync_invalid_source():
    with tempfile.TemporaryDirectory() as tmpdir:
        empty = Path(tmpdir) / "empty"
        empty.mkdir()
        result = CliRunner().invoke(main, ["sync", tmpdir, "--local", str(empty)])
        assert result.exit_code == 1
        assert "Invalid canonical repository" in result.output


def test_status():
    with tempfile.TemporaryDirectory() as tmpdir:
        canonical, target = _setup(tmpdir)
        runner = CliRunner()

        result = runner.invoke(main, ["status", str(target)])
        assert "Not synced" in result.output

        runner.invoke(main, ["sync", str(target), "--local", str(canonical), "--pinned", "v2.0.0"])
        result = runner.invoke(main, ["status", str(target)])
        assert result.exit_code == 0
        assert "v2.0.0" in result.output
        assert "claude" in result.output


def test_sync_with_json_logs():
    with tempfile.TemporaryDirectory() as tmpdir:
        canonical, target = _setup(tmpdir)
        result = CliRunner().invoke(main, ["--log-json", "sync", str(target), "--local", str(canonical)])
        assert result.exit_code == 0, result.output
        assert (target / ".agconf" / "lockfile.json").exists()
