"""Tests for drift detection on synced repositories."""

import tempfile
from pathlib import Path

from agconf.sync.drift import DriftDetector, FileType, check_managed_files
from agconf.sync.engine import SyncOptions, sync
from agconf.sync.lockfile import get_lockfile_path
from agconf.sync.source import resolve_local_source


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)


def _synced_repo(tmpdir: str, targets: list[str] | None = None) -> Path:
    canonical = Path(tmpdir) / "canonical"
    _write(
        canonical / "agconf.yaml",
        'version: "1.0.0"\nmeta:\n  name: acme\ncontent:\n  rules_dir: rules\n  agents_dir: agents\n',
    )
    _write(canonical / "instructions" / "AGENTS.md", "# Standards\n\nUse tabs.\n")
    _write(canonical / "skills" / "deploy" / "SKILL.md", "---\nname: deploy\ndescription: Deploys\n---\n# Deploy\n")
    _write(canonical / "rules" / "style.md", "# Style\n\nUse snake_case.\n")
    _write(canonical / "agents" / "reviewer.md", "---\nname: reviewer\ndescription: Reviews\n---\nReview.\n")

    target = Path(tmpdir) / "project"
    target.mkdir()
    sync(target, resolve_local_source(canonical), SyncOptions(targets=targets))
    return target


def test_not_synced():
    with tempfile.TemporaryDirectory() as tmpdir:
        report = DriftDetector(tmpdir).check()
        assert not report.synced
        assert report.passed
        assert report.summary() == "Not synced"


def test_clean_repository():
    with tempfile.TemporaryDirectory() as tmpdir:
        target = _synced_repo(tmpdir)
        report = DriftDetector(target).check()

        assert report.synced
        assert report.passed
        assert not report.has_drift
        types = sorted(f.type for f in report.files)
        assert types == sorted([FileType.GLOBAL, FileType.SKILL, FileType.RULE, FileType.AGENT])


def test_edited_skill_is_drift():
    with tempfile.TemporaryDirectory() as tmpdir:
        target = _synced_repo(tmpdir)
        skill = target / ".claude" / "skills" / "deploy" / "SKILL.md"
        skill.write_text(skill.read_text() + "\nextra\n")

        report = DriftDetector(target).check()
        assert report.has_drift
        assert not report.passed
        [modified] = report.modified
        assert modified.type == FileType.SKILL
        assert modified.name == "deploy"
        assert modified.path == ".claude/skills/deploy/SKILL.md"
        assert modified.expected_hash != modified.current_hash
        assert report.summary() == "1 managed file(s) have been modified"


def test_edited_global_block_is_drift():
    with tempfile.TemporaryDirectory() as tmpdir:
        target = _synced_repo(tmpdir)
        agents_md = target / "AGENTS.md"
        agents_md.write_text(agents_md.read_text().replace("Use tabs.", "Use spaces."))

        [modified] = DriftDetector(target).check().modified
        assert modified.type == FileType.GLOBAL
        assert modified.path == "AGENTS.md"


def test_edited_repo_block_is_not_drift():
    with tempfile.TemporaryDirectory() as tmpdir:
        target = _synced_repo(tmpdir)
        agents_md = target / "AGENTS.md"
        content = agents_md.read_text().replace(
            "<!-- agconf:repo:end -->", "Our own notes\n<!-- agconf:repo:end -->"
        )
        agents_md.write_text(content)

        assert DriftDetector(target).check().passed


def test_edited_rule_reports_source_path():
    with tempfile.TemporaryDirectory() as tmpdir:
        target = _synced_repo(tmpdir)
        rule = target / ".claude" / "rules" / "style.md"
        rule.write_text(rule.read_text().replace("snake_case", "camelCase"))

        [modified] = DriftDetector(target).check().modified
        assert modified.type == FileType.RULE
        assert modified.name == "style.md"


def test_edited_rules_section_is_drift():
    with tempfile.TemporaryDirectory() as tmpdir:
        target = _synced_repo(tmpdir, targets=["codex"])
        agents_md = target / "AGENTS.md"
        agents_md.write_text(agents_md.read_text().replace("Use snake_case.", "Use camelCase."))

        [modified] = DriftDetector(target).check().modified
        assert modified.type == FileType.RULES_SECTION


def test_unmanaged_files_are_ignored():
    with tempfile.TemporaryDirectory() as tmpdir:
        target = _synced_repo(tmpdir)
        _write(target / ".claude" / "skills" / "local" / "SKILL.md", "---\nname: local\ndescription: x\n---\n")

        files = check_managed_files(target)
        assert "local" not in [f.name for f in files]


def test_no_managed_files_fails():
    with tempfile.TemporaryDirectory() as tmpdir:
        target = _synced_repo(tmpdir)
        for path in list(target.rglob("*.md")):
            path.unlink()

        report = DriftDetector(target).check()
        assert report.files == []
        assert not report.passed
        assert report.summary() == "No managed files found"


def test_incompatible_schema():
    with tempfile.TemporaryDirectory() as tmpdir:
        target = _synced_repo(tmpdir)
        path = get_lockfile_path(target)
        path.write_text(path.read_text().replace('"version": "1.0.0"', '"version": "2.0.0"'))

        report = DriftDetector(target).check()
        assert report.schema_error
        assert not report.passed
        assert report.files == []
