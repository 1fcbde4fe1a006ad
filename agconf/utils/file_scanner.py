"""File scanner — discover skills, rules and agents in a directory tree."""

from __future__ import annotations

from pathlib import Path

from agconf.content.agents import Agent, parse_agent
from agconf.content.rules import Rule, parse_rule
from agconf.content.skills import SKILL_FILE

# Directories never treated as content
SKIP_DIRS = {".git", "__pycache__", "node_modules", ".venv", "venv"}


def _relative(path: Path, root: Path) -> str:
    return path.relative_to(root).as_posix()


def discover_skill_names(skills_dir: Path) -> list[str]:
    """Names of the skill directories directly under ``skills_dir``, sorted."""
    if not skills_dir.is_dir():
        return []
    return sorted(
        entry.name
        for entry in skills_dir.iterdir()
        if entry.is_dir() and entry.name not in SKIP_DIRS
    )


def discover_rules(rules_dir: Path) -> list[Rule]:
    """All markdown rule files below ``rules_dir``, sorted by relative path."""
    if not rules_dir.is_dir():
        return []

    rules = []
    for path in rules_dir.rglob("*.md"):
        if not path.is_file() or any(part in SKIP_DIRS for part in path.relative_to(rules_dir).parts):
            continue
        rules.append(parse_rule(path.read_text(encoding="utf-8"), _relative(path, rules_dir)))
    return sorted(rules, key=lambda r: r.relative_path)


def discover_agents(agents_dir: Path) -> list[Agent]:
    """Markdown agent files directly in ``agents_dir`` (agents are flat)."""
    if not agents_dir.is_dir():
        return []

    agents = [
        parse_agent(path.read_text(encoding="utf-8"), path.name)
        for path in agents_dir.glob("*.md")
        if path.is_file()
    ]
    return sorted(agents, key=lambda a: a.relative_path)


def find_skill_files(skills_dir: Path) -> list[Path]:
    """``<skill>/SKILL.md`` files one level below ``skills_dir``."""
    if not skills_dir.is_dir():
        return []
    return sorted(p for p in skills_dir.glob(f"*/{SKILL_FILE}") if p.is_file())


def find_markdown_files(directory: Path, recursive: bool = True) -> list[Path]:
    if not directory.is_dir():
        return []
    pattern = directory.rglob("*.md") if recursive else directory.glob("*.md")
    return sorted(p for p in pattern if p.is_file())
