"""Skills — directories with a ``SKILL.md`` plus supporting files."""

from __future__ import annotations

from dataclasses import dataclass, field

from agconf.content.frontmatter import parse_frontmatter

SKILL_FILE = "SKILL.md"
REQUIRED_SKILL_FIELDS = ("name", "description")


@dataclass
class SkillValidationError:
    skill_name: str
    path: str
    errors: list[str] = field(default_factory=list)


def validate_skill_frontmatter(content: str, skill_name: str, path: str) -> SkillValidationError | None:
    """Check that SKILL.md declares a name and a description.

    Returns None when valid. Problems are reported, never raised, so one bad
    skill does not stop the others from syncing.
    """
    frontmatter = parse_frontmatter(content).frontmatter
    errors = []

    if not frontmatter:
        errors.append("Missing frontmatter (must have --- delimiters)")
    else:
        for name in REQUIRED_SKILL_FIELDS:
            if not frontmatter.get(name):
                errors.append(f"Missing required field: {name}")

    if errors:
        return SkillValidationError(skill_name=skill_name, path=path, errors=errors)
    return None
