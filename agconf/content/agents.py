"""Agents — sub-agent definitions synced as flat files into ``.claude/agents/``."""

from __future__ import annotations

from dataclasses import dataclass, field

from agconf.config import DEFAULT_PREFIX
from agconf.content.frontmatter import Frontmatter, parse_frontmatter
from agconf.content.hashing import hash_files
from agconf.content.metadata import add_managed_metadata

REQUIRED_AGENT_FIELDS = ("name", "description")


@dataclass
class Agent:
    relative_path: str  # e.g. "code-reviewer.md"
    raw_content: str
    frontmatter: Frontmatter | None
    body: str

    @property
    def tools(self) -> list[str]:
        tools = (self.frontmatter or {}).get("tools")
        return [str(t) for t in tools] if isinstance(tools, list) else []


@dataclass
class AgentValidationError:
    agent_path: str
    errors: list[str] = field(default_factory=list)


def parse_agent(content: str, relative_path: str) -> Agent:
    parsed = parse_frontmatter(content)
    return Agent(
        relative_path=relative_path,
        raw_content=content,
        frontmatter=parsed.frontmatter,
        body=parsed.body,
    )


def validate_agent_frontmatter(content: str, agent_path: str) -> AgentValidationError | None:
    """Check an agent file for the frontmatter fields agents require."""
    frontmatter = parse_frontmatter(content).frontmatter
    errors = []

    if not frontmatter:
        errors.append("Missing frontmatter (must have --- delimiters)")
    else:
        for name in REQUIRED_AGENT_FIELDS:
            if not frontmatter.get(name):
                errors.append(f"Missing required field: {name}")

    return AgentValidationError(agent_path=agent_path, errors=errors) if errors else None


def compute_agents_hash(agents: list[Agent]) -> str:
    return hash_files([(a.relative_path, a.body) for a in agents])


def add_agent_metadata(agent: Agent, metadata_prefix: str = DEFAULT_PREFIX) -> str:
    return add_managed_metadata(agent.raw_content, metadata_prefix)
