"""Managed metadata — the engine's bookkeeping keys inside file frontmatter.

Every skill, rule and agent file the engine writes carries, under the
``metadata`` mapping of its frontmatter::

    metadata:
      agconf_managed: "true"
      agconf_content_hash: "sha256:1a2b3c4d5e6f"

The content hash is computed over the file with these keys removed, so a
file can be re-hashed at any time to tell whether someone edited it. Source
and sync time are deliberately absent; they live in the lockfile, which keeps
re-syncs of unchanged content byte-identical.
"""

from __future__ import annotations

from dataclasses import dataclass

from agconf.config import DEFAULT_PREFIX, to_metadata_prefix
from agconf.content.frontmatter import Frontmatter, parse_frontmatter, wrap_frontmatter
from agconf.content.hashing import hash_content

METADATA_KEY = "metadata"


@dataclass(frozen=True)
class MetadataKeys:
    """Key names for one prefix, e.g. ``agconf_managed``."""

    prefix: str
    managed: str
    content_hash: str
    source_path: str


def metadata_keys(prefix: str = DEFAULT_PREFIX) -> MetadataKeys:
    key_prefix = to_metadata_prefix(prefix)
    return MetadataKeys(
        prefix=f"{key_prefix}_",
        managed=f"{key_prefix}_managed",
        content_hash=f"{key_prefix}_content_hash",
        source_path=f"{key_prefix}_source_path",
    )


def _metadata_of(frontmatter: Frontmatter | None) -> dict[str, str] | None:
    if not frontmatter:
        return None
    metadata = frontmatter.get(METADATA_KEY)
    return metadata if isinstance(metadata, dict) else None


def strip_managed_metadata(content: str, metadata_prefix: str = DEFAULT_PREFIX) -> str:
    """Remove the engine's keys from ``content``.

    Other metadata entries are kept. A ``metadata`` mapping left empty is
    dropped, and a document whose frontmatter ends up empty is reduced to its
    body, so content that started without frontmatter hashes the same before
    and after metadata injection.
    """
    parsed = parse_frontmatter(content)
    if parsed.frontmatter is None:
        return content

    frontmatter = dict(parsed.frontmatter)
    metadata = _metadata_of(frontmatter)
    if metadata is not None:
        key_prefix = metadata_keys(metadata_prefix).prefix
        cleaned = {k: v for k, v in metadata.items() if not k.startswith(key_prefix)}
        if cleaned:
            frontmatter[METADATA_KEY] = cleaned
        else:
            del frontmatter[METADATA_KEY]

    if not frontmatter:
        return parsed.body

    return wrap_frontmatter(frontmatter, parsed.body)


def compute_content_hash(content: str, metadata_prefix: str = DEFAULT_PREFIX) -> str:
    """Fingerprint the meaningful part of a file (managed keys excluded)."""
    return hash_content(strip_managed_metadata(content, metadata_prefix))


def add_managed_metadata(
    content: str,
    metadata_prefix: str = DEFAULT_PREFIX,
    source_path: str | None = None,
) -> str:
    """Mark ``content`` as managed and embed its content hash.

    Pure: the same input always produces the same output, and feeding the
    output back in yields it unchanged.
    """
    parsed = parse_frontmatter(content)
    frontmatter: Frontmatter = dict(parsed.frontmatter or {})
    keys = metadata_keys(metadata_prefix)

    content_hash = compute_content_hash(content, metadata_prefix)

    metadata = _metadata_of(frontmatter)
    metadata = dict(metadata) if metadata is not None else {}
    metadata[keys.managed] = "true"
    metadata[keys.content_hash] = content_hash
    if source_path is not None:
        metadata[keys.source_path] = source_path
    frontmatter[METADATA_KEY] = metadata

    return wrap_frontmatter(frontmatter, parsed.body)


def get_managed_metadata(content: str, metadata_prefix: str = DEFAULT_PREFIX) -> dict[str, str]:
    """Return the engine's own metadata entries found in ``content``."""
    metadata = _metadata_of(parse_frontmatter(content).frontmatter) or {}
    key_prefix = metadata_keys(metadata_prefix).prefix
    return {k: v for k, v in metadata.items() if k.startswith(key_prefix)}


def get_stored_hash(content: str, metadata_prefix: str = DEFAULT_PREFIX) -> str | None:
    metadata = _metadata_of(parse_frontmatter(content).frontmatter) or {}
    return metadata.get(metadata_keys(metadata_prefix).content_hash) or None


def is_managed(content: str, metadata_prefix: str = DEFAULT_PREFIX) -> bool:
    """Whether ``content`` was written by the engine under this prefix."""
    metadata = _metadata_of(parse_frontmatter(content).frontmatter)
    if metadata is None:
        return False
    return metadata.get(metadata_keys(metadata_prefix).managed) == "true"


def has_manual_changes(content: str, metadata_prefix: str = DEFAULT_PREFIX) -> bool:
    """Whether a managed file no longer matches the hash it was written with.

    Files that are not managed, or carry no hash, report no changes.
    """
    if not is_managed(content, metadata_prefix):
        return False

    stored_hash = get_stored_hash(content, metadata_prefix)
    if not stored_hash:
        return False

    return stored_hash != compute_content_hash(content, metadata_prefix)
