"""Tests for managed metadata injection, stripping and change detection."""

from agconf.content.frontmatter import parse_frontmatter
from agconf.content.hashing import hash_content
from agconf.content.metadata import (
    add_managed_metadata,
    compute_content_hash,
    get_managed_metadata,
    get_stored_hash,
    has_manual_changes,
    is_managed,
    metadata_keys,
    strip_managed_metadata,
)

SKILL = "---\nname: test-skill\ndescription: A test skill\n---\n# Test\n\nDo things.\n"


def test_metadata_keys_use_underscored_prefix():
    keys = metadata_keys("my-org")
    assert keys.managed == "my_org_managed"
    assert keys.content_hash == "my_org_content_hash"
    assert keys.source_path == "my_org_source_path"


def test_add_marks_content_managed():
    managed = add_managed_metadata(SKILL)
    assert is_managed(managed)
    assert not has_manual_changes(managed)

    frontmatter = parse_frontmatter(managed).frontmatter
    assert frontmatter["name"] == "test-skill"
    assert frontmatter["metadata"]["agconf_managed"] == "true"
    assert frontmatter["metadata"]["agconf_content_hash"].startswith("sha256:")


def test_add_is_idempotent():
    once = add_managed_metadata(SKILL)
    assert add_managed_metadata(once) == once


def test_hash_is_stable_across_injection():
    managed = add_managed_metadata(SKILL)
    assert get_stored_hash(managed) == compute_content_hash(SKILL)
    assert compute_content_hash(managed) == compute_content_hash(SKILL)


def test_content_without_frontmatter():
    content = "# Plain\n\nNo header.\n"
    managed = add_managed_metadata(content)
    assert is_managed(managed)
    assert strip_managed_metadata(managed) == content
    assert get_stored_hash(managed) == hash_content(content)
    assert not has_manual_changes(managed)


def test_strip_without_frontmatter_is_identity():
    content = "just text"
    assert strip_managed_metadata(content) == content


def test_strip_keeps_other_metadata():
    content = "---\nname: x\nmetadata:\n  author: me\n---\nbody\n"
    managed = add_managed_metadata(content)
    stripped = strip_managed_metadata(managed)
    assert parse_frontmatter(stripped).frontmatter == {"name": "x", "metadata": {"author": "me"}}


def test_body_edit_is_a_manual_change():
    managed = add_managed_metadata(SKILL)
    edited = managed.replace("Do things.", "Do other things.")
    assert has_manual_changes(edited)


def test_frontmatter_edit_is_a_manual_change():
    managed = add_managed_metadata(SKILL)
    edited = managed.replace("A test skill", "An edited skill")
    assert has_manual_changes(edited)


def test_unmanaged_content_has_no_manual_changes():
    assert not is_managed(SKILL)
    assert not has_manual_changes(SKILL)


def test_managed_without_hash_has_no_manual_changes():
    content = '---\nname: x\nmetadata:\n  agconf_managed: "true"\n---\nbody\n'
    assert is_managed(content)
    assert not has_manual_changes(content)


def test_other_prefix_is_not_managed():
    managed = add_managed_metadata(SKILL, "acme")
    assert is_managed(managed, "acme")
    assert not is_managed(managed, "agconf")
    assert not has_manual_changes(managed, "agconf")


def test_get_managed_metadata_only_returns_own_keys():
    content = "---\nname: x\nmetadata:\n  author: me\n---\nbody\n"
    managed = add_managed_metadata(content, source_path="security/auth.md")
    assert get_managed_metadata(managed) == {
        "agconf_managed": "true",
        "agconf_content_hash": compute_content_hash(content),
        "agconf_source_path": "security/auth.md",
    }
