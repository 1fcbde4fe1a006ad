"""Tests for the frontmatter codec."""

from agconf.content.frontmatter import (
    needs_quoting,
    parse_frontmatter,
    serialize_frontmatter,
    wrap_frontmatter,
)


# --- Parsing ---


def test_parse_scalars_and_body():
    parsed = parse_frontmatter("---\nname: test\ndescription: A skill\n---\n# Body\n")
    assert parsed.frontmatter == {"name": "test", "description": "A skill"}
    assert parsed.body == "# Body\n"
    assert parsed.raw == "name: test\ndescription: A skill"


def test_no_frontmatter_returns_content_as_body():
    content = "# Just markdown\n\nNo header here.\n"
    parsed = parse_frontmatter(content)
    assert parsed.frontmatter is None
    assert not parsed.has_frontmatter
    assert parsed.body == content


def test_empty_header_is_no_frontmatter():
    content = "---\n\n---\nbody"
    parsed = parse_frontmatter(content)
    assert parsed.frontmatter is None
    assert parsed.body == content


def test_delimiters_later_in_document_are_ignored():
    content = "# Title\n---\nname: x\n---\n"
    assert parse_frontmatter(content).frontmatter is None


def test_quotes_are_stripped():
    parsed = parse_frontmatter("---\nname: \"hello\"\nother: 'world'\n---\n")
    assert parsed.frontmatter == {"name": "hello", "other": "world"}


def test_block_sequence():
    parsed = parse_frontmatter('---\ntools:\n  - Read\n  - "Write"\nname: x\n---\n')
    assert parsed.frontmatter == {"tools": ["Read", "Write"], "name": "x"}


def test_nested_mapping():
    content = '---\nname: x\nmetadata:\n  agconf_managed: "true"\n  author: me\n---\nbody'
    parsed = parse_frontmatter(content)
    assert parsed.frontmatter["metadata"] == {"agconf_managed": "true", "author": "me"}
    assert parsed.body == "body"


def test_bare_key_becomes_empty_mapping():
    parsed = parse_frontmatter("---\nname: x\nempty:\ndescription: y\n---\n")
    assert parsed.frontmatter == {"name": "x", "empty": {}, "description": "y"}


def test_inline_json_array():
    parsed = parse_frontmatter('---\npaths: ["src/**", "lib/*.py"]\n---\n')
    assert parsed.frontmatter["paths"] == ["src/**", "lib/*.py"]


def test_invalid_inline_array_falls_back_to_string():
    parsed = parse_frontmatter("---\npaths: [a, b]\n---\n")
    assert parsed.frontmatter["paths"] == "[a, b]"


def test_crlf_header_keeps_only_last_key():
    parsed = parse_frontmatter("---\r\nname: a\r\ndescription: b\r\n---\r\nbody")
    assert parsed.frontmatter == {"description": "b"}
    assert parsed.body == "body"


def test_crlf_block_sequence_survives():
    parsed = parse_frontmatter("---\r\ntools:\r\n  - Read\r\n  - Write\r\n---\r\n")
    assert parsed.frontmatter == {"tools": ["Read", "Write"]}


# --- Quoting ---


def test_needs_quoting():
    assert needs_quoting("a:b")
    assert needs_quoting("#tag")
    assert needs_quoting("@AGENTS.md")
    assert needs_quoting("true")
    assert needs_quoting("FALSE")
    assert needs_quoting("123")
    assert not needs_quoting("hello world")
    assert not needs_quoting("v1.2")
    assert not needs_quoting("")


# --- Serialization ---


def test_serialize_scalars_and_lists():
    text = serialize_frontmatter({"name": "test", "tools": ["Read"]})
    assert text == 'name: test\ntools:\n  - "Read"'


def test_serialize_quotes_ambiguous_scalars():
    text = serialize_frontmatter({"version": "123", "enabled": True, "ref": "a:b"})
    assert text == 'version: "123"\nenabled: "true"\nref: "a:b"'


def test_serialize_skips_none():
    assert serialize_frontmatter({"name": "x", "gone": None}) == "name: x"


def test_serialize_nested_mapping():
    text = serialize_frontmatter({"metadata": {"agconf_managed": "true", "author": "me"}})
    assert text == 'metadata:\n  agconf_managed: "true"\n  author: me'


def test_wrap_then_parse_round_trip():
    frontmatter = {
        "name": "my-skill",
        "description": "Does: things",
        "tools": ["Read", "Write"],
        "metadata": {
            "agconf_managed": "true",
            "agconf_content_hash": "sha256:0123456789ab",
        },
    }
    content = wrap_frontmatter(frontmatter, "# Body\n")
    parsed = parse_frontmatter(content)
    assert parsed.frontmatter == frontmatter
    assert parsed.body == "# Body\n"
