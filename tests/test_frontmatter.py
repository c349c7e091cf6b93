"""Tests for the note frontmatter codec."""

from datetime import date

import pytest

from vault_keeper.core.frontmatter_operations import (
    get_frontmatter_tags,
    parse_note,
    split_frontmatter,
    stringify_note,
)
from vault_keeper.errors import InvalidFrontmatter


class TestParseNote:
    """Test suite for parse_note."""

    def test_splits_frontmatter_and_body(self):
        note = parse_note("---\ntitle: Hello\ntags: [a, b]\n---\n# Body\n")

        assert note.has_frontmatter is True
        assert note.frontmatter == {"title": "Hello", "tags": ["a", "b"]}
        assert note.body == "# Body\n"

    def test_note_without_frontmatter(self):
        note = parse_note("# Just a heading\n\nText")

        assert note.has_frontmatter is False
        assert note.frontmatter == {}
        assert note.body == "# Just a heading\n\nText"

    def test_dates_are_parsed(self):
        note = parse_note("---\ncreated: 2025-01-02\n---\n")
        assert note.frontmatter["created"] == date(2025, 1, 2)

    def test_empty_block_parses_to_empty_mapping(self):
        note = parse_note("---\n\n---\nBody")
        assert note.frontmatter == {}
        assert note.has_frontmatter is True

    def test_invalid_yaml_raises(self):
        with pytest.raises(InvalidFrontmatter):
            parse_note("---\ntitle: [unclosed\n---\nBody")

    def test_non_mapping_raises(self):
        with pytest.raises(InvalidFrontmatter):
            parse_note("---\n- a\n- b\n---\nBody")

    def test_unsupported_value_type_raises(self):
        with pytest.raises(InvalidFrontmatter, match="items"):
            parse_note("---\nitems: !!set {a, b}\n---\nBody")

    def test_recursive_alias_raises(self):
        with pytest.raises(InvalidFrontmatter, match="recursive"):
            parse_note("---\na: &x [*x]\n---\nBody")

    def test_shared_alias_is_allowed(self):
        note = parse_note("---\na: &x [1, 2]\nb: *x\n---\nBody")
        assert note.frontmatter == {"a": [1, 2], "b": [1, 2]}


class TestStringifyNote:
    """Test suite for stringify_note."""

    def test_unmodified_note_round_trips_exactly(self):
        text = "---\ntitle:   Hello   # a comment\ntags: [b, a]\n---\nBody\n"
        assert stringify_note(parse_note(text)) == text

    def test_note_without_frontmatter_round_trips(self):
        text = "Body only\n"
        assert stringify_note(parse_note(text)) == text

    def test_modified_frontmatter_keeps_key_order(self):
        note = parse_note("---\ntitle: Hello\ntags: [a, b]\n---\nBody\n")
        note.frontmatter["status"] = "done"

        assert stringify_note(note) == "---\ntitle: Hello\ntags:\n- a\n- b\nstatus: done\n---\nBody\n"

    def test_emptied_frontmatter_drops_block(self):
        note = parse_note("---\ntags: [a]\n---\nBody\n")
        note.frontmatter = {}

        assert stringify_note(note) == "Body\n"


class TestHelpers:
    """Test suite for split_frontmatter and get_frontmatter_tags."""

    def test_split_frontmatter_reassembles(self):
        text = "---\ntitle: x\n---\nBody\n"
        prefix, body = split_frontmatter(text)

        assert prefix == "---\ntitle: x\n---\n"
        assert body == "Body\n"
        assert prefix + body == text

    def test_split_without_frontmatter(self):
        assert split_frontmatter("Body") == ("", "Body")

    @pytest.mark.parametrize(
        "frontmatter, expected",
        [
            ({"tags": "a, b c"}, ["a", "b", "c"]),
            ({"tags": ["x", 2]}, ["x", "2"]),
            ({"tags": 5}, ["5"]),
            ({"tags": None}, []),
            ({}, []),
        ],
    )
    def test_get_frontmatter_tags(self, frontmatter, expected):
        assert get_frontmatter_tags(frontmatter) == expected
