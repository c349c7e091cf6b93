"""Tests for tag primitives and frontmatter/inline tag mutations."""

import pytest

from vault_keeper.core.tag_operations import (
    add_inline_tags,
    add_tags_to_frontmatter,
    extract_tags,
    is_parent_tag,
    matches_tag_pattern,
    normalize_tag,
    related_tags,
    remove_inline_tags,
    remove_tags_from_frontmatter,
    rename_frontmatter_tags,
    rename_inline_tags,
    rename_tag_value,
    validate_tag,
)
from vault_keeper.errors import InvalidTag


class TestTagPrimitives:
    """Test suite for tag parsing, validation and hierarchy helpers."""

    def test_extract_tags_skips_code_and_comments(self):
        body = (
            "Intro #alpha and #beta/child\n"
            "```\n"
            "#code\n"
            "```\n"
            "<!--\n"
            "#hidden\n"
            "-->\n"
            "`#inline` text #gamma"
        )
        assert extract_tags(body) == {"alpha", "beta/child", "gamma"}

    def test_headings_are_not_tags(self):
        assert extract_tags("# Heading\n## Sub") == set()

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("#ProjectActive", "project-active"),
            ("work/InProgress", "work/in-progress"),
            ("simple", "simple"),
            ("HTMLParser", "htmlparser"),
        ],
    )
    def test_normalize_tag(self, raw, expected):
        assert normalize_tag(raw) == expected

    @pytest.mark.parametrize("raw", ["#ProjectActive", "a/BcDe", "x1Y2", "already-normal"])
    def test_normalize_tag_idempotent(self, raw):
        once = normalize_tag(raw)
        assert normalize_tag(once) == once

    def test_normalize_disabled_only_strips_hash(self):
        assert normalize_tag("#ProjectActive", normalize=False) == "ProjectActive"

    @pytest.mark.parametrize("tag", ["project", "#project/alpha", "a1/b2/c3"])
    def test_valid_tags(self, tag):
        assert validate_tag(tag) is True

    @pytest.mark.parametrize("tag", ["", "project/", "/x", "has-hyphen", "a b", "a//b"])
    def test_invalid_tags(self, tag):
        assert validate_tag(tag) is False

    def test_is_parent_tag(self):
        assert is_parent_tag("a", "a/b")
        assert not is_parent_tag("a", "ab")
        assert not is_parent_tag("a", "a")

    def test_matches_tag_pattern(self):
        assert matches_tag_pattern("status/*", "status/active")
        assert not matches_tag_pattern("status/*", "status")
        assert matches_tag_pattern("*/draft", "notes/draft")
        assert matches_tag_pattern("exact", "exact")
        assert not matches_tag_pattern("exact", "exactly")

    def test_related_tags(self):
        related = related_tags("a/b/c", ["a/b/c/d", "a/b/x", "a/b/c/e/f"])

        assert related.parents == ["a", "a/b"]
        assert related.children == ["a/b/c/d", "a/b/c/e/f"]


class TestAddTags:
    """Test suite for adding tags to frontmatter and body."""

    def test_frontmatter_union_is_sorted(self):
        original = {"title": "x", "tags": ["b"]}
        updated = add_tags_to_frontmatter(original, ["a", "B"])

        assert updated == {"title": "x", "tags": ["a", "b"]}
        assert original == {"title": "x", "tags": ["b"]}

    def test_invalid_tag_leaves_frontmatter_untouched(self):
        original = {"tags": ["b"]}
        with pytest.raises(InvalidTag):
            add_tags_to_frontmatter(original, ["ok", "bad tag"])
        assert original == {"tags": ["b"]}

    def test_inline_tags_appended(self):
        assert add_inline_tags("Body text\n", ["a", "b"]) == "Body text\n\n#a #b"

    def test_inline_tags_prepended(self):
        assert add_inline_tags("Body text\n", ["a"], position="start") == "#a\n\nBody text"

    def test_inline_tags_already_present_are_skipped(self):
        assert add_inline_tags("Body #a", ["a", "c"]) == "Body #a\n\n#c"
        assert add_inline_tags("Body #a", ["a"]) == "Body #a"


class TestRemoveTags:
    """Test suite for removing tags, including hierarchy and patterns."""

    def test_removing_parent_removes_children(self):
        updated, report = remove_tags_from_frontmatter({"tags": ["a", "a/b", "c"]}, ["a"])

        assert updated["tags"] == ["c"]
        assert [change.tag for change in report.removed] == ["a", "a/b"]

    def test_preserve_children(self):
        updated, _ = remove_tags_from_frontmatter({"tags": ["a", "a/b", "c"]}, ["a"], preserve_children=True)
        assert updated["tags"] == ["a/b", "c"]

    def test_removing_last_tag_drops_key(self):
        updated, _ = remove_tags_from_frontmatter({"title": "x", "tags": ["a"]}, ["a"])
        assert updated == {"title": "x"}

    def test_patterns(self):
        updated, _ = remove_tags_from_frontmatter(
            {"tags": ["status/active", "status/done", "other"]}, [], patterns=["status/*"]
        )
        assert updated["tags"] == ["other"]

    def test_inline_removal_preserves_code_and_collapses_blank_lines(self):
        body = "Keep #c here\nDrop #a now\n\n\n\nMore #a/b\n```\n#a in code\n```\n"

        updated, report = remove_inline_tags(body, ["a"])

        assert updated == "Keep #c here\nDrop  now\n\nMore\n```\n#a in code\n```\n"
        assert [(change.tag, change.line) for change in report.removed] == [("a", 2), ("a/b", 6)]
        assert ("a", 8) in [(change.tag, change.line) for change in report.preserved]

    def test_inline_removal_with_preserve_children(self):
        updated, _ = remove_inline_tags("#a #a/b", ["a"], preserve_children=True)
        assert updated == " #a/b"

    def test_inline_removal_noop_returns_body(self):
        body = "Nothing\n\n\n\nhere #x"
        updated, report = remove_inline_tags(body, ["a"])

        assert updated == body
        assert report.removed == []


class TestRenameTags:
    """Test suite for hierarchical tag renames."""

    def test_rename_tag_value(self):
        assert rename_tag_value("a", "a", "x") == "x"
        assert rename_tag_value("a/b", "a", "x") == "x/b"
        assert rename_tag_value("ab", "a", "x") is None
        assert rename_tag_value("A", "a", "x") == "x"

    def test_rename_frontmatter_tags(self):
        updated, changes = rename_frontmatter_tags({"tags": ["work", "work/active", "other"]}, "work", "projects")

        assert updated["tags"] == ["other", "projects", "projects/active"]
        assert changes == [("work", "projects"), ("work/active", "projects/active")]

    def test_rename_frontmatter_tags_without_match_is_unchanged(self):
        original = {"tags": ["Other", "b"]}
        updated, changes = rename_frontmatter_tags(original, "work", "projects")

        assert updated == original
        assert changes == []

    def test_rename_inline_tags(self):
        body = "See #work and #work/active\n```\n#work\n```\n#workshop"

        updated, changes = rename_inline_tags(body, "work", "projects")

        assert updated == "See #projects and #projects/active\n```\n#work\n```\n#workshop"
        assert changes == [("work", "projects", 1), ("work/active", "projects/active", 1)]
