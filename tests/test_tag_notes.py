"""Tests for note-level add_tags and remove_tags."""

import pytest

from vault_keeper.core import tag_operations
from vault_keeper.core.tag_operations import add_tags, remove_tags
from vault_keeper.errors import BatchOperationFailed, InvalidTag


@pytest.fixture
def tagged_vault(vault):
    (vault.path / "a.md").write_text("---\ntitle: A\n---\nBody\n")
    (vault.path / "plain.md").write_text("Body")
    (vault.path / "tagged.md").write_text("---\ntags:\n- a\n- a/b\n- c\n---\nText #a and #c\n")
    return vault


class TestAddTags:
    """Test suite for add_tags."""

    @pytest.mark.anyio
    async def test_adds_to_frontmatter_and_body(self, tagged_vault):
        report = await add_tags(tagged_vault, ["a.md"], ["Project"])

        assert (tagged_vault.path / "a.md").read_text() == "---\ntitle: A\ntags:\n- project\n---\nBody\n\n#project"
        payload = report.as_payload()
        assert payload["success"] is True
        assert payload["updated"] == ["a.md"]
        assert payload["details"]["a.md"]["added"] == [
            {"tag": "project", "location": "frontmatter"},
            {"tag": "project", "location": "content"},
        ]

    @pytest.mark.anyio
    async def test_frontmatter_only_creates_block(self, tagged_vault):
        await add_tags(tagged_vault, ["plain"], ["x"], location="frontmatter")
        assert (tagged_vault.path / "plain.md").read_text() == "---\ntags:\n- x\n---\nBody"

    @pytest.mark.anyio
    async def test_missing_note_is_reported_without_stopping_others(self, tagged_vault):
        report = await add_tags(tagged_vault, ["missing.md", "plain.md"], ["x"], location="content")

        assert report.success == ["plain.md"]
        assert [item.file_path for item in report.errors] == ["missing.md"]
        assert report.as_payload()["success"] is False
        assert (tagged_vault.path / "plain.md").read_text() == "Body\n\n#x"

    @pytest.mark.anyio
    async def test_unexpected_error_is_reported_without_stopping_others(self, tagged_vault, monkeypatch):
        real_write = tag_operations.write_with_rollback

        async def flaky_write(path, content):
            if path.name == "a.md":
                raise RuntimeError("disk went away")
            await real_write(path, content)

        monkeypatch.setattr(tag_operations, "write_with_rollback", flaky_write)

        report = await add_tags(tagged_vault, ["a.md", "plain.md"], ["x"], location="content")

        assert report.success == ["plain.md"]
        assert [(item.file_path, item.error) for item in report.errors] == [("a.md", "disk went away")]
        assert (tagged_vault.path / "a.md").read_text() == "---\ntitle: A\n---\nBody\n"

    @pytest.mark.anyio
    async def test_all_notes_failing_raises(self, tagged_vault):
        with pytest.raises(BatchOperationFailed) as excinfo:
            await add_tags(tagged_vault, ["missing.md"], ["x"])
        assert len(excinfo.value.report.errors) == 1

    @pytest.mark.anyio
    async def test_invalid_tag_changes_nothing(self, tagged_vault):
        with pytest.raises(InvalidTag):
            await add_tags(tagged_vault, ["a.md"], ["bad tag"])
        assert (tagged_vault.path / "a.md").read_text() == "---\ntitle: A\n---\nBody\n"


class TestRemoveTags:
    """Test suite for remove_tags."""

    @pytest.mark.anyio
    async def test_removes_parent_and_children_everywhere(self, tagged_vault):
        report = await remove_tags(tagged_vault, ["tagged.md"], ["a"])

        assert (tagged_vault.path / "tagged.md").read_text() == "---\ntags:\n- c\n---\nText  and #c\n"
        removed = report.as_payload()["details"]["tagged.md"]["removed"]
        assert {"tag": "a/b", "location": "frontmatter"} in removed
        assert report.success == ["tagged.md"]

    @pytest.mark.anyio
    async def test_pattern_removal_from_frontmatter_only(self, tagged_vault):
        await remove_tags(tagged_vault, ["tagged.md"], [], location="frontmatter", patterns=["a/*"])
        assert (tagged_vault.path / "tagged.md").read_text() == "---\ntags:\n- a\n- c\n---\nText #a and #c\n"

    @pytest.mark.anyio
    async def test_nothing_to_remove_leaves_file_alone(self, tagged_vault):
        report = await remove_tags(tagged_vault, ["a.md"], ["zzz"])

        assert report.success == []
        assert report.errors == []
        assert (tagged_vault.path / "a.md").read_text() == "---\ntitle: A\n---\nBody\n"

    @pytest.mark.anyio
    async def test_recursive_frontmatter_is_reported_without_stopping_others(self, tagged_vault):
        (tagged_vault.path / "loop.md").write_text("---\na: &x [*x]\n---\nText #a\n")

        report = await remove_tags(tagged_vault, ["loop.md", "tagged.md"], ["a"])

        assert [item.file_path for item in report.errors] == ["loop.md"]
        assert report.success == ["tagged.md"]
        assert (tagged_vault.path / "loop.md").read_text() == "---\na: &x [*x]\n---\nText #a\n"
