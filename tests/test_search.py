"""Tests for vault search."""

import pytest

from vault_keeper.core.search_operations import search_vault
from vault_keeper.errors import PathOutsideVault


@pytest.fixture
def search_vault_fixture(vault):
    (vault.path / "Meeting Notes.md").write_text("Agenda\nDiscuss the Budget\n")
    (vault.path / "projects").mkdir()
    (vault.path / "projects" / "alpha.md").write_text("Working on #status/active\nbudget review\n")
    (vault.path / "projects" / "beta.md").write_text("#status\n```\n#status/active\n```\n")
    (vault.path / "broken.md").write_bytes(b"\xff\xfe budget")
    return vault


class TestSearchVault:
    """Test suite for search_vault."""

    @pytest.mark.anyio
    async def test_content_search_is_case_insensitive_by_default(self, search_vault_fixture):
        result = await search_vault(search_vault_fixture, "budget")

        assert result["total_matches"] == 2
        assert {entry["file"] for entry in result["results"]} == {"Meeting Notes.md", "projects/alpha.md"}

    @pytest.mark.anyio
    async def test_case_sensitive(self, search_vault_fixture):
        result = await search_vault(search_vault_fixture, "Budget", case_sensitive=True)

        assert result["results"] == [
            {"file": "Meeting Notes.md", "matches": [{"line": 2, "text": "Discuss the Budget"}]}
        ]

    @pytest.mark.anyio
    async def test_filename_search(self, search_vault_fixture):
        result = await search_vault(search_vault_fixture, "meeting", search_type="filename")

        assert result["results"] == [
            {"file": "Meeting Notes.md", "matches": [{"line": 0, "text": "Filename match: Meeting Notes.md"}]}
        ]

    @pytest.mark.anyio
    async def test_filename_and_content_matches_are_merged(self, search_vault_fixture):
        (search_vault_fixture.path / "roadmap.md").write_text("The roadmap for Q3\n")

        result = await search_vault(search_vault_fixture, "roadmap", search_type="both")

        assert result["results"] == [
            {
                "file": "roadmap.md",
                "matches": [
                    {"line": 0, "text": "Filename match: roadmap.md"},
                    {"line": 1, "text": "The roadmap for Q3"},
                ],
            }
        ]
        assert result["total_matches"] == 2

    @pytest.mark.anyio
    async def test_tag_query_with_wildcard_ignores_code_blocks(self, search_vault_fixture):
        result = await search_vault(search_vault_fixture, "tag:status/*")

        assert result["results"] == [
            {"file": "projects/alpha.md", "matches": [{"line": 1, "text": "Working on #status/active"}]}
        ]

    @pytest.mark.anyio
    async def test_exact_tag_query(self, search_vault_fixture):
        result = await search_vault(search_vault_fixture, "tag:status")
        assert [entry["file"] for entry in result["results"]] == ["projects/beta.md"]

    @pytest.mark.anyio
    async def test_folder_scope(self, search_vault_fixture):
        result = await search_vault(search_vault_fixture, "budget", path="projects")
        assert [entry["file"] for entry in result["results"]] == ["projects/alpha.md"]

    @pytest.mark.anyio
    async def test_missing_folder(self, search_vault_fixture):
        with pytest.raises(FileNotFoundError):
            await search_vault(search_vault_fixture, "budget", path="nowhere")

    @pytest.mark.anyio
    async def test_folder_outside_vault(self, search_vault_fixture):
        with pytest.raises(PathOutsideVault):
            await search_vault(search_vault_fixture, "budget", path="../")

    @pytest.mark.anyio
    async def test_empty_query(self, search_vault_fixture):
        with pytest.raises(ValueError):
            await search_vault(search_vault_fixture, "")
