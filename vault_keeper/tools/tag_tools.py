"""Tag management MCP tools."""
from __future__ import annotations

import logging
from typing import Any

from mcp.server.fastmcp import Context, FastMCP

from vault_keeper.core.rename_operations import rename_tag
from vault_keeper.core.tag_operations import add_tags, remove_tags
from vault_keeper.data_models import VaultRegistry
from vault_keeper.models import AddTagsInput, ManageTagsInput, RemoveTagsInput, RenameTagInput

logger = logging.getLogger(__name__)


def register(mcp: FastMCP, registry: VaultRegistry) -> None:
    """Register the tag tools on ``mcp``."""

    @mcp.tool(name="add-tags")
    async def add_tags_tool(
        input: AddTagsInput,
        ctx: Context | None = None,
    ) -> dict[str, Any]:
        """Add tags to one or more notes, in frontmatter, inline or both.

        Tags are validated before any note is touched. Each note is processed
        independently: a failure on one note is reported in ``errors`` and does
        not stop the others.

        Returns:
            {"operation": "add", "success": bool, "message": str,
             "updated": [str], "errors": [{"file", "error"}], "details": {...}}

        Error Handling:
            - InvalidTag: A tag is not a valid (hierarchical) tag
            - BatchOperationFailed: No note could be updated
        """
        vault = registry.resolve(input.vault)
        report = await add_tags(
            vault,
            input.files,
            input.tags,
            location=input.location,
            normalize=input.normalize,
            position=input.position,
        )
        return report.as_payload()

    @mcp.tool(name="remove-tags")
    async def remove_tags_tool(
        input: RemoveTagsInput,
        ctx: Context | None = None,
    ) -> dict[str, Any]:
        """Remove tags (or tags matching wildcard patterns) from notes.

        Removing a parent tag also removes its children unless
        ``preserve_children`` is set. Tags inside code blocks and HTML comments
        are never touched and are listed as preserved.
        """
        vault = registry.resolve(input.vault)
        report = await remove_tags(
            vault,
            input.files,
            input.tags,
            location=input.location,
            normalize=input.normalize,
            preserve_children=input.preserve_children,
            patterns=input.patterns,
        )
        return report.as_payload()

    @mcp.tool(name="manage-tags")
    async def manage_tags_tool(
        input: ManageTagsInput,
        ctx: Context | None = None,
    ) -> dict[str, Any]:
        """Add or remove tags on notes with a single tool."""
        vault = registry.resolve(input.vault)
        if input.operation == "add":
            report = await add_tags(
                vault, input.files, input.tags, location=input.location, normalize=input.normalize
            )
        else:
            report = await remove_tags(
                vault, input.files, input.tags, location=input.location, normalize=input.normalize
            )
        return report.as_payload()

    @mcp.tool(name="rename-tag")
    async def rename_tag_tool(
        input: RenameTagInput,
        ctx: Context | None = None,
    ) -> dict[str, Any]:
        """Rename a tag across every note in the vault.

        Frontmatter tags and inline tags are both renamed, including child
        tags (``project/alpha`` follows ``project``). Saved searches in
        ``.obsidian/search.json`` are updated. By default affected notes are
        snapshotted into ``.backup`` first.

        Args:
            input (RenameTagInput): Validated input containing:
                - old_tag (str): Tag to rename
                - new_tag (str): Replacement tag
                - create_backup (bool): Snapshot notes first (default: true)
                - normalize (bool): Normalize tags before matching (default: true)
                - batch_size (int, optional): Notes processed concurrently
                - vault (str, optional): Vault name

        Returns:
            {"success": bool, "message": str, "old_tag": str, "new_tag": str,
             "successful": [...], "failed": [...], "timestamp": str,
             "backup": str | None, "saved_searches_updated": bool}

        Error Handling:
            - InvalidTag: Either tag is invalid; nothing is changed
            - BatchOperationFailed: Every affected note failed
        """
        vault = registry.resolve(input.vault)
        batch_size = input.batch_size or registry.settings.batch_size
        logger.info(
            "Renaming tag '%s' to '%s' in vault '%s' (batch size %d)",
            input.old_tag,
            input.new_tag,
            vault.name,
            batch_size,
        )
        report = await rename_tag(
            vault,
            input.old_tag,
            input.new_tag,
            create_backup=input.create_backup,
            normalize=input.normalize,
            batch_size=batch_size,
        )
        return report.as_payload()
