"""Note management MCP tools.

This module provides MCP tool wrappers for note CRUD operations:
- Read note content
- Create new notes
- Edit notes (append, prepend, replace, delete)
- Move/rename notes, within or across vaults
- Delete notes (trash or permanent)
- Create directories

All tools delegate to core operations in vault_keeper.core.
"""
from __future__ import annotations

from typing import Any

from mcp.server.fastmcp import Context, FastMCP

from vault_keeper.core.edit_operations import edit_note
from vault_keeper.core.note_operations import (
    create_directory,
    create_note,
    delete_note,
    move_note,
    read_note,
)
from vault_keeper.data_models import VaultRegistry
from vault_keeper.models import (
    CreateDirectoryInput,
    CreateNoteInput,
    DeleteNoteInput,
    EditNoteInput,
    MoveNoteInput,
    ReadNoteInput,
)


def register(mcp: FastMCP, registry: VaultRegistry) -> None:
    """Register the note tools on ``mcp``, resolving vaults through ``registry``."""

    # ==========================================================================
    # READ OPERATIONS
    # ==========================================================================

    @mcp.tool(name="read-note")
    async def read_note_tool(
        input: ReadNoteInput,
        ctx: Context | None = None,
    ) -> dict[str, Any]:
        """Read the complete markdown content of a note.

        Args:
            input (ReadNoteInput): Validated input containing:
                - path (str): Note path relative to the vault root (.md optional)
                - vault (str, optional): Vault name (omit to use the default vault)

        Returns:
            {"vault": str, "note": str, "path": str, "content": str}

        Error Handling:
            - ValidationError: Empty path, absolute path or '..' segments
            - NoteNotFound: The note does not exist
            - PathOutsideVault: The path resolves outside the vault
        """
        vault = registry.resolve(input.vault)
        return await read_note(vault, input.path)

    # ==========================================================================
    # CREATE OPERATIONS
    # ==========================================================================

    @mcp.tool(name="create-note")
    async def create_note_tool(
        input: CreateNoteInput,
        ctx: Context | None = None,
    ) -> dict[str, Any]:
        """Create a new note with markdown content (fails if it exists).

        Parent folders are created automatically.

        Returns:
            {"vault": str, "note": str, "path": str, "status": "created"}

        Error Handling:
            - NoteAlreadyExists: A note already exists at the path
        """
        vault = registry.resolve(input.vault)
        return await create_note(vault, input.path, input.content)

    @mcp.tool(name="create-directory")
    async def create_directory_tool(
        input: CreateDirectoryInput,
        ctx: Context | None = None,
    ) -> dict[str, Any]:
        """Create a folder (and any missing parents) inside the vault."""
        vault = registry.resolve(input.vault)
        return await create_directory(vault, input.path)

    # ==========================================================================
    # UPDATE OPERATIONS
    # ==========================================================================

    @mcp.tool(name="edit-note")
    async def edit_note_tool(
        input: EditNoteInput,
        ctx: Context | None = None,
    ) -> dict[str, Any]:
        """Append, prepend, replace or delete a note, with automatic rollback.

        A backup of the note is taken before writing. If the write fails the
        original content is restored before the error is reported.

        Args:
            input (EditNoteInput): Validated input containing:
                - path (str): Note path relative to the vault root
                - operation (str): "append", "prepend", "replace" or "delete"
                - content (str, optional): Required except for "delete"
                - vault (str, optional): Vault name

        Returns:
            {"vault": str, "note": str, "path": str, "status": str}
            Delete also returns "backup", the short-lived backup file.

        Examples:
            - Use when: Adding a log entry to the end of a note (append)
            - Use when: Rewriting a note completely (replace)
            - Don't use: Moving files to the trash → Use delete-note

        Error Handling:
            - NoteNotFound: The note does not exist
            - FileSystemFailure: The write failed; the note is unchanged
            - RollbackFailure: The write and the restore both failed; the backup is kept
        """
        vault = registry.resolve(input.vault)
        return await edit_note(
            vault,
            input.path,
            input.operation,
            input.content,
            backup_retention=registry.settings.delete_backup_retention,
        )

    @mcp.tool(name="move-note")
    async def move_note_tool(
        input: MoveNoteInput,
        ctx: Context | None = None,
    ) -> dict[str, Any]:
        """Move or rename a note and update links pointing to it.

        Within one vault, ``[[Old]]`` links become ``[[New]]`` (aliases kept).
        With ``destination_vault``, links left behind become obsidian:// links
        into the destination vault, annotated with where the note went.

        Returns:
            {"vault": str, "destination_vault": str, "old_path": str,
             "new_path": str, "links_updated": int, "status": "moved"}
        """
        vault = registry.resolve(input.vault)
        destination_vault = registry.get(input.destination_vault) if input.destination_vault else None
        return await move_note(vault, input.source, input.destination, destination_vault)

    # ==========================================================================
    # DELETE OPERATIONS
    # ==========================================================================

    @mcp.tool(name="delete-note")
    async def delete_note_tool(
        input: DeleteNoteInput,
        ctx: Context | None = None,
    ) -> dict[str, Any]:
        """Delete a note and strike through links to it.

        By default the note is moved to ``.trash`` with deletion metadata.
        With ``permanent`` it is removed outright.

        Returns:
            {"vault": str, "note": str, "path": str, "status": "trashed" | "deleted",
             "trash_path" | "backup": str, "links_updated": int}
        """
        vault = registry.resolve(input.vault)
        return await delete_note(
            vault,
            input.path,
            permanent=input.permanent,
            reason=input.reason,
            backup_retention=registry.settings.delete_backup_retention,
        )
