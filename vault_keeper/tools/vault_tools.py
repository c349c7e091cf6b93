"""MCP tools for vault management."""
from __future__ import annotations

from typing import Any

from mcp.server.fastmcp import Context, FastMCP

from vault_keeper.core.note_operations import list_notes
from vault_keeper.data_models import VaultRegistry
from vault_keeper.models import ListNotesInput, ListVaultsInput


def register(mcp: FastMCP, registry: VaultRegistry) -> None:
    """Register the vault tools on ``mcp``."""

    @mcp.tool(name="list-available-vaults")
    async def list_vaults_tool(
        input: ListVaultsInput,
        ctx: Context | None = None,
    ) -> dict[str, Any]:
        """List configured vaults.

        Primary entry point for vault discovery. The ``exists`` flag is
        re-checked on every call.

        Returns:
            {
                "default": str,
                "vaults": [
                    {"name": str, "path": str, "description": str, "exists": bool}
                ]
            }
        """
        return registry.as_payload()

    @mcp.tool(name="list-notes")
    async def list_notes_tool(
        input: ListNotesInput,
        ctx: Context | None = None,
    ) -> dict[str, Any]:
        """List every note in a vault.

        Returns note identifiers sorted alphabetically, or metadata entries
        (modified, created, size, path) sorted by most recent modification when
        ``include_metadata`` is set.
        """
        vault = registry.resolve(input.vault)
        return await list_notes(vault, include_metadata=input.include_metadata)
