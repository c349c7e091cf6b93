"""Search MCP tools."""
from __future__ import annotations

from typing import Any

from mcp.server.fastmcp import Context, FastMCP

from vault_keeper.core.search_operations import search_vault
from vault_keeper.data_models import VaultRegistry
from vault_keeper.models import SearchVaultInput


def register(mcp: FastMCP, registry: VaultRegistry) -> None:
    """Register the search tools on ``mcp``."""

    @mcp.tool(name="search-vault")
    async def search_vault_tool(
        input: SearchVaultInput,
        ctx: Context | None = None,
    ) -> dict[str, Any]:
        """Search note contents and/or file names in a vault.

        Args:
            input (SearchVaultInput): Validated input containing:
                - query (str): Text, or "tag:<tag>" to match inline tags
                  ("*" wildcards allowed: "tag:status/*")
                - path (str, optional): Folder to limit the search to
                - case_sensitive (bool): Default false
                - search_type (str): "content", "filename" or "both"
                - vault (str, optional): Vault name

        Returns:
            {
                "vault": str,
                "query": str,
                "search_type": str,
                "results": [{"file": str, "matches": [{"line": int, "text": str}]}],
                "total_matches": int
            }
            Filename matches are reported at line 0.

        Examples:
            - Use when: Finding which notes mention a topic
            - Use when: Listing notes carrying a tag → query "tag:project/alpha"
            - Workflow: search-vault → read-note
        """
        vault = registry.resolve(input.vault)
        return await search_vault(
            vault,
            input.query,
            path=input.path,
            case_sensitive=input.case_sensitive,
            search_type=input.search_type,
        )
