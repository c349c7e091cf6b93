"""MCP tool definitions for vault operations.

Each tool module exposes ``register(mcp, registry)``, which attaches its
tools to a FastMCP server. ``register_all`` is called by the server
composition root.
"""

from mcp.server.fastmcp import FastMCP

from vault_keeper.data_models import VaultRegistry
from vault_keeper.tools import note_tools, search_tools, tag_tools, vault_tools

TOOL_MODULES = (vault_tools, note_tools, tag_tools, search_tools)


def register_all(mcp: FastMCP, registry: VaultRegistry) -> None:
    for module in TOOL_MODULES:
        module.register(mcp, registry)


__all__ = [
    "vault_tools",
    "note_tools",
    "tag_tools",
    "search_tools",
    "register_all",
]
