"""FastMCP server initialization and tool registration."""

import logging
from pathlib import Path

import anyio
from mcp.server.fastmcp import FastMCP

from vault_keeper.config import build_vault_registry
from vault_keeper.constants import CONFIG_PATH, LOG_LEVEL
from vault_keeper.data_models import VaultRegistry
from vault_keeper.tools import register_all

logger = logging.getLogger(__name__)

SERVER_NAME = "vault_keeper"


def create_server(registry: VaultRegistry) -> FastMCP:
    """Build a FastMCP server whose tools resolve vaults through ``registry``."""
    mcp = FastMCP(SERVER_NAME)
    register_all(mcp, registry)
    return mcp


def run_server(config_path: Path = CONFIG_PATH) -> None:
    """Load the vault registry and start the MCP server with stdio transport."""
    logging.basicConfig(level=LOG_LEVEL)
    registry = anyio.run(build_vault_registry, config_path)
    logging.getLogger().setLevel(registry.settings.log_level)

    logger.info("Starting vault keeper MCP server with %d vault(s)", len(registry.vaults))
    create_server(registry).run(transport="stdio")


if __name__ == "__main__":
    run_server()
