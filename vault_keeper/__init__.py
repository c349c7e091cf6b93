"""Vault keeper: an MCP server for safe edits to Obsidian-style markdown vaults.

Notes live in one or more registered vaults. Every path is checked for
containment, tags are kept consistent across frontmatter and inline
occurrences, links are rewritten on move and delete, and writes are backed
up and rolled back on failure.
"""

__version__ = "0.1.0"

from vault_keeper.data_models import VaultMetadata, VaultRegistry
from vault_keeper.errors import VaultError

__all__ = ["VaultMetadata", "VaultRegistry", "VaultError", "__version__"]
