"""Module-level constants for the vault keeper."""

import os
from pathlib import Path

# Configuration
CONFIG_ENV_VAR = "VAULT_KEEPER_CONFIG"
CONFIG_PATH = Path(os.environ.get(CONFIG_ENV_VAR, Path(__file__).parent.parent / "vaults.yaml"))

# Vault layout
CONFIG_DIR_NAME = ".obsidian"
BACKUP_DIR_NAME = ".backup"
TRASH_DIR_NAME = ".trash"
SAVED_SEARCH_PATH = Path(CONFIG_DIR_NAME) / "search.json"
NOTE_SUFFIX = ".md"

# Batch tag renames
DEFAULT_BATCH_SIZE = 50
MAX_BATCH_SIZE = 100

# Backups of deleted notes are kept this long (seconds) before being purged
DELETE_BACKUP_RETENTION = 300.0

# Network mount probe
NETWORK_PROBE_TIMEOUT = 2.0

# Logging
LOG_LEVEL = "INFO"
