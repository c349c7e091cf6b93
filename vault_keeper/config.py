"""Configuration loading and vault registry."""

import logging
from pathlib import Path
from typing import Any

import yaml

from vault_keeper.constants import (
    CONFIG_PATH,
    DEFAULT_BATCH_SIZE,
    DELETE_BACKUP_RETENTION,
    LOG_LEVEL,
    MAX_BATCH_SIZE,
    NETWORK_PROBE_TIMEOUT,
)
from vault_keeper.core import vault_operations
from vault_keeper.data_models import VaultKeeperSettings, VaultMetadata, VaultRegistry

logger = logging.getLogger(__name__)


def _load_settings(raw: Any) -> VaultKeeperSettings:
    """Validate the optional ``settings`` section.

    Raises:
        ValueError: If a setting has the wrong type or is out of range.
    """
    if raw is None:
        return VaultKeeperSettings()
    if not isinstance(raw, dict):
        raise ValueError("'settings' must be a mapping")

    unknown = set(raw) - {"batch_size", "network_probe_timeout", "delete_backup_retention", "log_level"}
    if unknown:
        raise ValueError(f"Unknown settings: {', '.join(sorted(unknown))}")

    batch_size = raw.get("batch_size", DEFAULT_BATCH_SIZE)
    if isinstance(batch_size, bool) or not isinstance(batch_size, int) or not 1 <= batch_size <= MAX_BATCH_SIZE:
        raise ValueError(f"'settings.batch_size' must be an integer between 1 and {MAX_BATCH_SIZE}")

    timeout = raw.get("network_probe_timeout", NETWORK_PROBE_TIMEOUT)
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
        raise ValueError("'settings.network_probe_timeout' must be a positive number of seconds")

    retention = raw.get("delete_backup_retention", DELETE_BACKUP_RETENTION)
    if isinstance(retention, bool) or not isinstance(retention, (int, float)) or retention < 0:
        raise ValueError("'settings.delete_backup_retention' must be a non-negative number of seconds")

    log_level = raw.get("log_level", LOG_LEVEL)
    if not isinstance(log_level, str) or not isinstance(logging.getLevelName(log_level.upper()), int):
        raise ValueError(f"'settings.log_level' is not a valid logging level: {log_level!r}")

    return VaultKeeperSettings(
        batch_size=batch_size,
        network_probe_timeout=float(timeout),
        delete_backup_retention=float(retention),
        log_level=log_level.upper(),
    )


def load_vault_registry(config_path: Path = CONFIG_PATH) -> VaultRegistry:
    """Load and validate the vault registry file.

    Args:
        config_path: Path to the YAML configuration file. Defaults to ``vaults.yaml``
            next to the package, or ``$VAULT_KEEPER_CONFIG``.

    Returns:
        A :class:`VaultRegistry` containing normalized vault metadata, the default
        vault name and settings.

    Raises:
        FileNotFoundError: If the configuration file is missing.
        ValueError: If the file exists but does not provide the expected structure
            (empty mapping, invalid entries, unknown default, bad settings).
    """
    if not config_path.exists():
        raise FileNotFoundError(f"Vault configuration file not found at {config_path}")

    raw_config = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    if not isinstance(raw_config, dict):
        raise ValueError("Vault configuration must be a mapping")

    vaults_section = raw_config.get("vaults")
    if not isinstance(vaults_section, dict) or not vaults_section:
        raise ValueError("Vault configuration must include a non-empty 'vaults' mapping")

    processed: dict[str, VaultMetadata] = {}
    for name, entry in vaults_section.items():
        if not isinstance(entry, dict):
            raise ValueError(f"Vault '{name}' must map to a dictionary of settings")

        raw_path = entry.get("path")
        if not isinstance(raw_path, str) or not raw_path.strip():
            raise ValueError(f"Vault '{name}' is missing a valid 'path' string")

        resolved_path = Path(raw_path).expanduser().resolve(strict=False)
        description = entry.get("description") or ""
        if not isinstance(description, str):
            raise ValueError(f"Vault '{name}' has a non-string 'description'")

        processed[str(name)] = VaultMetadata(
            name=str(name),
            path=resolved_path,
            description=description.strip(),
            exists=resolved_path.is_dir(),
        )

    default_vault = raw_config.get("default")
    if default_vault is None and len(processed) == 1:
        default_vault = next(iter(processed))
    if not isinstance(default_vault, str) or default_vault not in processed:
        raise ValueError("Vault configuration must specify a 'default' vault present in the mapping")

    return VaultRegistry(
        vaults=processed,
        default_vault=default_vault,
        settings=_load_settings(raw_config.get("settings")),
    )


async def build_vault_registry(config_path: Path = CONFIG_PATH) -> VaultRegistry:
    """Load the registry and validate every vault root.

    Vaults that do not exist yet are kept (and reported as missing) but are not
    probed; every root, existing or not, takes part in the overlap check.

    Raises:
        FileNotFoundError: If the configuration file is missing.
        ValueError: If the file is malformed.
        VaultConfigurationError: If a vault root is unsafe or two vaults overlap.
    """
    registry = load_vault_registry(config_path)
    vault_operations.check_no_overlap({name: vault.path for name, vault in registry.vaults.items()})

    for vault in registry.vaults.values():
        if not vault.exists:
            logger.warning("Vault '%s' does not exist at %s", vault.name, vault.path)
            continue
        await vault_operations.validate_vault_root(vault.path, registry.settings.network_probe_timeout)

    logger.info(
        "Loaded %d vault(s) from %s (default: %s)",
        len(registry.vaults),
        config_path,
        registry.default_vault,
    )
    return registry
