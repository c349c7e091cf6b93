"""Data models for vault metadata, the vault registry and operation reports."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from vault_keeper.constants import (
    DEFAULT_BATCH_SIZE,
    DELETE_BACKUP_RETENTION,
    LOG_LEVEL,
    NETWORK_PROBE_TIMEOUT,
)
from vault_keeper.errors import UnknownVault


@dataclass(frozen=True)
class VaultMetadata:
    """Normalized metadata describing a vault."""

    name: str
    path: Path
    description: str = ""
    exists: bool = True

    def as_payload(self) -> dict[str, Any]:
        """Return a serializable payload representation."""
        return {
            "name": self.name,
            "path": str(self.path),
            "description": self.description,
            "exists": self.path.is_dir(),
        }


@dataclass(frozen=True)
class VaultKeeperSettings:
    """Tunables read from the ``settings`` section of the registry file."""

    batch_size: int = DEFAULT_BATCH_SIZE
    network_probe_timeout: float = NETWORK_PROBE_TIMEOUT
    delete_backup_retention: float = DELETE_BACKUP_RETENTION
    log_level: str = LOG_LEVEL


class VaultRegistry:
    """Holds vault metadata and default resolution helpers.

    Built once by the composition root and handed to every tool module, so no
    vault state lives at module level.
    """

    def __init__(
        self,
        vaults: dict[str, VaultMetadata],
        default_vault: Optional[str] = None,
        settings: Optional[VaultKeeperSettings] = None,
    ) -> None:
        self.vaults = vaults
        self.default_vault = default_vault
        self.settings = settings or VaultKeeperSettings()

    def get(self, name: str) -> VaultMetadata:
        """Get vault metadata by name.

        Raises:
            UnknownVault: If the vault name is not registered.
        """
        try:
            return self.vaults[name]
        except KeyError:
            raise UnknownVault(name, sorted(self.vaults)) from None

    def resolve(self, name: Optional[str]) -> VaultMetadata:
        """Resolve an optional vault name, falling back to the default vault."""
        if name:
            return self.get(name)
        if self.default_vault is None:
            raise UnknownVault("<none>", sorted(self.vaults))
        return self.get(self.default_vault)

    def as_payload(self) -> dict[str, Any]:
        """Return serializable registry payload."""
        return {
            "default": self.default_vault,
            "vaults": [vault.as_payload() for vault in self.vaults.values()],
        }


def utc_timestamp() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


def path_timestamp() -> str:
    """Current UTC time formatted for use in file and directory names."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S-%fZ")


@dataclass
class FailedItem:
    """A file that could not be processed by a batch operation."""

    file_path: str
    error: str

    def as_payload(self) -> dict[str, Any]:
        return {"file": self.file_path, "error": self.error}


@dataclass
class TagBatchReport:
    """Outcome of adding or removing tags across a list of notes."""

    operation: str
    success: list[str] = field(default_factory=list)
    errors: list[FailedItem] = field(default_factory=list)
    details: dict[str, dict[str, list[Any]]] = field(default_factory=dict)

    @property
    def message(self) -> str:
        parts = []
        if self.success:
            parts.append(f"Successfully processed tags in: {', '.join(self.success)}")
        else:
            parts.append("No notes were modified")
        if self.errors:
            parts.append(f"{len(self.errors)} file(s) failed")
        return ". ".join(parts)

    def as_payload(self) -> dict[str, Any]:
        return {
            "operation": self.operation,
            "success": not self.errors,
            "message": self.message,
            "updated": list(self.success),
            "errors": [item.as_payload() for item in self.errors],
            "details": {
                note: {key: [change.as_payload() for change in changes] for key, changes in entry.items()}
                for note, entry in self.details.items()
            },
        }


@dataclass
class TagRenameChange:
    """Old→new tag pairs applied to one location of one note."""

    file_path: str
    old_tags: list[str]
    new_tags: list[str]
    location: str
    line: Optional[int] = None

    def as_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "file": self.file_path,
            "location": self.location,
            "old_tags": list(self.old_tags),
            "new_tags": list(self.new_tags),
        }
        if self.line is not None:
            payload["line"] = self.line
        return payload


@dataclass
class RenameTagReport:
    """Outcome of a vault-wide tag rename."""

    old_tag: str
    new_tag: str
    successful: list[TagRenameChange] = field(default_factory=list)
    failed: list[FailedItem] = field(default_factory=list)
    timestamp: str = field(default_factory=utc_timestamp)
    backup_path: Optional[str] = None
    saved_searches_updated: bool = False

    @property
    def files_changed(self) -> list[str]:
        return sorted({change.file_path for change in self.successful})

    @property
    def message(self) -> str:
        parts = []
        if self.backup_path:
            parts.append(f"Created backup at: {self.backup_path}")
        parts.append(
            f"Renamed '{self.old_tag}' to '{self.new_tag}' in {len(self.successful)} "
            f"location(s) across {len(self.files_changed)} file(s)"
        )
        if self.failed:
            parts.append(f"{len(self.failed)} file(s) failed")
        return ". ".join(parts)

    def as_payload(self) -> dict[str, Any]:
        return {
            "success": not self.failed,
            "message": self.message,
            "old_tag": self.old_tag,
            "new_tag": self.new_tag,
            "successful": [change.as_payload() for change in self.successful],
            "failed": [item.as_payload() for item in self.failed],
            "timestamp": self.timestamp,
            "backup": self.backup_path,
            "saved_searches_updated": self.saved_searches_updated,
        }
