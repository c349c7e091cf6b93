"""Exception hierarchy for vault operations.

Every error raised by the core derives from :class:`VaultError`, which carries a
human-readable message, a machine-readable :class:`ErrorCode`, and a ``details``
mapping so the tool layer can relay failures verbatim.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Optional


class ErrorCode(Enum):
    """Error codes for machine-readable error identification."""

    # General errors (0xxx)
    VAULT_ERROR = 1

    # Path errors (1xxx)
    PATH_OUTSIDE_VAULT = 1001
    INVALID_PATH = 1002

    # Note errors (2xxx)
    NOTE_NOT_FOUND = 2001
    NOTE_ALREADY_EXISTS = 2002
    INVALID_FRONTMATTER = 2003

    # Tag errors (3xxx)
    INVALID_TAG = 3001

    # Filesystem errors (4xxx)
    FILE_SYSTEM_FAILURE = 4001
    ROLLBACK_FAILED = 4002

    # Batch errors (5xxx)
    BATCH_OPERATION_FAILED = 5001

    # Configuration errors (6xxx)
    CONFIG_INVALID = 6001
    UNKNOWN_VAULT = 6002


class VaultError(Exception):
    """Base exception for all vault errors.

    Attributes:
        message: Human-readable error message.
        code: Machine-readable error code.
        details: Additional context about the error.
    """

    code = ErrorCode.VAULT_ERROR

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert the exception to a dictionary for serialization."""
        return {
            "error": self.__class__.__name__,
            "code": self.code.value,
            "code_name": self.code.name,
            "message": self.message,
            "details": self.details,
        }


class PathOutsideVault(VaultError, ValueError):
    """Raised when a path escapes (or equals) the vault root."""

    code = ErrorCode.PATH_OUTSIDE_VAULT

    def __init__(self, path: str, vault_root: str, reason: Optional[str] = None) -> None:
        message = f"Path must be within the vault directory. Path: {path}, Vault: {vault_root}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message, {"path": path, "vault_root": vault_root})
        self.path = path
        self.vault_root = vault_root


class InvalidPath(VaultError, ValueError):
    """Raised when a path is empty, malformed, or uses illegal characters."""

    code = ErrorCode.INVALID_PATH


class InvalidTag(VaultError, ValueError):
    """Raised when a tag does not match the ``segment[/segment...]`` format."""

    code = ErrorCode.INVALID_TAG

    def __init__(self, tag: str) -> None:
        super().__init__(
            f"Invalid tag format: {tag}. Tags must contain only letters, numbers, "
            "and forward slashes for hierarchy (e.g. 'project', 'work/active').",
            {"tag": tag},
        )
        self.tag = tag


class InvalidFrontmatter(VaultError, ValueError):
    """Raised when a note's frontmatter block is not a valid YAML mapping."""

    code = ErrorCode.INVALID_FRONTMATTER


class NoteNotFound(VaultError):
    """Raised when a note does not exist."""

    code = ErrorCode.NOTE_NOT_FOUND

    def __init__(self, note: str, vault: Optional[str] = None) -> None:
        location = f" in vault '{vault}'" if vault else " in vault"
        super().__init__(f"Note '{note}' not found{location}.", {"note": note, "vault": vault})
        self.note = note


class NoteAlreadyExists(VaultError):
    """Raised when creating or moving onto an existing note."""

    code = ErrorCode.NOTE_ALREADY_EXISTS

    def __init__(self, note: str, vault: Optional[str] = None) -> None:
        location = f" in vault '{vault}'" if vault else ""
        super().__init__(
            f"A note already exists at '{note}'{location}. "
            "To prevent accidental modifications, this operation has been cancelled.",
            {"note": note, "vault": vault},
        )
        self.note = note


class FileSystemFailure(VaultError):
    """Wraps an underlying :class:`OSError` raised during a vault operation."""

    code = ErrorCode.FILE_SYSTEM_FAILURE

    def __init__(self, operation: str, error: OSError, path: Optional[Path | str] = None) -> None:
        message = f"Failed to {operation}: {error.strerror or error}"
        if path is not None:
            message = f"{message} ({path})"
        super().__init__(
            message,
            {"operation": operation, "errno": error.errno, "path": str(path) if path else None},
        )
        self.operation = operation
        self.error = error


class RollbackFailure(VaultError):
    """Raised when a failed mutation could not be undone from its backup."""

    code = ErrorCode.ROLLBACK_FAILED

    def __init__(self, original: BaseException, restore_error: BaseException, backup_path: Path) -> None:
        super().__init__(
            f"Operation failed ({original}) and restoring the original content also failed "
            f"({restore_error}). The backup was preserved for manual recovery at: {backup_path}",
            {
                "original_error": str(original),
                "restore_error": str(restore_error),
                "backup_path": str(backup_path),
            },
        )
        self.original = original
        self.restore_error = restore_error
        self.backup_path = backup_path


class BatchOperationFailed(VaultError):
    """Raised when a report-style operation had no successes and at least one failure."""

    code = ErrorCode.BATCH_OPERATION_FAILED

    def __init__(self, message: str, report: Any) -> None:
        super().__init__(message, {"report": report.as_payload()})
        self.report = report


class VaultConfigurationError(VaultError, ValueError):
    """Raised when a vault root or the vault registry is unusable."""

    code = ErrorCode.CONFIG_INVALID


class UnknownVault(VaultError, ValueError):
    """Raised when a vault name is not registered."""

    code = ErrorCode.UNKNOWN_VAULT

    def __init__(self, name: str, available: list[str]) -> None:
        super().__init__(
            f"Unknown vault '{name}'. Available vaults: {', '.join(available)}",
            {"vault": name, "available": available},
        )
        self.name = name
