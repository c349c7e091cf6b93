"""Single-note mutations guarded by a backup and rollback on failure."""

from __future__ import annotations

import asyncio
import logging
import shutil
import uuid
from pathlib import Path
from typing import Any, Awaitable, Callable, Literal, Optional

import anyio
import anyio.to_thread

from vault_keeper.constants import DELETE_BACKUP_RETENTION
from vault_keeper.core.frontmatter_operations import split_frontmatter
from vault_keeper.core.vault_operations import ensure_vault_ready, note_display_name, resolve_note_path
from vault_keeper.data_models import VaultMetadata, path_timestamp
from vault_keeper.errors import FileSystemFailure, NoteNotFound, RollbackFailure

logger = logging.getLogger(__name__)

EditOperation = Literal["append", "prepend", "replace", "delete"]

_STATUS = {"append": "appended", "prepend": "prepended", "replace": "replaced", "delete": "deleted"}


# ==============================================================================
# HELPER FUNCTIONS
# ==============================================================================


def _append_content(existing: str, content: str) -> str:
    """Append after the existing text, separated by one blank line."""
    head = existing.rstrip()
    if not head:
        return content
    return f"{head}\n\n{content}"


def _prepend_content(existing: str, content: str) -> str:
    """Insert at the start of the body, after any frontmatter block."""
    prefix, body = split_frontmatter(existing)
    tail = body.lstrip()
    if not tail:
        return f"{prefix}{content}"
    return f"{prefix}{content}\n\n{tail}"


def backup_path_for(path: Path) -> Path:
    """Unique sibling path used to back up ``path`` before a write."""
    return path.with_name(f"{path.name}.{path_timestamp()}-{uuid.uuid4().hex[:8]}.bak")


async def _copy_file(source: Path, destination: Path) -> None:
    await anyio.to_thread.run_sync(shutil.copy2, source, destination)


async def _write_text(path: Path, content: str) -> None:
    await anyio.Path(path).write_text(content, encoding="utf-8")


async def _unlink(path: Path) -> None:
    await anyio.Path(path).unlink()


async def _restore_file(backup: Path, path: Path) -> None:
    await _copy_file(backup, path)


async def _discard_backup(backup: Path) -> None:
    try:
        await anyio.Path(backup).unlink(missing_ok=True)
    except OSError as exc:
        logger.warning("Could not remove backup '%s': %s", backup, exc)


def _purge_backup(backup: Path) -> None:
    try:
        backup.unlink(missing_ok=True)
        logger.info("Purged expired backup '%s'", backup)
    except OSError as exc:
        logger.warning("Could not purge expired backup '%s': %s", backup, exc)


def _schedule_purge(backup: Path, delay: float) -> None:
    asyncio.get_running_loop().call_later(delay, _purge_backup, backup)


async def _guarded_mutation(
    path: Path,
    action: Callable[[], Awaitable[None]],
    operation: str,
    retain_backup: Optional[float] = None,
) -> Optional[Path]:
    """Run ``action`` against ``path`` with a backup taken first.

    On failure the original bytes are restored and the error propagates, with
    :class:`OSError` wrapped as :class:`FileSystemFailure`. On success the backup
    is removed, or kept for ``retain_backup`` seconds when given.

    Returns:
        The backup path, or ``None`` when ``path`` did not exist beforehand.

    Raises:
        FileSystemFailure: If the backup could not be taken or the action failed
            with an OS error.
        RollbackFailure: If the action failed and restoring the backup failed too.
    """
    backup: Optional[Path] = None
    if await anyio.Path(path).exists():
        backup = backup_path_for(path)
        try:
            await _copy_file(path, backup)
        except OSError as exc:
            raise FileSystemFailure(f"back up note before {operation}", exc, path) from exc

    try:
        await action()
    except Exception as exc:
        if backup is not None:
            try:
                await _restore_file(backup, path)
            except OSError as restore_exc:
                logger.error("Rollback of '%s' failed, backup kept at '%s': %s", path, backup, restore_exc)
                raise RollbackFailure(exc, restore_exc, backup) from exc
            await _discard_backup(backup)
            logger.warning("Restored '%s' from backup after failed %s", path, operation)
        if isinstance(exc, OSError):
            raise FileSystemFailure(operation, exc, path) from exc
        raise

    if backup is not None:
        if retain_backup is None:
            await _discard_backup(backup)
        else:
            _schedule_purge(backup, retain_backup)
    return backup


# ==============================================================================
# EDIT OPERATIONS
# ==============================================================================


async def write_with_rollback(path: Path, content: str) -> None:
    """Overwrite ``path`` with ``content``, restoring the original bytes on failure."""
    await _guarded_mutation(path, lambda: _write_text(path, content), "write note")


async def edit_note(
    vault: VaultMetadata,
    path: str,
    operation: EditOperation,
    content: Optional[str] = None,
    backup_retention: float = DELETE_BACKUP_RETENTION,
) -> dict[str, Any]:
    """Append, prepend, replace or delete a single note with rollback on failure.

    Args:
        vault: Vault metadata.
        path: Vault-relative note path.
        operation: One of ``append``, ``prepend``, ``replace`` or ``delete``.
        content: Text to write. Required unless ``operation`` is ``delete``, in
            which case it must be omitted.
        backup_retention: Seconds the backup of a deleted note is kept.

    Returns:
        A dictionary describing the edited note. Deletions include the path of
        the retained backup.

    Raises:
        ValueError: If ``content`` does not fit ``operation``.
        NoteNotFound: If the note does not exist.
        PathOutsideVault: If the path escapes the vault.
        FileSystemFailure: If the write failed (the note is left unchanged).
        RollbackFailure: If the write failed and the note could not be restored.
    """
    if operation not in _STATUS:
        raise ValueError(f"Invalid operation: {operation}")
    if operation == "delete":
        if content is not None:
            raise ValueError("Content should not be provided for delete operation")
    elif not content:
        raise ValueError(f"Content is required for {operation} operation")

    await ensure_vault_ready(vault)
    target_path = await resolve_note_path(vault, path)
    if not await anyio.Path(target_path).is_file():
        raise NoteNotFound(path, vault.name)

    retain: Optional[float] = None
    if operation == "delete":
        action: Callable[[], Awaitable[None]] = lambda: _unlink(target_path)
        retain = backup_retention
    else:
        existing = await anyio.Path(target_path).read_text(encoding="utf-8")
        if operation == "append":
            updated = _append_content(existing, content)
        elif operation == "prepend":
            updated = _prepend_content(existing, content)
        else:
            updated = content
        action = lambda: _write_text(target_path, updated)

    backup = await _guarded_mutation(target_path, action, f"{operation} note", retain_backup=retain)

    note = note_display_name(vault, target_path)
    logger.info("Note '%s' %s in vault '%s'", note, _STATUS[operation], vault.name)
    result: dict[str, Any] = {
        "vault": vault.name,
        "note": note,
        "path": str(target_path),
        "status": _STATUS[operation],
    }
    if operation == "delete":
        result["backup"] = str(backup)
    return result
