"""Core business logic for note CRUD operations."""

from __future__ import annotations

import logging
import platform
import shutil
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import anyio
import anyio.to_thread
from frontmatter.default_handlers import YAMLHandler

from vault_keeper.constants import DELETE_BACKUP_RETENTION, TRASH_DIR_NAME
from vault_keeper.core.edit_operations import edit_note
from vault_keeper.core.link_operations import LinkOperation, update_vault_links
from vault_keeper.core.vault_operations import (
    ensure_vault_ready,
    list_markdown_files,
    note_display_name,
    resolve_directory_path,
    resolve_note_path,
)
from vault_keeper.data_models import VaultMetadata, path_timestamp, utc_timestamp
from vault_keeper.errors import FileSystemFailure, NoteAlreadyExists, NoteNotFound

logger = logging.getLogger(__name__)


# ==============================================================================
# HELPER FUNCTIONS
# ==============================================================================


def _get_note_metadata(note_path: Path) -> dict[str, Any]:
    """Extract filesystem metadata for a note in a cross-platform friendly way.

    Args:
        note_path: Absolute path to the markdown file.

    Returns:
        A dictionary containing modification timestamp, optional creation timestamp,
        and file size in bytes.
    """
    stat = note_path.stat()
    metadata: dict[str, Any] = {
        "modified": datetime.fromtimestamp(stat.st_mtime).isoformat(),
        "size": stat.st_size,
    }

    system = platform.system()
    if system in ("Darwin", "Windows"):
        metadata["created"] = datetime.fromtimestamp(stat.st_ctime).isoformat()
    elif hasattr(stat, "st_birthtime"):
        metadata["created"] = datetime.fromtimestamp(stat.st_birthtime).isoformat()

    return metadata


def _trash_header(original_path: str, reason: Optional[str]) -> str:
    metadata: dict[str, Any] = {"original_path": original_path, "deleted_at": utc_timestamp()}
    if reason:
        metadata["reason"] = reason
    block = YAMLHandler().export({"trash_metadata": metadata}, sort_keys=False)
    return f"---\n{block}\n---\n\n"


async def _move_to_trash(vault: VaultMetadata, note_path: Path, reason: Optional[str]) -> Path:
    """Copy a note into ``.trash`` with a metadata header, then remove the original.

    Raises:
        FileSystemFailure: If either step fails; the original note is kept.
    """
    trash_dir = vault.path / TRASH_DIR_NAME
    trash_path = trash_dir / f"{note_path.stem}_{path_timestamp()}.md"
    original = note_path.relative_to(vault.path).as_posix()

    try:
        content = await anyio.Path(note_path).read_text(encoding="utf-8")
        await anyio.Path(trash_dir).mkdir(parents=True, exist_ok=True)
        await anyio.Path(trash_path).write_text(_trash_header(original, reason) + content, encoding="utf-8")
    except OSError as exc:
        raise FileSystemFailure("move note to trash", exc, note_path) from exc

    try:
        await anyio.Path(note_path).unlink()
    except OSError as exc:
        await anyio.Path(trash_path).unlink(missing_ok=True)
        raise FileSystemFailure("move note to trash", exc, note_path) from exc
    return trash_path


# ==============================================================================
# NOTE OPERATIONS
# ==============================================================================


async def create_note(vault: VaultMetadata, path: str, content: str) -> dict[str, Any]:
    """Create a markdown note with the given content.

    Args:
        vault: Vault metadata describing where the note should reside.
        path: Vault-relative note path; folders can be expressed with ``/``.
        content: Markdown body to write into the new file.

    Returns:
        A dictionary describing the created note (vault name, note identifier, full
        path, and status).

    Raises:
        NoteAlreadyExists: If the note already exists.
        FileNotFoundError: If the vault directory is missing.
        PathOutsideVault: If ``path`` escapes the vault.
    """
    await ensure_vault_ready(vault)
    target_path = await resolve_note_path(vault, path)
    await anyio.Path(target_path.parent).mkdir(parents=True, exist_ok=True)

    try:
        async with await anyio.Path(target_path).open("x", encoding="utf-8") as handle:
            await handle.write(content)
    except FileExistsError:
        raise NoteAlreadyExists(note_display_name(vault, target_path), vault.name) from None

    note = note_display_name(vault, target_path)
    logger.info("Created note '%s' in vault '%s'", note, vault.name)
    return {
        "vault": vault.name,
        "note": note,
        "path": str(target_path),
        "status": "created",
    }


async def read_note(vault: VaultMetadata, path: str) -> dict[str, Any]:
    """Retrieve the content of a markdown note.

    Raises:
        NoteNotFound: If the note cannot be located.
    """
    await ensure_vault_ready(vault)
    target_path = await resolve_note_path(vault, path)
    if not await anyio.Path(target_path).is_file():
        raise NoteNotFound(path, vault.name)

    content = await anyio.Path(target_path).read_text(encoding="utf-8")
    return {
        "vault": vault.name,
        "note": note_display_name(vault, target_path),
        "path": str(target_path),
        "content": content,
    }


async def move_note(
    vault: VaultMetadata,
    source: str,
    destination: str,
    destination_vault: Optional[VaultMetadata] = None,
) -> dict[str, Any]:
    """Move or rename a note and update references to it.

    Within a vault, links are renamed to the new note name. Across vaults, links
    left in the source vault become ``obsidian://`` links into the destination
    vault and links in the destination vault are renamed; both carry a
    provenance annotation.

    Args:
        vault: Vault holding the note.
        source: Current vault-relative path.
        destination: New vault-relative path.
        destination_vault: Target vault when moving across vaults.

    Returns:
        A dictionary summarizing the move, including ``links_updated``.

    Raises:
        NoteNotFound: If the source note does not exist.
        NoteAlreadyExists: If a note already exists at the destination.
        PathOutsideVault: If either path escapes its vault.
    """
    target_vault = destination_vault or vault
    cross_vault = target_vault.name != vault.name

    await ensure_vault_ready(vault)
    await ensure_vault_ready(target_vault)
    source_path = await resolve_note_path(vault, source)
    destination_path = await resolve_note_path(target_vault, destination)

    if not await anyio.Path(source_path).is_file():
        raise NoteNotFound(source, vault.name)
    if await anyio.Path(destination_path).exists():
        raise NoteAlreadyExists(note_display_name(target_vault, destination_path), target_vault.name)

    await anyio.Path(destination_path.parent).mkdir(parents=True, exist_ok=True)
    try:
        await anyio.to_thread.run_sync(shutil.move, source_path, destination_path)
    except OSError as exc:
        raise FileSystemFailure("move note", exc, source_path) from exc

    old_name = source_path.stem
    new_name = destination_path.stem
    if cross_vault:
        links_updated = await update_vault_links(
            vault.path,
            LinkOperation.MOVE_OUT,
            old_name,
            new_name,
            source_vault=vault.name,
            destination_vault=target_vault.name,
        )
        links_updated += await update_vault_links(
            target_vault.path,
            LinkOperation.MOVE_IN,
            old_name,
            new_name,
            skip=destination_path,
            source_vault=vault.name,
            destination_vault=target_vault.name,
        )
    else:
        links_updated = await update_vault_links(
            vault.path, LinkOperation.RENAME, old_name, new_name, skip=destination_path
        )

    old_display = note_display_name(vault, source_path)
    new_display = note_display_name(target_vault, destination_path)
    logger.info(
        "Moved note from '%s' (%s) to '%s' (%s), %d link(s) updated",
        old_display,
        vault.name,
        new_display,
        target_vault.name,
        links_updated,
    )
    return {
        "vault": vault.name,
        "destination_vault": target_vault.name,
        "old_path": old_display,
        "new_path": new_display,
        "links_updated": links_updated,
        "status": "moved",
    }


async def delete_note(
    vault: VaultMetadata,
    path: str,
    permanent: bool = False,
    reason: Optional[str] = None,
    backup_retention: float = DELETE_BACKUP_RETENTION,
) -> dict[str, Any]:
    """Delete a note and strike through references to it.

    By default the note is moved to ``.trash`` with its original path, deletion
    time and optional ``reason`` recorded in a frontmatter header. With
    ``permanent=True`` it is removed, keeping a backup for ``backup_retention``
    seconds.

    Raises:
        NoteNotFound: If the note does not exist.
        FileSystemFailure: If the note could not be removed (nothing is changed).
    """
    await ensure_vault_ready(vault)
    target_path = await resolve_note_path(vault, path)
    if not await anyio.Path(target_path).is_file():
        raise NoteNotFound(path, vault.name)

    note = note_display_name(vault, target_path)
    result: dict[str, Any] = {"vault": vault.name, "note": note, "path": str(target_path)}
    if permanent:
        edited = await edit_note(vault, path, "delete", backup_retention=backup_retention)
        result.update(status="deleted", backup=edited["backup"])
    else:
        trash_path = await _move_to_trash(vault, target_path, reason)
        result.update(status="trashed", trash_path=str(trash_path))

    result["links_updated"] = await update_vault_links(vault.path, LinkOperation.DELETE, target_path.stem)
    logger.info(
        "Deleted note '%s' in vault '%s' (%s), %d link(s) marked",
        note,
        vault.name,
        result["status"],
        result["links_updated"],
    )
    return result


async def create_directory(vault: VaultMetadata, path: str) -> dict[str, Any]:
    """Create a directory (and missing parents) inside the vault.

    Raises:
        FileExistsError: If something already exists at ``path``.
    """
    await ensure_vault_ready(vault)
    target_path = await resolve_directory_path(vault, path)
    if await anyio.Path(target_path).exists():
        raise FileExistsError(f"A directory already exists at: {target_path}")

    await anyio.Path(target_path).mkdir(parents=True)
    relative = target_path.relative_to(vault.path).as_posix()
    logger.info("Created directory '%s' in vault '%s'", relative, vault.name)
    return {"vault": vault.name, "directory": relative, "path": str(target_path), "status": "created"}


async def list_notes(vault: VaultMetadata, include_metadata: bool = False) -> dict[str, Any]:
    """List all notes in the vault.

    Args:
        vault: Vault metadata.
        include_metadata: When ``True`` each entry contains metadata (modified, created,
            size). Otherwise, only note identifiers are returned.

    Returns:
        A dictionary containing the vault name and note list. Notes are sorted
        alphabetically when metadata is excluded, or by most recent modification when
        metadata is included.
    """
    await ensure_vault_ready(vault)

    notes: list[Any] = []
    for path in await list_markdown_files(vault.path):
        identifier = note_display_name(vault, path)
        if include_metadata:
            metadata = await anyio.to_thread.run_sync(_get_note_metadata, path)
            metadata["path"] = identifier
            notes.append(metadata)
        else:
            notes.append(identifier)

    if include_metadata:
        notes.sort(key=lambda item: item["modified"], reverse=True)
    else:
        notes.sort()

    return {
        "vault": vault.name,
        "notes": notes,
    }
