"""Vault-wide tag renames processed in concurrent batches."""

from __future__ import annotations

import itertools
import json
import logging
import re
import shutil
from pathlib import Path

import anyio
import anyio.to_thread

from vault_keeper.constants import BACKUP_DIR_NAME, DEFAULT_BATCH_SIZE, MAX_BATCH_SIZE, SAVED_SEARCH_PATH
from vault_keeper.core.edit_operations import write_with_rollback
from vault_keeper.core.frontmatter_operations import parse_note, stringify_note
from vault_keeper.core.tag_operations import (
    normalize_tag,
    rename_frontmatter_tags,
    rename_inline_tags,
    validate_tag,
)
from vault_keeper.core.vault_operations import (
    ensure_vault_ready,
    list_markdown_files,
    validate_containment,
)
from vault_keeper.data_models import (
    FailedItem,
    RenameTagReport,
    TagRenameChange,
    VaultMetadata,
    path_timestamp,
)
from vault_keeper.errors import BatchOperationFailed, FileSystemFailure, InvalidTag, VaultError

logger = logging.getLogger(__name__)


# ==============================================================================
# HELPER FUNCTIONS
# ==============================================================================


async def create_vault_backup(vault_root: Path, files: list[Path]) -> Path:
    """Copy every note (and the saved-search store) into a timestamped snapshot.

    Returns:
        The snapshot directory ``<vault>/.backup/vault-backup-<timestamp>``.

    Raises:
        FileSystemFailure: If any copy fails.
    """
    backup_dir = vault_root / BACKUP_DIR_NAME / f"vault-backup-{path_timestamp()}"
    search_path = vault_root / SAVED_SEARCH_PATH
    sources = list(files)
    if await anyio.Path(search_path).is_file():
        sources.append(search_path)

    def _copy_all() -> None:
        backup_dir.mkdir(parents=True, exist_ok=False)
        for source in sources:
            target = backup_dir / source.relative_to(vault_root)
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, target)

    try:
        await anyio.to_thread.run_sync(_copy_all)
    except OSError as exc:
        raise FileSystemFailure("create vault backup", exc, backup_dir) from exc

    logger.info("Backed up %d file(s) to '%s'", len(sources), backup_dir)
    return backup_dir


async def update_saved_searches(vault_root: Path, old_tag: str, new_tag: str, normalize: bool = True) -> bool:
    """Rewrite ``tag:old`` and ``#old`` references in saved search queries.

    Best effort: failures are logged and reported as ``False``.

    Returns:
        ``True`` when the saved-search store was rewritten.
    """
    search_path = vault_root / SAVED_SEARCH_PATH
    if not await anyio.Path(search_path).is_file():
        return False

    old = normalize_tag(old_tag, normalize)
    new = normalize_tag(new_tag, normalize)
    # Only whole segments: "work" matches "work" and "work/x" but not "workshop"
    pattern = re.compile(r"(tag:|#)" + re.escape(old) + r"(?![a-zA-Z0-9_-])")

    try:
        config = json.loads(await anyio.Path(search_path).read_text(encoding="utf-8"))
        searches = config.get("savedSearches") if isinstance(config, dict) else None
        if not isinstance(searches, list):
            return False

        modified = False
        for search in searches:
            if not isinstance(search, dict) or not isinstance(search.get("query"), str):
                continue
            query = pattern.sub(lambda match: f"{match.group(1)}{new}", search["query"])
            if query != search["query"]:
                search["query"] = query
                modified = True

        if modified:
            await write_with_rollback(search_path, json.dumps(config, indent=2))
            logger.info("Updated saved searches in '%s'", search_path)
        return modified
    except (OSError, ValueError, VaultError) as exc:
        logger.warning("Error updating saved searches in '%s': %s", search_path, exc)
        return False


async def _rename_in_note(
    vault: VaultMetadata,
    note_path: Path,
    old_tag: str,
    new_tag: str,
    normalize: bool,
    report: RenameTagReport,
) -> None:
    relative = note_path.relative_to(vault.path).as_posix()
    try:
        await validate_containment(vault.path, note_path)
        text = await anyio.Path(note_path).read_text(encoding="utf-8")
        note = parse_note(text)
        frontmatter, frontmatter_changes = rename_frontmatter_tags(note.frontmatter, old_tag, new_tag, normalize)
        body, inline_changes = rename_inline_tags(note.body, old_tag, new_tag, normalize)
        if not frontmatter_changes and not inline_changes:
            return

        note.frontmatter = frontmatter
        note.body = body
        await write_with_rollback(note_path, stringify_note(note))
    except Exception as exc:
        logger.warning("Failed to rename tag in '%s': %s", relative, exc)
        report.failed.append(FailedItem(relative, str(exc)))
        return

    if frontmatter_changes:
        report.successful.append(
            TagRenameChange(
                file_path=relative,
                old_tags=[old for old, _ in frontmatter_changes],
                new_tags=[new for _, new in frontmatter_changes],
                location="frontmatter",
            )
        )
    for line, changes in itertools.groupby(inline_changes, key=lambda change: change[2]):
        pairs = list(changes)
        report.successful.append(
            TagRenameChange(
                file_path=relative,
                old_tags=[old for old, _, _ in pairs],
                new_tags=[new for _, new, _ in pairs],
                location="content",
                line=line,
            )
        )


# ==============================================================================
# RENAME OPERATIONS
# ==============================================================================


async def rename_tag(
    vault: VaultMetadata,
    old_tag: str,
    new_tag: str,
    create_backup: bool = True,
    normalize: bool = True,
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> RenameTagReport:
    """Rename a tag, and every tag beneath it, across the whole vault.

    ``work`` → ``projects`` turns ``#work`` into ``#projects`` and ``work/active``
    into ``projects/active`` in both frontmatter and inline tags. Notes are
    processed concurrently within fixed-size batches; a note that fails is
    recorded in the report and never stops the others.

    Args:
        vault: Vault metadata.
        old_tag: Tag to rename.
        new_tag: Replacement tag.
        create_backup: Snapshot every note under ``.backup`` before changing anything.
        normalize: Fold camelCase tags into hyphenated lowercase when comparing.
        batch_size: Notes processed concurrently per batch (1-100).

    Returns:
        A :class:`RenameTagReport`.

    Raises:
        InvalidTag: If either tag is invalid.
        ValueError: If ``batch_size`` is out of range.
        FileSystemFailure: If the snapshot could not be created (nothing is changed).
        BatchOperationFailed: If no note was renamed and at least one failed.
    """
    for tag in (old_tag, new_tag):
        if not validate_tag(tag):
            raise InvalidTag(tag)
    if not 1 <= batch_size <= MAX_BATCH_SIZE:
        raise ValueError(f"batch_size must be between 1 and {MAX_BATCH_SIZE}, got {batch_size}")

    await ensure_vault_ready(vault)
    files = await list_markdown_files(vault.path)
    report = RenameTagReport(old_tag=old_tag, new_tag=new_tag)

    if create_backup:
        report.backup_path = str(await create_vault_backup(vault.path, files))

    for start in range(0, len(files), batch_size):
        async with anyio.create_task_group() as task_group:
            for note_path in files[start : start + batch_size]:
                task_group.start_soon(_rename_in_note, vault, note_path, old_tag, new_tag, normalize, report)

    report.successful.sort(key=lambda change: (change.file_path, change.location != "frontmatter", change.line or 0))
    report.failed.sort(key=lambda item: item.file_path)
    report.saved_searches_updated = await update_saved_searches(vault.path, old_tag, new_tag, normalize)

    logger.info(
        "Renamed tag '%s' to '%s' in vault '%s': %d change(s), %d failure(s)",
        old_tag,
        new_tag,
        vault.name,
        len(report.successful),
        len(report.failed),
    )
    if not report.successful and report.failed:
        raise BatchOperationFailed(f"Tag rename failed for every note: {report.message}", report)
    return report
