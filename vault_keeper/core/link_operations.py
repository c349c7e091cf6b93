"""Rewrite references between notes after a move or delete."""

from __future__ import annotations

import enum
import logging
import re
from pathlib import Path
from typing import Optional
from urllib.parse import quote

import anyio

from vault_keeper.core.edit_operations import write_with_rollback
from vault_keeper.core.frontmatter_operations import split_frontmatter
from vault_keeper.core.vault_operations import list_markdown_files

logger = logging.getLogger(__name__)


class LinkOperation(str, enum.Enum):
    """How references to a note are rewritten."""

    RENAME = "rename-within-vault"
    DELETE = "delete"
    MOVE_OUT = "cross-vault-move-out"
    MOVE_IN = "cross-vault-move-in"


def _provenance(source_vault: Optional[str]) -> str:
    return f' %%moved from vault "{source_vault}"%%'


def _obsidian_uri(vault: Optional[str], name: str) -> str:
    return f"obsidian://open?vault={quote(vault or '', safe='')}&file={quote(name, safe='')}"


def rewrite_links(
    body: str,
    operation: LinkOperation,
    old_name: str,
    new_name: Optional[str] = None,
    source_vault: Optional[str] = None,
    destination_vault: Optional[str] = None,
) -> str:
    """Rewrite ``[[old]]``, ``[[old|alias]]`` and ``[text](old.md)`` references in ``body``.

    Args:
        body: Note body (without frontmatter).
        operation: The :class:`LinkOperation` that triggered the rewrite.
        old_name: Base name of the note that moved or was deleted.
        new_name: Base name after the move; unused for deletions.
        source_vault: Vault the note came from, for cross-vault moves.
        destination_vault: Vault the note went to, for cross-vault moves.

    Returns:
        The rewritten body.
    """
    escaped = re.escape(old_name)
    guard = r"(?<!~~)" if operation is LinkOperation.DELETE else ""
    wikilink = re.compile(guard + r"\[\[" + escaped + r"(?P<alias>\|[^\]]*)?\]\]")
    markdown_link = re.compile(guard + r"\[(?P<label>[^\]]*)\]\(" + escaped + r"\.md\)")

    if operation is LinkOperation.DELETE:
        body = wikilink.sub(lambda match: f"~~{match.group(0)}~~", body)
        return markdown_link.sub(lambda match: f"~~{match.group(0)}~~", body)

    if new_name is None:
        raise ValueError(f"A new note name is required for {operation.value}")

    if operation is LinkOperation.RENAME:
        body = wikilink.sub(lambda match: f"[[{new_name}{match.group('alias') or ''}]]", body)
        return markdown_link.sub(lambda match: f"[{match.group('label')}]({new_name}.md)", body)

    note = _provenance(source_vault)
    if operation is LinkOperation.MOVE_OUT:
        uri = _obsidian_uri(destination_vault, new_name)

        def _wiki_out(match: re.Match[str]) -> str:
            alias = match.group("alias")
            label = alias[1:] if alias and alias[1:] else new_name
            return f"[{label}]({uri}){note}"

        body = wikilink.sub(_wiki_out, body)
        return markdown_link.sub(lambda match: f"[{match.group('label') or new_name}]({uri}){note}", body)

    body = wikilink.sub(lambda match: f"[[{new_name}{match.group('alias') or ''}]]{note}", body)
    return markdown_link.sub(lambda match: f"[{match.group('label')}]({new_name}.md){note}", body)


async def update_vault_links(
    vault_root: Path,
    operation: LinkOperation,
    old_name: str,
    new_name: Optional[str] = None,
    skip: Optional[Path] = None,
    source_vault: Optional[str] = None,
    destination_vault: Optional[str] = None,
) -> int:
    """Apply :func:`rewrite_links` to every note in a vault.

    Notes that cannot be read or written are logged and skipped.

    Returns:
        Number of notes whose content changed.
    """
    updated_count = 0
    for note_path in await list_markdown_files(vault_root):
        if skip is not None and note_path == skip:
            continue

        try:
            content = await anyio.Path(note_path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Could not read note '%s' while updating links: %s", note_path, exc)
            continue

        prefix, body = split_frontmatter(content)
        rewritten = rewrite_links(body, operation, old_name, new_name, source_vault, destination_vault)
        if rewritten == body:
            continue

        try:
            await write_with_rollback(note_path, prefix + rewritten)
        except Exception as exc:
            logger.warning("Failed to write updated links to '%s': %s", note_path, exc)
            continue
        updated_count += 1

    logger.info(
        "Updated links to '%s' in %d note(s) under '%s' (%s)",
        old_name,
        updated_count,
        vault_root,
        operation.value,
    )
    return updated_count
