"""Search and discovery operations for notes."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Literal, Optional

import anyio

from vault_keeper.core.tag_operations import iter_tag_lines, matches_tag_pattern, normalize_tag
from vault_keeper.core.vault_operations import (
    ensure_vault_ready,
    list_markdown_files,
    resolve_directory_path,
)
from vault_keeper.data_models import VaultMetadata

logger = logging.getLogger(__name__)

SearchType = Literal["content", "filename", "both"]

TAG_QUERY_PREFIX = "tag:"


# ==============================================================================
# HELPER FUNCTIONS
# ==============================================================================


def _search_text(text: str, query: str, case_sensitive: bool) -> list[dict[str, Any]]:
    needle = query if case_sensitive else query.lower()
    matches = []
    for index, line in enumerate(text.split("\n")):
        haystack = line if case_sensitive else line.lower()
        if needle in haystack:
            matches.append({"line": index + 1, "text": line.strip()})
    return matches


def _search_tags(text: str, pattern: str) -> list[dict[str, Any]]:
    """Lines whose inline tags equal or match ``pattern`` (``*`` wildcards allowed)."""
    matches = []
    for number, line, tags in iter_tag_lines(text):
        normalized = [normalize_tag(tag) for tag in tags]
        if any(tag == pattern or matches_tag_pattern(pattern, tag) for tag in normalized):
            matches.append({"line": number, "text": line.strip()})
    return matches


async def _scope_files(vault: VaultMetadata, path: Optional[str]) -> list[Path]:
    if not path:
        return await list_markdown_files(vault.path)
    folder = await resolve_directory_path(vault, path)
    if not await anyio.Path(folder).is_dir():
        raise FileNotFoundError(f"Folder '{path}' not found in vault '{vault.name}'.")
    return await list_markdown_files(folder)


# ==============================================================================
# SEARCH OPERATIONS
# ==============================================================================


async def search_vault(
    vault: VaultMetadata,
    query: str,
    path: Optional[str] = None,
    case_sensitive: bool = False,
    search_type: SearchType = "content",
) -> dict[str, Any]:
    """Search note contents and/or file names.

    A query starting with ``tag:`` matches inline tags instead of text; the rest
    of the query is normalized and may use ``*`` wildcards (``tag:status/*``).

    Args:
        vault: Vault metadata.
        query: Text to look for, or a ``tag:`` query.
        path: Optional folder (relative to the vault) limiting the search.
        case_sensitive: Match text case-sensitively. Tag queries ignore this.
        search_type: ``content``, ``filename`` or ``both``.

    Returns:
        A dictionary with the vault name, the query and a ``results`` list of
        ``{"file", "matches": [{"line", "text"}]}``. Filename matches use line 0;
        a note matching by name and by content is listed once.

    Raises:
        ValueError: If the query is empty.
        PathOutsideVault: If ``path`` escapes the vault.
        FileNotFoundError: If ``path`` is not a folder in the vault.
    """
    if not query:
        raise ValueError("Search query cannot be empty.")

    await ensure_vault_ready(vault)
    files = await _scope_files(vault, path)
    tag_pattern = normalize_tag(query[len(TAG_QUERY_PREFIX) :]) if query.startswith(TAG_QUERY_PREFIX) else None
    matches_by_file: dict[str, list[dict[str, Any]]] = {}

    if search_type in ("filename", "both"):
        needle = query if case_sensitive else query.lower()
        for note_path in files:
            relative = note_path.relative_to(vault.path).as_posix()
            target = relative if case_sensitive else relative.lower()
            if needle in target:
                matches_by_file.setdefault(relative, []).append({"line": 0, "text": f"Filename match: {relative}"})

    if search_type in ("content", "both"):
        for note_path in files:
            relative = note_path.relative_to(vault.path).as_posix()
            try:
                text = await anyio.Path(note_path).read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                logger.warning("Skipping unreadable note '%s' during search: %s", relative, exc)
                continue

            if tag_pattern is not None:
                matches = _search_tags(text, tag_pattern)
            else:
                matches = _search_text(text, query, case_sensitive)
            if matches:
                matches_by_file.setdefault(relative, []).extend(matches)

    results = [{"file": file, "matches": matches} for file, matches in matches_by_file.items()]

    return {
        "vault": vault.name,
        "query": query,
        "search_type": search_type,
        "results": results,
        "total_matches": sum(len(result["matches"]) for result in results),
    }
