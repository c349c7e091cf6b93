"""Hierarchical tag model over frontmatter and inline tags."""

from __future__ import annotations

import enum
import logging
import re
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal, NamedTuple, Optional

import anyio

from vault_keeper.core.edit_operations import write_with_rollback
from vault_keeper.core.frontmatter_operations import (
    get_frontmatter_tags,
    parse_note,
    stringify_note,
)
from vault_keeper.core.vault_operations import ensure_vault_ready, resolve_note_path
from vault_keeper.data_models import FailedItem, TagBatchReport, VaultMetadata
from vault_keeper.errors import BatchOperationFailed, InvalidTag, NoteNotFound

logger = logging.getLogger(__name__)

TagLocation = Literal["frontmatter", "content", "both"]
TagPosition = Literal["start", "end"]

# ``#`` + alphanumeric start, then alphanumerics or ``/``; never touching a backtick.
TAG_PATTERN = re.compile(r"(?<!`)#([a-zA-Z0-9][a-zA-Z0-9/]*)(?![a-zA-Z0-9/`])")
_VALID_TAG = re.compile(r"^[a-zA-Z0-9]+(/[a-zA-Z0-9]+)*$")
_CAMEL_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")
_BLANK_LINE_RUN = re.compile(r"\n(?:[ \t]*\n)+")


@dataclass
class TagChange:
    """Where a tag was found, removed or kept."""

    tag: str
    location: Literal["frontmatter", "content"]
    line: Optional[int] = None
    context: Optional[str] = None

    def as_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"tag": self.tag, "location": self.location}
        if self.line is not None:
            payload["line"] = self.line
            payload["context"] = self.context
        return payload


class TagRemovalReport(NamedTuple):
    removed: list[TagChange]
    preserved: list[TagChange]


class RelatedTags(NamedTuple):
    parents: list[str]
    children: list[str]


class _LineState(enum.Enum):
    TEXT = "text"
    FENCE = "fence"
    INERT = "inert"


# ==============================================================================
# HELPER FUNCTIONS
# ==============================================================================


def _scan_lines(body: str) -> Iterator[tuple[int, str, _LineState]]:
    """Yield ``(line_number, line, state)`` for every line of ``body``.

    Fence delimiter lines toggle the code-block state and are reported as
    ``FENCE``. Lines inside a fence or an HTML comment are ``INERT``. The comment
    state turns on for a line containing ``<!--`` and off for one containing
    ``-->``, checked in that order.
    """
    in_fence = False
    in_comment = False
    for index, line in enumerate(body.split("\n")):
        if line.strip().startswith("```"):
            in_fence = not in_fence
            yield index + 1, line, _LineState.FENCE
            continue
        if "<!--" in line:
            in_comment = True
        if "-->" in line:
            in_comment = False
        state = _LineState.INERT if in_fence or in_comment else _LineState.TEXT
        yield index + 1, line, state


def _validate_all(tags: Sequence[str]) -> None:
    for tag in tags:
        if not validate_tag(tag):
            raise InvalidTag(tag)


def _should_remove(tag: str, targets: set[str], patterns: Sequence[str], preserve_children: bool) -> bool:
    if tag in targets:
        return True
    if any(matches_tag_pattern(pattern, tag) for pattern in patterns):
        return True
    if not preserve_children and any(is_parent_tag(target, tag) for target in targets):
        return True
    return False


# ==============================================================================
# TAG PRIMITIVES
# ==============================================================================


def extract_tags(body: str) -> set[str]:
    """Collect raw inline tags outside fenced code blocks and HTML comments."""
    tags: set[str] = set()
    for _, line, state in _scan_lines(body):
        if state is _LineState.TEXT:
            tags.update(match.group(1) for match in TAG_PATTERN.finditer(line))
    return tags


def iter_tag_lines(body: str) -> Iterator[tuple[int, str, list[str]]]:
    """Yield ``(line_number, line, raw_tags)`` for lines outside code blocks and comments."""
    for number, line, state in _scan_lines(body):
        if state is _LineState.TEXT:
            yield number, line, [match.group(1) for match in TAG_PATTERN.finditer(line)]


def normalize_tag(tag: str, normalize: bool = True) -> str:
    """Strip a leading ``#`` and optionally fold camelCase into hyphenated lowercase.

    Examples:
        >>> normalize_tag("#ProjectActive")
        'project-active'
        >>> normalize_tag("work/InProgress")
        'work/in-progress'
        >>> normalize_tag("#ProjectActive", normalize=False)
        'ProjectActive'
    """
    if tag.startswith("#"):
        tag = tag[1:]
    if not normalize:
        return tag
    return "/".join(_CAMEL_BOUNDARY.sub(r"\1-\2", part).lower() for part in tag.split("/"))


def validate_tag(tag: str) -> bool:
    """Return ``True`` when ``tag`` is one or more ``/``-separated alphanumeric segments."""
    if not isinstance(tag, str):
        return False
    if tag.startswith("#"):
        tag = tag[1:]
    return bool(_VALID_TAG.match(tag))


def is_parent_tag(parent: str, child: str) -> bool:
    return child.startswith(f"{parent}/")


def matches_tag_pattern(pattern: str, tag: str) -> bool:
    """Full-string match where ``*`` matches any run of characters."""
    regex = ".*".join(re.escape(part) for part in pattern.split("*"))
    return re.fullmatch(regex, tag) is not None


def related_tags(tag: str, all_tags: Sequence[str]) -> RelatedTags:
    """Ancestors of ``tag`` and the descendants of ``tag`` present in ``all_tags``."""
    parts = tag.split("/")
    parents = ["/".join(parts[: index + 1]) for index in range(len(parts) - 1)]
    children = [other for other in all_tags if is_parent_tag(tag, other)]
    return RelatedTags(parents=parents, children=children)


# ==============================================================================
# FRONTMATTER AND INLINE MUTATIONS
# ==============================================================================


def add_tags_to_frontmatter(
    frontmatter: Mapping[str, Any],
    tags: Sequence[str],
    normalize: bool = True,
) -> dict[str, Any]:
    """Return a copy of ``frontmatter`` whose ``tags`` is the sorted union with ``tags``.

    Raises:
        InvalidTag: On the first invalid tag; ``frontmatter`` is left untouched.
    """
    _validate_all(tags)
    updated = dict(frontmatter)
    existing = set(get_frontmatter_tags(frontmatter))
    existing.update(normalize_tag(tag, normalize) for tag in tags)
    updated["tags"] = sorted(existing)
    return updated


def add_inline_tags(
    body: str,
    tags: Sequence[str],
    normalize: bool = True,
    position: TagPosition = "end",
) -> str:
    """Write a ``#a #b`` line at the start or end of ``body``.

    Tags already present inline are not repeated. Returns ``body`` unchanged when
    there is nothing to add.
    """
    _validate_all(tags)
    present = {normalize_tag(tag, normalize) for tag in extract_tags(body)}
    missing: list[str] = []
    for tag in tags:
        value = normalize_tag(tag, normalize)
        if value not in present and value not in missing:
            missing.append(value)
    if not missing:
        return body

    tag_line = " ".join(f"#{tag}" for tag in missing)
    stripped = body.strip()
    if not stripped:
        return tag_line
    if position == "start":
        return f"{tag_line}\n\n{stripped}"
    return f"{stripped}\n\n{tag_line}"


def remove_tags_from_frontmatter(
    frontmatter: Mapping[str, Any],
    tags: Sequence[str],
    normalize: bool = True,
    preserve_children: bool = False,
    patterns: Sequence[str] = (),
) -> tuple[dict[str, Any], TagRemovalReport]:
    """Remove matching tags from the ``tags`` frontmatter value.

    A tag is removed when it equals a target, matches a pattern, or (unless
    ``preserve_children``) is a descendant of a target. The ``tags`` key is
    dropped once it is empty.
    """
    updated = dict(frontmatter)
    report = TagRemovalReport(removed=[], preserved=[])
    if "tags" not in frontmatter:
        return updated, report

    targets = {normalize_tag(tag, normalize) for tag in tags}
    kept: list[str] = []
    for tag in get_frontmatter_tags(frontmatter):
        normalized = normalize_tag(tag, normalize)
        if _should_remove(normalized, targets, patterns, preserve_children):
            report.removed.append(TagChange(tag=normalized, location="frontmatter"))
        else:
            report.preserved.append(TagChange(tag=normalized, location="frontmatter"))
            kept.append(tag)

    if report.removed:
        if kept:
            updated["tags"] = sorted(kept)
        else:
            del updated["tags"]
    return updated, report


def remove_inline_tags(
    body: str,
    tags: Sequence[str],
    normalize: bool = True,
    preserve_children: bool = False,
    patterns: Sequence[str] = (),
) -> tuple[str, TagRemovalReport]:
    """Remove matching inline tags from ``body``.

    Tags inside fenced code blocks or HTML comments are never removed and are
    reported as preserved. When something was removed, runs of blank lines
    collapse to a single blank line.
    """
    targets = {normalize_tag(tag, normalize) for tag in tags}
    report = TagRemovalReport(removed=[], preserved=[])
    lines: list[str] = []

    for number, line, state in _scan_lines(body):
        if state is _LineState.FENCE:
            lines.append(line)
            continue
        context = line.strip()
        if state is _LineState.INERT:
            for match in TAG_PATTERN.finditer(line):
                report.preserved.append(TagChange(match.group(1), "content", number, context))
            lines.append(line)
            continue

        removed_here = False

        def _replace(match: re.Match[str]) -> str:
            nonlocal removed_here
            normalized = normalize_tag(match.group(1), normalize)
            if _should_remove(normalized, targets, patterns, preserve_children):
                report.removed.append(TagChange(normalized, "content", number, context))
                removed_here = True
                return ""
            report.preserved.append(TagChange(normalized, "content", number, context))
            return match.group(0)

        updated = TAG_PATTERN.sub(_replace, line)
        lines.append(updated.rstrip() if removed_here else updated)

    if not report.removed:
        return body, report
    return _BLANK_LINE_RUN.sub("\n\n", "\n".join(lines)), report


# ==============================================================================
# RENAMES
# ==============================================================================


def rename_tag_value(tag: str, old_tag: str, new_tag: str, normalize: bool = True) -> Optional[str]:
    """Apply the hierarchical rename rule to a single tag.

    ``old`` itself becomes ``new`` and ``old/x`` becomes ``new/x``. Returns
    ``None`` when ``tag`` is unrelated to ``old_tag``.
    """
    normalized = normalize_tag(tag, normalize)
    old = normalize_tag(old_tag, normalize)
    new = normalize_tag(new_tag, normalize)
    if normalized == old:
        return new
    if is_parent_tag(old, normalized):
        return new + normalized[len(old) :]
    return None


def rename_frontmatter_tags(
    frontmatter: Mapping[str, Any],
    old_tag: str,
    new_tag: str,
    normalize: bool = True,
) -> tuple[dict[str, Any], list[tuple[str, str]]]:
    """Rename tags in the ``tags`` frontmatter value; unrelated tags are kept as written."""
    updated = dict(frontmatter)
    changes: list[tuple[str, str]] = []
    renamed: list[str] = []
    for tag in get_frontmatter_tags(frontmatter):
        replacement = rename_tag_value(tag, old_tag, new_tag, normalize)
        if replacement is None:
            renamed.append(tag)
        else:
            changes.append((normalize_tag(tag, normalize), replacement))
            renamed.append(replacement)
    if changes:
        updated["tags"] = sorted(set(renamed))
    return updated, changes


def rename_inline_tags(
    body: str,
    old_tag: str,
    new_tag: str,
    normalize: bool = True,
) -> tuple[str, list[tuple[str, str, int]]]:
    """Rename inline tags outside code blocks and comments.

    Returns:
        The updated body and ``(old, new, line)`` triples for each rename.
    """
    changes: list[tuple[str, str, int]] = []
    lines: list[str] = []
    for number, line, state in _scan_lines(body):
        if state is not _LineState.TEXT:
            lines.append(line)
            continue

        def _replace(match: re.Match[str]) -> str:
            replacement = rename_tag_value(match.group(1), old_tag, new_tag, normalize)
            if replacement is None:
                return match.group(0)
            changes.append((normalize_tag(match.group(1), normalize), replacement, number))
            return f"#{replacement}"

        lines.append(TAG_PATTERN.sub(_replace, line))
    if not changes:
        return body, changes
    return "\n".join(lines), changes


# ==============================================================================
# NOTE-LEVEL TAG OPERATIONS
# ==============================================================================


async def _load_note_text(vault: VaultMetadata, file_name: str) -> tuple[Path, str]:
    path = await resolve_note_path(vault, file_name)
    if not await anyio.Path(path).is_file():
        raise NoteNotFound(file_name, vault.name)
    return path, await anyio.Path(path).read_text(encoding="utf-8")


def _raise_if_nothing_succeeded(report: TagBatchReport) -> TagBatchReport:
    if not report.success and report.errors:
        raise BatchOperationFailed(f"Failed to {report.operation} tags: {report.message}", report)
    return report


async def add_tags(
    vault: VaultMetadata,
    files: Sequence[str],
    tags: Sequence[str],
    location: TagLocation = "both",
    normalize: bool = True,
    position: TagPosition = "end",
) -> TagBatchReport:
    """Add tags to each note in ``files``.

    Args:
        vault: Vault metadata.
        files: Vault-relative note paths.
        tags: Tags to add (validated before any note is touched).
        location: ``frontmatter``, ``content`` or ``both``.
        normalize: Fold camelCase tags into hyphenated lowercase.
        position: Where inline tags go in the body.

    Returns:
        A :class:`TagBatchReport` with per-note outcomes.

    Raises:
        InvalidTag: If any tag is invalid.
        BatchOperationFailed: If every note failed.
    """
    _validate_all(tags)
    await ensure_vault_ready(vault)
    report = TagBatchReport(operation="add")

    for file_name in files:
        try:
            path, text = await _load_note_text(vault, file_name)
            note = parse_note(text)
            added: list[TagChange] = []

            if location != "content":
                updated = add_tags_to_frontmatter(note.frontmatter, tags, normalize)
                if updated != note.frontmatter:
                    before = set(get_frontmatter_tags(note.frontmatter))
                    added.extend(
                        TagChange(tag, "frontmatter") for tag in updated["tags"] if tag not in before
                    )
                    note.frontmatter = updated
                    note.has_frontmatter = True

            if location != "frontmatter":
                body = add_inline_tags(note.body, tags, normalize, position)
                if body != note.body:
                    before = {normalize_tag(tag, normalize) for tag in extract_tags(note.body)}
                    added.extend(
                        TagChange(normalize_tag(tag, normalize), "content")
                        for tag in dict.fromkeys(tags)
                        if normalize_tag(tag, normalize) not in before
                    )
                    note.body = body

            if added:
                await write_with_rollback(path, stringify_note(note))
                report.success.append(file_name)
                report.details[file_name] = {"added": added}
        except Exception as exc:
            logger.warning("Could not add tags to '%s' in vault '%s': %s", file_name, vault.name, exc)
            report.errors.append(FailedItem(file_name, str(exc)))

    logger.info("Added tags %s to %d note(s) in vault '%s'", list(tags), len(report.success), vault.name)
    return _raise_if_nothing_succeeded(report)


async def remove_tags(
    vault: VaultMetadata,
    files: Sequence[str],
    tags: Sequence[str],
    location: TagLocation = "both",
    normalize: bool = True,
    preserve_children: bool = False,
    patterns: Sequence[str] = (),
) -> TagBatchReport:
    """Remove tags (and optionally pattern matches) from each note in ``files``.

    Raises:
        InvalidTag: If any tag is invalid.
        BatchOperationFailed: If every note failed.
    """
    _validate_all(tags)
    await ensure_vault_ready(vault)
    report = TagBatchReport(operation="remove")

    for file_name in files:
        try:
            path, text = await _load_note_text(vault, file_name)
            note = parse_note(text)
            removed: list[TagChange] = []
            preserved: list[TagChange] = []

            if location != "content":
                updated, fm_report = remove_tags_from_frontmatter(
                    note.frontmatter, tags, normalize, preserve_children, patterns
                )
                removed.extend(fm_report.removed)
                preserved.extend(fm_report.preserved)
                note.frontmatter = updated

            if location != "frontmatter":
                body, inline_report = remove_inline_tags(note.body, tags, normalize, preserve_children, patterns)
                removed.extend(inline_report.removed)
                preserved.extend(inline_report.preserved)
                note.body = body

            report.details[file_name] = {"removed": removed, "preserved": preserved}
            if removed:
                await write_with_rollback(path, stringify_note(note))
                report.success.append(file_name)
        except Exception as exc:
            logger.warning("Could not remove tags from '%s' in vault '%s': %s", file_name, vault.name, exc)
            report.errors.append(FailedItem(file_name, str(exc)))

    logger.info("Removed tags %s from %d note(s) in vault '%s'", list(tags), len(report.success), vault.name)
    return _raise_if_nothing_succeeded(report)
