"""Parsing and serialization of notes with YAML frontmatter."""

from __future__ import annotations

import copy
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Optional, Union

import yaml
from frontmatter.default_handlers import YAMLHandler

from vault_keeper.errors import InvalidFrontmatter

# Closed recursive variant accepted as a frontmatter value.
FrontmatterScalar = Union[str, int, float, bool, None, date, datetime]
FrontmatterValue = Union[FrontmatterScalar, list["FrontmatterValue"], dict[str, "FrontmatterValue"]]

_FRONTMATTER_BLOCK = re.compile(r"^---\n([\s\S]*?)\n---\n([\s\S]*)$")
_TAG_SPLIT = re.compile(r"[,\s]+")

_yaml_handler = YAMLHandler()


@dataclass
class Note:
    """A note decomposed into its frontmatter mapping and markdown body."""

    frontmatter: dict[str, FrontmatterValue] = field(default_factory=dict)
    body: str = ""
    has_frontmatter: bool = False
    raw_frontmatter: Optional[str] = None
    source_frontmatter: Optional[dict[str, FrontmatterValue]] = field(default=None, repr=False, compare=False)

    @property
    def frontmatter_changed(self) -> bool:
        return self.frontmatter != self.source_frontmatter


# ==============================================================================
# HELPER FUNCTIONS
# ==============================================================================


def _coerce(value: Any, path: str, _parents: frozenset[int] = frozenset()) -> FrontmatterValue:
    """Coerce a YAML value into the closed frontmatter variant.

    Raises:
        InvalidFrontmatter: If the value (or a nested value) has an unsupported type
            or refers back to itself through a YAML alias.
    """
    if value is None or isinstance(value, (str, bool, int, float, date, datetime)):
        return value
    if isinstance(value, (list, tuple, Mapping)):
        if id(value) in _parents:
            raise InvalidFrontmatter(
                f"Frontmatter field '{path}' contains a recursive YAML alias.",
                {"field": path},
            )
        parents = _parents | {id(value)}
        if isinstance(value, Mapping):
            return {
                str(key): _coerce(item, f"{path}.{key}" if path else str(key), parents)
                for key, item in value.items()
            }
        return [_coerce(item, f"{path}[{index}]", parents) for index, item in enumerate(value)]
    raise InvalidFrontmatter(
        f"Frontmatter field '{path}' uses unsupported type '{type(value).__name__}'.",
        {"field": path},
    )


def _load_block(block: str) -> dict[str, FrontmatterValue]:
    try:
        loaded = _yaml_handler.load(block)
    except yaml.YAMLError as exc:
        raise InvalidFrontmatter(f"Invalid frontmatter YAML format: {exc}") from exc

    if loaded is None:
        return {}
    if not isinstance(loaded, Mapping):
        raise InvalidFrontmatter(
            f"Frontmatter must be a mapping of key/value pairs, got {type(loaded).__name__}."
        )
    return {str(key): _coerce(value, str(key), frozenset({id(loaded)})) for key, value in loaded.items()}


def _dump_block(frontmatter: dict[str, FrontmatterValue]) -> str:
    sanitized = {str(key): _coerce(value, str(key)) for key, value in frontmatter.items()}
    try:
        return _yaml_handler.export(sanitized, sort_keys=False)
    except yaml.YAMLError as exc:
        raise InvalidFrontmatter(f"Frontmatter cannot be serialized to YAML: {exc}") from exc


# ==============================================================================
# NOTE CODEC
# ==============================================================================


def parse_note(text: str) -> Note:
    """Split a note into frontmatter and body.

    The frontmatter block must open the document with ``---`` and close with a
    ``---`` line followed by a newline. Notes without such a block parse with an
    empty mapping and the whole text as body.

    Args:
        text: Raw note content.

    Returns:
        The parsed :class:`Note`.

    Raises:
        InvalidFrontmatter: If the block is not valid YAML or is not a mapping.
    """
    match = _FRONTMATTER_BLOCK.match(text)
    if not match:
        return Note(frontmatter={}, body=text, has_frontmatter=False, source_frontmatter={})

    raw_block, body = match.group(1), match.group(2)
    frontmatter = _load_block(raw_block)
    return Note(
        frontmatter=frontmatter,
        body=body,
        has_frontmatter=True,
        raw_frontmatter=raw_block,
        source_frontmatter=copy.deepcopy(frontmatter),
    )


def stringify_note(note: Note) -> str:
    """Serialize a :class:`Note` back to text.

    An unmodified frontmatter block is emitted byte-for-byte as it was read; a
    modified one is re-serialized preserving key order. An empty mapping drops
    the block entirely.
    """
    if not note.frontmatter:
        return note.body
    if note.raw_frontmatter is not None and not note.frontmatter_changed:
        return f"---\n{note.raw_frontmatter}\n---\n{note.body}"
    return f"---\n{_dump_block(note.frontmatter)}\n---\n{note.body}"


def split_frontmatter(text: str) -> tuple[str, str]:
    """Split raw text into ``(frontmatter_prefix, body)`` without parsing YAML.

    ``prefix + body == text`` always holds; the prefix is empty when there is no
    frontmatter block.
    """
    match = _FRONTMATTER_BLOCK.match(text)
    if not match:
        return "", text
    return text[: match.start(2)], match.group(2)


def get_frontmatter_tags(frontmatter: Mapping[str, Any]) -> list[str]:
    """Return the ``tags`` frontmatter value as a list of strings."""
    value = frontmatter.get("tags")
    if value is None:
        return []
    if isinstance(value, str):
        return [tag for tag in _TAG_SPLIT.split(value) if tag]
    if isinstance(value, list):
        return [str(tag).strip() for tag in value if tag is not None and str(tag).strip()]
    return [str(value)]
