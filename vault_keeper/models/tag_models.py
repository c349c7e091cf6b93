"""Pydantic input models for tag operations.

This module defines input models for tag management tools:
- Add tags to notes (frontmatter, inline or both)
- Remove tags by name or wildcard pattern
- Combined add/remove via a single tool
- Rename a tag across the whole vault
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import Field, field_validator, model_validator

from vault_keeper.constants import MAX_BATCH_SIZE

from .base import BaseVaultInput, validate_relative_path

TagLocation = Literal["frontmatter", "content", "both"]


def _clean_tag(tag: str) -> str:
    cleaned = tag.strip().lstrip("#")
    if not cleaned:
        raise ValueError("Tags cannot be empty.")
    return cleaned


class BaseTagNotesInput(BaseVaultInput):
    """Shared fields for tools that change tags on a list of notes."""

    files: list[str] = Field(
        min_length=1,
        description="Note paths relative to the vault root.",
        examples=[["Projects/alpha.md", "Daily Notes/2025-10-27"]],
    )
    location: TagLocation = Field(
        "both",
        description="Where to apply the change: frontmatter, content (inline tags) or both.",
    )
    normalize: bool = Field(
        True,
        description="Normalize tags (camelCase segments become hyphenated lowercase).",
    )

    @field_validator("files")
    @classmethod
    def validate_files(cls, v: list[str]) -> list[str]:
        return [validate_relative_path(item, "Note path") for item in v]


class AddTagsInput(BaseTagNotesInput):
    """Input model for the add-tags tool.

    Examples:
        >>> AddTagsInput(files=["idea.md"], tags=["project/alpha"])
        >>> AddTagsInput(files=["idea.md"], tags=["todo"], location="content", position="start")
    """

    tags: list[str] = Field(
        min_length=1,
        description="Tags to add; a leading '#' is ignored.",
    )
    position: Literal["start", "end"] = Field(
        "end",
        description="Where inline tags are inserted in the note body.",
    )

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: list[str]) -> list[str]:
        return [_clean_tag(tag) for tag in v]

    class Config:
        """Pydantic model configuration."""
        json_schema_extra = {
            "examples": [
                {"files": ["Projects/alpha.md"], "tags": ["project/alpha"], "location": "both"},
                {"files": ["inbox.md"], "tags": ["todo"], "location": "content", "position": "start"},
            ]
        }


class RemoveTagsInput(BaseTagNotesInput):
    """Input model for the remove-tags tool.

    Either ``tags`` or ``patterns`` must be given. Patterns use ``*`` as a
    wildcard (``status/*``).
    """

    tags: list[str] = Field(
        default_factory=list,
        description="Tags to remove; a leading '#' is ignored.",
    )
    patterns: list[str] = Field(
        default_factory=list,
        description="Wildcard patterns of tags to remove, e.g. 'status/*'.",
    )
    preserve_children: bool = Field(
        False,
        description="Keep hierarchical children of removed tags (removing 'project' keeps 'project/alpha').",
    )

    @field_validator("tags", "patterns")
    @classmethod
    def validate_tags(cls, v: list[str]) -> list[str]:
        return [_clean_tag(tag) for tag in v]

    @model_validator(mode="after")
    def validate_something_to_remove(self) -> "RemoveTagsInput":
        if not self.tags and not self.patterns:
            raise ValueError("Provide at least one tag or pattern to remove.")
        return self


class ManageTagsInput(BaseTagNotesInput):
    """Input model for the manage-tags tool (add or remove in one call)."""

    operation: Literal["add", "remove"] = Field(description="Whether to add or remove the tags.")
    tags: list[str] = Field(min_length=1, description="Tags to add or remove.")

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: list[str]) -> list[str]:
        return [_clean_tag(tag) for tag in v]


class RenameTagInput(BaseVaultInput):
    """Input model for the rename-tag tool.

    Renames a tag in frontmatter and inline across every note in the vault,
    updating saved searches as well.

    Examples:
        >>> RenameTagInput(old_tag="proj", new_tag="project")
        >>> RenameTagInput(old_tag="#todo", new_tag="task", create_backup=False)
    """

    old_tag: str = Field(min_length=1, description="Tag to rename (leading '#' optional).")
    new_tag: str = Field(min_length=1, description="Replacement tag (leading '#' optional).")
    create_backup: bool = Field(
        True,
        description="Snapshot affected notes into .backup before renaming.",
    )
    normalize: bool = Field(True, description="Normalize both tags before matching.")
    batch_size: Optional[int] = Field(
        None,
        ge=1,
        le=MAX_BATCH_SIZE,
        description="Notes processed concurrently per batch (omit to use the configured default).",
    )

    @field_validator("old_tag", "new_tag")
    @classmethod
    def validate_tag(cls, v: str) -> str:
        return _clean_tag(v)

    @model_validator(mode="after")
    def validate_tags_different(self) -> "RenameTagInput":
        if self.old_tag == self.new_tag:
            raise ValueError(f"Old and new tag are both '{self.old_tag}'.")
        return self
