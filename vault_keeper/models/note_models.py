"""Pydantic input models for note operations.

This module defines input models for note management operations:
- Read note content
- Create new notes
- Edit notes (append, prepend, replace, delete)
- Move/rename notes, within or across vaults
- Delete notes (trash or permanent)
- Create directories
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import Field, field_validator, model_validator

from .base import BaseNoteInput, BaseVaultInput, validate_relative_path


class ReadNoteInput(BaseNoteInput):
    """Input model for the read-note tool.

    Examples:
        >>> ReadNoteInput(path="Daily Notes/2025-10-27.md")
        >>> ReadNoteInput(path="Projects/My Project", vault="work")
    """

    class Config:
        """Pydantic model configuration."""
        json_schema_extra = {
            "examples": [
                {"path": "Daily Notes/2025-10-27.md", "vault": None},
                {"path": "Projects/My Project", "vault": "work"},
            ]
        }


class CreateNoteInput(BaseNoteInput):
    """Input model for the create-note tool.

    Creates a new markdown file. Fails if the note already exists. Parent
    folders are created automatically.
    """

    content: str = Field(
        description=(
            "Full markdown content for the note. "
            "Can be empty string to create a blank note."
        )
    )


class EditNoteInput(BaseNoteInput):
    """Input model for the edit-note tool.

    ``content`` is required for append, prepend and replace, and must be
    omitted for delete.

    Examples:
        >>> EditNoteInput(path="todo.md", operation="append", content="- [ ] Call Sam")
        >>> EditNoteInput(path="scratch.md", operation="delete")
    """

    operation: Literal["append", "prepend", "replace", "delete"] = Field(
        description="Edit to apply: append, prepend, replace or delete."
    )
    content: Optional[str] = Field(
        None,
        description="Text for append/prepend/replace. Omit for delete.",
    )

    @model_validator(mode="after")
    def validate_content_for_operation(self) -> "EditNoteInput":
        """Check that ``content`` is present exactly when the operation needs it."""
        if self.operation == "delete":
            if self.content is not None:
                raise ValueError("Content should not be provided for delete operation")
        elif not self.content:
            raise ValueError(f"Content is required for {self.operation} operation")
        return self


class MoveNoteInput(BaseVaultInput):
    """Input model for the move-note tool.

    Moves or renames a note and rewrites links to it. With
    ``destination_vault`` the note moves into another vault.
    """

    source: str = Field(min_length=1, description="Current note path relative to the vault root.")
    destination: str = Field(min_length=1, description="New note path relative to the (destination) vault root.")
    destination_vault: Optional[str] = Field(
        None,
        description="Vault to move the note into (omit to stay in the same vault).",
    )

    @field_validator("source", "destination")
    @classmethod
    def validate_paths(cls, v: str) -> str:
        return validate_relative_path(v, "Note path")

    @field_validator("destination_vault")
    @classmethod
    def validate_destination_vault(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("Destination vault name cannot be empty.")
        return v.strip() if v else None

    @model_validator(mode="after")
    def validate_paths_different(self) -> "MoveNoteInput":
        """Reject moves onto the same path in the same vault."""
        same_vault = self.destination_vault is None or self.destination_vault == self.vault
        if same_vault and self.source.removesuffix(".md") == self.destination.removesuffix(".md"):
            raise ValueError(
                "Source and destination must be different. "
                f"Both are set to '{self.source}'."
            )
        return self

    class Config:
        """Pydantic model configuration."""
        json_schema_extra = {
            "examples": [
                {"source": "Inbox/idea.md", "destination": "Projects/idea.md"},
                {"source": "Meeting.md", "destination": "Archive/Meeting.md", "destination_vault": "archive"},
            ]
        }


class DeleteNoteInput(BaseNoteInput):
    """Input model for the delete-note tool."""

    reason: Optional[str] = Field(
        None,
        description="Optional reason for deletion (stored in trash metadata).",
    )
    permanent: bool = Field(
        False,
        description="Permanently delete instead of moving to .trash (default: false).",
    )


class CreateDirectoryInput(BaseVaultInput):
    """Input model for the create-directory tool."""

    path: str = Field(
        min_length=1,
        description="Directory path relative to the vault root. Missing parents are created.",
        examples=["Projects/2025", "Archive"],
    )

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        return validate_relative_path(v, "Directory path")
