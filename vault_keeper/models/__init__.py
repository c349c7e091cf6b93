"""Pydantic input models for MCP tool validation.

Each model is the input schema for one tool, with field-level validation
and descriptive error messages. MCP clients see the generated JSON schema.

Architecture:
- base: Base models (BaseVaultInput, BaseNoteInput) and path validation
- note_models: Note CRUD and directory creation
- tag_models: Adding, removing and renaming tags
- search_models: Vault search
- vault_models: Vault listing and note listing
"""

from .base import BaseNoteInput, BaseVaultInput
from .note_models import (
    CreateDirectoryInput,
    CreateNoteInput,
    DeleteNoteInput,
    EditNoteInput,
    MoveNoteInput,
    ReadNoteInput,
)
from .search_models import SearchVaultInput
from .tag_models import AddTagsInput, ManageTagsInput, RemoveTagsInput, RenameTagInput
from .vault_models import ListNotesInput, ListVaultsInput

__all__ = [
    # Base models
    "BaseVaultInput",
    "BaseNoteInput",
    # Note models
    "ReadNoteInput",
    "CreateNoteInput",
    "EditNoteInput",
    "MoveNoteInput",
    "DeleteNoteInput",
    "CreateDirectoryInput",
    # Tag models
    "AddTagsInput",
    "RemoveTagsInput",
    "ManageTagsInput",
    "RenameTagInput",
    # Search models
    "SearchVaultInput",
    # Vault models
    "ListVaultsInput",
    "ListNotesInput",
]
