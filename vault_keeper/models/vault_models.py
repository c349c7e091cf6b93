"""Pydantic input models for vault management operations."""

from __future__ import annotations

from pydantic import BaseModel, Field

from .base import BaseVaultInput


class ListVaultsInput(BaseModel):
    """Input model for the list-available-vaults tool.

    Takes no parameters; the model exists so every tool has a schema.
    """

    class Config:
        """Pydantic model configuration."""
        json_schema_extra = {"examples": [{}]}


class ListNotesInput(BaseVaultInput):
    """Input model for the list-notes tool.

    Examples:
        >>> ListNotesInput(vault=None, include_metadata=False)
        >>> ListNotesInput(vault="personal", include_metadata=True)
    """

    include_metadata: bool = Field(
        False,
        description=(
            "If True, include file metadata (modified, created, size) for each note."
        ),
    )
