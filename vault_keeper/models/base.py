"""Base Pydantic models for MCP tool input validation.

This module defines base models that provide common validation patterns
for vault-scoped and note-scoped operations. Other input models inherit
from these bases.

Base Models:
- BaseVaultInput: Optional vault name, falling back to the default vault
- BaseNoteInput: Adds a vault-relative note path
"""

from __future__ import annotations

import re
from typing import Optional

from pydantic import BaseModel, Field, field_validator

_WINDOWS_ABSOLUTE = re.compile(r"^[a-zA-Z]:[\\/]")


def validate_relative_path(value: str, label: str = "Path") -> str:
    """Shared validation for vault-relative paths.

    Enforces:
    - Non-empty value
    - No '.' or '..' segments
    - Relative path only (no leading separator, drive letter or UNC root)

    Raises:
        ValueError: If the path is empty, absolute or uses traversal segments.
    """
    cleaned = value.strip()
    if not cleaned:
        raise ValueError(f"{label} cannot be empty.")

    if cleaned.startswith(("/", "\\")) or _WINDOWS_ABSOLUTE.match(cleaned):
        raise ValueError(
            f"{label} must be relative to the vault root. "
            f"Invalid path: '{cleaned}'"
        )

    parts = re.split(r"[\\/]", cleaned)
    if any(part in {".", ".."} for part in parts):
        raise ValueError(
            f"{label} cannot contain '.' or '..' path segments. "
            f"Invalid path: '{cleaned}'"
        )
    return cleaned


class BaseVaultInput(BaseModel):
    """Base model for operations scoped to one vault."""

    vault: Optional[str] = Field(
        None,
        description=(
            "Vault name (omit to use the default vault). "
            "Use list-available-vaults to discover available vaults."
        ),
    )

    @field_validator("vault")
    @classmethod
    def validate_vault(cls, v: Optional[str]) -> Optional[str]:
        """Validate vault name format.

        Raises:
            ValueError: If vault name is an empty string
        """
        if v is not None and not v.strip():
            raise ValueError(
                "Vault name cannot be empty. "
                "Either omit the vault parameter to use the default vault, "
                "or provide a valid vault name."
            )
        return v.strip() if v else None


class BaseNoteInput(BaseVaultInput):
    """Base model for note operations with common validation.

    All note-related input models should inherit from this class.
    """

    path: str = Field(
        min_length=1,
        description=(
            "Note path relative to the vault root; the .md extension is optional. "
            "Examples: 'Daily Notes/2025-10-27.md', 'Projects/New Project'."
        ),
        examples=["Daily Notes/2025-10-27.md", "Projects/New Project", "README"],
    )

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        """Validate the note path for safety and format."""
        cleaned = validate_relative_path(v, "Note path")
        if cleaned == ".md":
            raise ValueError("Note path cannot be just '.md'. Provide a valid note name.")
        return cleaned
