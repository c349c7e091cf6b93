"""Pydantic input models for search operations."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import Field, field_validator

from .base import BaseVaultInput, validate_relative_path


class SearchVaultInput(BaseVaultInput):
    """Input model for the search-vault tool.

    Substring search over note contents and/or file names. A query of the
    form ``tag:<pattern>`` matches inline tags instead.

    Examples:
        >>> SearchVaultInput(query="meeting notes")
        >>> SearchVaultInput(query="tag:status/*", path="Projects")
    """

    query: str = Field(
        min_length=1,
        description="Text to search for, or 'tag:<tag>' to match inline tags ('*' wildcards allowed).",
        examples=["meeting notes", "tag:project/alpha", "tag:status/*"],
    )
    path: Optional[str] = Field(
        None,
        description="Folder (relative to the vault root) to limit the search to.",
    )
    case_sensitive: bool = Field(False, description="Match text case-sensitively.")
    search_type: Literal["content", "filename", "both"] = Field(
        "content",
        description="Search note contents, file names, or both.",
    )

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return validate_relative_path(v, "Folder path")

    class Config:
        """Pydantic model configuration."""
        json_schema_extra = {
            "examples": [
                {"query": "meeting notes", "search_type": "content"},
                {"query": "tag:status/*", "path": "Projects"},
                {"query": "2025", "search_type": "filename"},
            ]
        }
