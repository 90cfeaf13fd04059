"""API request models."""

from typing import Any

from pydantic import BaseModel, Field, field_validator


class CreateSessionRequest(BaseModel):
    """Request to open a preview session from a wizard configuration."""

    config: dict[str, Any]


class SaveFileRequest(BaseModel):
    """Replace a file's current content."""

    path: str = Field(min_length=1)
    content: str

    @field_validator("content")
    @classmethod
    def check_encodable(cls, v: str) -> str:
        try:
            v.encode("utf-8")
        except UnicodeEncodeError as e:
            raise ValueError(f"content is not valid UTF-8 text: {e.reason}") from e
        return v


class PathRequest(BaseModel):
    """Target a single file (undo, redo, reset)."""

    path: str = Field(min_length=1)


class SessionTypecheckRequest(BaseModel):
    """Type-check a session's current files."""

    compiler_options: dict[str, Any] | None = None
    path: str | None = None


class FormatRequest(BaseModel):
    """Format a code fragment."""

    code: str
    language: str = "typescript"


class LintRequest(BaseModel):
    """Lint a code fragment as if it lived at ``file_path``."""

    code: str
    file_path: str = "file.ts"
    fix: bool = False


class TypecheckRequest(BaseModel):
    """Type-check a raw ``path -> content`` snapshot."""

    files: dict[str, str]
    compiler_options: dict[str, Any] | None = None
