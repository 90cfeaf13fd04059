"""Session and file store models."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class SessionInfo(BaseModel):
    """Session summary for API responses."""

    session_id: str
    project_name: str
    total_files: int
    dirty_files: int
    created_at: datetime
    last_accessed_at: datetime
    expires_at: datetime


class SessionStats(BaseModel):
    """Aggregate counters across all live sessions."""

    total_sessions: int
    total_files: int
    total_dirty_files: int


class FileState(BaseModel):
    """Current state of one file in a session."""

    path: str
    content: str
    size: int
    dirty: bool
    version: int
    can_undo: bool
    can_redo: bool


class FileDiff(BaseModel):
    """Original and current content of a file, untransformed."""

    path: str
    original: str
    current: str
    dirty: bool


class TreeNode(BaseModel):
    """A file or directory in the projected file tree."""

    name: str
    path: str
    type: Literal["file", "dir"]
    children: list["TreeNode"] | None = Field(default=None)
