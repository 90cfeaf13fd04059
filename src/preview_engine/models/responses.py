"""API response models."""

from datetime import datetime

from pydantic import BaseModel

from preview_engine.models.diagnostics import Diagnostic
from preview_engine.models.session import TreeNode

# Session responses


class CreateSessionResponse(BaseModel):
    """A freshly created preview session."""

    session_id: str
    project_name: str
    total_files: int
    expires_at: datetime


class SessionResponse(BaseModel):
    """Session details and statistics."""

    session_id: str
    project_name: str
    total_files: int
    dirty_files: int
    created_at: datetime
    last_accessed_at: datetime
    expires_at: datetime
    files: list[str]


class SessionSummary(BaseModel):
    """Session entry in a listing."""

    session_id: str
    project_name: str
    total_files: int
    dirty_files: int
    created_at: datetime
    last_accessed_at: datetime
    expires_at: datetime


class SessionListResponse(BaseModel):
    """List of sessions response."""

    sessions: list[SessionSummary]
    total: int


# File responses


class TreeResponse(BaseModel):
    """Hierarchical file tree of a session."""

    tree: list[TreeNode]
    total_files: int
    dirty_files: int
    project_name: str


class FileResponse(BaseModel):
    """Current state of a file."""

    path: str
    content: str
    size: int
    dirty: bool
    version: int
    can_undo: bool
    can_redo: bool


class SaveFileResponse(BaseModel):
    """Result of saving a file."""

    ok: bool
    path: str
    dirty: bool
    version: int


class DiffResponse(BaseModel):
    """Original and current content of a file."""

    path: str
    original: str
    current: str
    dirty: bool


class HistoryResponse(BaseModel):
    """File content after undo or redo."""

    path: str
    content: str
    dirty: bool
    can_undo: bool
    can_redo: bool


class ResetResponse(BaseModel):
    """File content after a reset."""

    path: str
    content: str
    dirty: bool


class DirtyFilesResponse(BaseModel):
    """Paths whose content differs from the generated original."""

    files: list[str]


# Tool responses


class FormatResponse(BaseModel):
    """Formatted code."""

    formatted: str


class LintResponse(BaseModel):
    """Lint diagnostics, with the fixed code when fixing changed it."""

    diagnostics: list[Diagnostic]
    fixed_code: str | None = None


class TypecheckResponse(BaseModel):
    """Type-check diagnostics."""

    diagnostics: list[Diagnostic]


# Server responses


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    active_sessions: int
    sandbox_running: bool
    idle_workers: int


class InfoResponse(BaseModel):
    """Server info response."""

    name: str
    version: str
    python_version: str
    max_sessions: int
    active_sessions: int
    session_ttl_minutes: int
    sandbox_workers: int
    replaced_workers: int
    total_files: int
    total_dirty_files: int
