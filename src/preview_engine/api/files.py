"""File endpoints - tree, read/save, history and session type-check."""

from fastapi import APIRouter, Query

from preview_engine.api.deps import ExecutorDep, SessionDep
from preview_engine.config import settings
from preview_engine.core.exceptions import PayloadTooLargeError
from preview_engine.models.requests import PathRequest, SaveFileRequest, SessionTypecheckRequest
from preview_engine.models.responses import (
    DiffResponse,
    DirtyFilesResponse,
    FileResponse,
    HistoryResponse,
    ResetResponse,
    SaveFileResponse,
    TreeResponse,
    TypecheckResponse,
)
from preview_engine.utils.paths import normalize_path

router = APIRouter(prefix="/sessions/{session_id}", tags=["Files"])


@router.get("/tree", response_model=TreeResponse)
async def get_tree(session: SessionDep) -> TreeResponse:
    """Get the session's file tree."""
    return TreeResponse(
        tree=session.files.read_tree(),
        total_files=session.total_files,
        dirty_files=len(session.files.dirty_files()),
        project_name=session.project_name,
    )


@router.get("/file", response_model=FileResponse)
async def read_file(
    session: SessionDep,
    path: str = Query(..., min_length=1, description="File path"),
) -> FileResponse:
    """Read a file's current content."""
    state = session.files.read_file(path)
    return FileResponse(**state.model_dump())


@router.put("/file", response_model=SaveFileResponse)
async def save_file(request: SaveFileRequest, session: SessionDep) -> SaveFileResponse:
    """Replace a file's content, recording the previous one for undo."""
    state = session.files.save_file(request.path, request.content)
    return SaveFileResponse(ok=True, path=state.path, dirty=state.dirty, version=state.version)


@router.get("/diff", response_model=DiffResponse)
async def get_diff(
    session: SessionDep,
    path: str = Query(..., min_length=1, description="File path"),
) -> DiffResponse:
    """Get a file's original and current content."""
    diff = session.files.diff(path)
    return DiffResponse(**diff.model_dump())


@router.post("/undo", response_model=HistoryResponse)
async def undo(request: PathRequest, session: SessionDep) -> HistoryResponse:
    """Step a file back one saved state."""
    state = session.files.undo(request.path)
    return HistoryResponse(
        path=state.path,
        content=state.content,
        dirty=state.dirty,
        can_undo=state.can_undo,
        can_redo=state.can_redo,
    )


@router.post("/redo", response_model=HistoryResponse)
async def redo(request: PathRequest, session: SessionDep) -> HistoryResponse:
    """Step a file forward one saved state."""
    state = session.files.redo(request.path)
    return HistoryResponse(
        path=state.path,
        content=state.content,
        dirty=state.dirty,
        can_undo=state.can_undo,
        can_redo=state.can_redo,
    )


@router.post("/reset", response_model=ResetResponse)
async def reset(request: PathRequest, session: SessionDep) -> ResetResponse:
    """Restore a file's original content and clear its history."""
    state = session.files.reset(request.path)
    return ResetResponse(path=state.path, content=state.content, dirty=state.dirty)


@router.get("/dirty", response_model=DirtyFilesResponse)
async def dirty_files(session: SessionDep) -> DirtyFilesResponse:
    """List files whose content differs from the generated original."""
    return DirtyFilesResponse(files=session.files.dirty_files())


@router.post("/typecheck", response_model=TypecheckResponse)
async def typecheck_session(
    request: SessionTypecheckRequest,
    session: SessionDep,
    executor: ExecutorDep,
) -> TypecheckResponse:
    """Type-check the session's current files.

    With ``path`` set, only diagnostics for that file are returned; the whole
    project is still checked so cross-file errors are found.
    """
    target = None
    if request.path is not None:
        target = normalize_path(request.path)
        session.files.entry(target)

    snapshot = session.files.snapshot()
    size = sum(len(content.encode("utf-8")) for content in snapshot.values())
    if size > settings.max_typecheck_bytes:
        raise PayloadTooLargeError("Project", size, settings.max_typecheck_bytes)

    result = await executor.typecheck(snapshot, request.compiler_options)
    found = result.diagnostics
    if target is not None:
        found = [d for d in found if d.file == target]
    return TypecheckResponse(diagnostics=found)
