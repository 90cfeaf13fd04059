"""Session management endpoints."""

from fastapi import APIRouter, Response, status

from preview_engine.api.deps import GeneratorDep, SessionDep, SessionManagerDep
from preview_engine.models.requests import CreateSessionRequest
from preview_engine.models.responses import (
    CreateSessionResponse,
    SessionListResponse,
    SessionResponse,
    SessionSummary,
)
from preview_engine.utils.archive import archive_filename, build_zip

router = APIRouter(prefix="/sessions", tags=["Sessions"])


@router.post("", response_model=CreateSessionResponse, status_code=status.HTTP_201_CREATED)
async def create_session(
    request: CreateSessionRequest,
    session_manager: SessionManagerDep,
    generator: GeneratorDep,
) -> CreateSessionResponse:
    """Generate a project from a configuration and open a preview session on it."""
    project = generator.generate(request.config)
    session = session_manager.create(project.files, project.project_name)
    return CreateSessionResponse(
        session_id=session.id,
        project_name=session.project_name,
        total_files=session.total_files,
        expires_at=session.expires_at(session_manager.ttl_seconds),
    )


@router.get("", response_model=SessionListResponse)
async def list_sessions(session_manager: SessionManagerDep) -> SessionListResponse:
    """List all active sessions."""
    sessions = session_manager.list_sessions()
    return SessionListResponse(
        sessions=[
            SessionSummary(**s.to_info(session_manager.ttl_seconds).model_dump())
            for s in sessions
        ],
        total=len(sessions),
    )


@router.get("/{session_id}", response_model=SessionResponse)
async def get_session(session: SessionDep, session_manager: SessionManagerDep) -> SessionResponse:
    """Get session details."""
    info = session.to_info(session_manager.ttl_seconds)
    return SessionResponse(**info.model_dump(), files=session.files.paths)


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_session(
    session_id: str,
    session_manager: SessionManagerDep,
) -> None:
    """Invalidate a session and free its file history."""
    session_manager.destroy(session_id)


@router.get(
    "/{session_id}/download",
    response_class=Response,
    responses={200: {"content": {"application/zip": {}}}},
)
async def download_session(session: SessionDep) -> Response:
    """Download the session's current files as a ZIP archive."""
    content = build_zip(session.files.snapshot(), session.project_name, session.created_at)
    filename = archive_filename(session.project_name)
    return Response(
        content=content,
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
