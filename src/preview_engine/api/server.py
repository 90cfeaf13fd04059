"""Server endpoints - health and info."""

import sys

from fastapi import APIRouter

from preview_engine import __version__
from preview_engine.api.deps import ExecutorDep, SessionManagerDep
from preview_engine.models.responses import HealthResponse, InfoResponse

router = APIRouter(tags=["Server"])


@router.get("/health", response_model=HealthResponse)
async def health_check(
    session_manager: SessionManagerDep,
    executor: ExecutorDep,
) -> HealthResponse:
    """Check server health status."""
    return HealthResponse(
        status="healthy" if executor.is_running else "degraded",
        version=__version__,
        active_sessions=session_manager.active_count,
        sandbox_running=executor.is_running,
        idle_workers=executor.idle_count,
    )


@router.get("/info", response_model=InfoResponse)
async def server_info(
    session_manager: SessionManagerDep,
    executor: ExecutorDep,
) -> InfoResponse:
    """Get server information."""
    stats = session_manager.stats()
    return InfoResponse(
        name="Preview Engine",
        version=__version__,
        python_version=sys.version.split()[0],
        max_sessions=session_manager.max_sessions,
        active_sessions=stats.total_sessions,
        session_ttl_minutes=session_manager.ttl_seconds // 60,
        sandbox_workers=executor.size,
        replaced_workers=executor.replaced_count,
        total_files=stats.total_files,
        total_dirty_files=stats.total_dirty_files,
    )
