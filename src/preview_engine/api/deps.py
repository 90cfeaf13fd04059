"""API dependencies."""

from typing import Annotated

from fastapi import Depends, Path, Request

from preview_engine.core.generator import ProjectGenerator
from preview_engine.core.session import Session, SessionManager
from preview_engine.sandbox.executor import SandboxExecutor


async def get_session_manager(request: Request) -> SessionManager:
    """Get the session manager from app state."""
    manager: SessionManager = request.app.state.session_manager
    return manager


async def get_session(
    session_id: Annotated[str, Path(description="Session ID")],
    session_manager: Annotated[SessionManager, Depends(get_session_manager)],
) -> Session:
    """Get a live session by ID, refreshing its TTL."""
    return session_manager.get(session_id)


async def get_executor(request: Request) -> SandboxExecutor:
    """Get the sandbox executor from app state."""
    executor: SandboxExecutor = request.app.state.executor
    return executor


async def get_generator(request: Request) -> ProjectGenerator:
    """Get the project generator from app state."""
    generator: ProjectGenerator = request.app.state.generator
    return generator


SessionManagerDep = Annotated[SessionManager, Depends(get_session_manager)]
SessionDep = Annotated[Session, Depends(get_session)]
ExecutorDep = Annotated[SandboxExecutor, Depends(get_executor)]
GeneratorDep = Annotated[ProjectGenerator, Depends(get_generator)]
