"""Main application entry point."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from preview_engine import __version__
from preview_engine.api.errors import register_error_handlers
from preview_engine.api.router import api_router
from preview_engine.config import settings
from preview_engine.core.generator import SnapshotGenerator
from preview_engine.core.session import SessionManager
from preview_engine.sandbox.executor import SandboxExecutor

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    # Startup
    logger.info(f"Starting Preview Engine v{__version__}")
    logger.info(f"Max sessions: {settings.max_sessions}")
    logger.info(f"Session TTL: {settings.session_ttl_minutes} minutes")

    session_manager = SessionManager()
    await session_manager.start()
    app.state.session_manager = session_manager

    executor = SandboxExecutor()
    await executor.start()
    app.state.executor = executor

    app.state.generator = SnapshotGenerator()

    yield

    # Shutdown
    logger.info("Shutting down...")
    await executor.stop()
    await session_manager.stop()
    logger.info("Shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Preview Engine",
        description="Preview sessions and sandboxed format, lint and typecheck for "
        "generated TypeScript projects",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # Register routers
    app.include_router(api_router)

    # Register error handlers
    register_error_handlers(app)

    return app


# Create app instance
app = create_app()


def main() -> None:
    """Run the server."""
    uvicorn.run(
        "preview_engine.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
