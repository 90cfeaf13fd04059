"""Global test fixtures."""

from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from preview_engine.core.file_store import VirtualFileStore
from preview_engine.core.generator import SnapshotGenerator
from preview_engine.core.session import SessionManager
from preview_engine.main import create_app
from preview_engine.sandbox.executor import SandboxExecutor

SAMPLE_FILES = [
    ("package.json", '{\n  "name": "demo-app"\n}\n'),
    ("src/main.ts", "import { AppModule } from './app.module';\n\nconsole.log(AppModule);\n"),
    ("src/app.module.ts", "export class AppModule {}\n"),
    ("src/users/users.service.ts", "export const users: string[] = [];\n"),
    ("README.md", "# demo-app\n"),
]


class FakeClock:
    """Controllable clock for TTL tests."""

    def __init__(self) -> None:
        self.now = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def sample_files() -> list[tuple[str, str]]:
    """A small generated project."""
    return list(SAMPLE_FILES)


@pytest.fixture
def file_store(sample_files: list[tuple[str, str]]) -> VirtualFileStore:
    """Create a file store over the sample project."""
    return VirtualFileStore(sample_files)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest_asyncio.fixture
async def session_manager(clock: FakeClock) -> AsyncGenerator[SessionManager, None]:
    """Create session manager with a controllable clock."""
    manager = SessionManager(ttl_seconds=1800, max_sessions=3, clock=clock)
    await manager.start()
    yield manager
    await manager.stop()


@pytest_asyncio.fixture
async def executor() -> AsyncGenerator[SandboxExecutor, None]:
    """Start a single-worker sandbox pool."""
    pool = SandboxExecutor(workers=1, memory_limit_mb=0)
    await pool.start()
    yield pool
    await pool.stop()


@pytest_asyncio.fixture
async def app(session_manager: SessionManager, executor: SandboxExecutor):
    """Create FastAPI test app with its managers wired in."""
    app = create_app()
    app.state.session_manager = session_manager
    app.state.executor = executor
    app.state.generator = SnapshotGenerator()
    return app


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP test client."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
