"""Pool of sandboxed worker processes.

Workers are long-lived ``spawn`` processes, each talking to the host over
one pipe and handling one request at a time. A worker that times out or
dies is killed and replaced in the background; it is never handed another
request.
"""

import asyncio
import contextlib
import logging
import multiprocessing
from collections.abc import Mapping
from multiprocessing.connection import Connection
from multiprocessing.process import BaseProcess
from typing import Any

from pydantic import ValidationError

from preview_engine.config import settings
from preview_engine.core.exceptions import (
    FormatError,
    LintError,
    PreviewEngineError,
    SandboxFaultError,
    SandboxTimeoutError,
    SandboxViolationError,
    TypecheckError,
)
from preview_engine.sandbox.messages import (
    ErrorKind,
    FormatRequest,
    FormatResult,
    Invocation,
    InvocationState,
    LintRequest,
    LintResult,
    SandboxResponse,
    TypecheckRequest,
    TypecheckResult,
)
from preview_engine.sandbox.worker import run_worker

logger = logging.getLogger(__name__)

RESPAWN_BACKOFF_SECONDS = 0.5
RESPAWN_BACKOFF_MAX_SECONDS = 30.0

_TOOL_ERRORS: dict[str, type[PreviewEngineError]] = {
    "format": FormatError,
    "lint": LintError,
    "typecheck": TypecheckError,
}


class SandboxWorker:
    """Host-side handle on one worker process."""

    def __init__(self, ctx: Any, memory_limit_mb: int, log_level: str):
        self.conn: Connection
        self.conn, child_conn = ctx.Pipe(duplex=True)
        self.process: BaseProcess = ctx.Process(
            target=run_worker,
            args=(child_conn, memory_limit_mb, log_level),
            name="preview-engine-sandbox",
            daemon=True,
        )
        self.process.start()
        child_conn.close()
        self.handled = 0

    @property
    def pid(self) -> int | None:
        return self.process.pid

    def is_alive(self) -> bool:
        return self.process.is_alive()

    def call(self, envelope: dict[str, Any], timeout: float) -> Any | None:
        """Send one request and wait for the reply (blocking).

        Returns None on timeout.

        Raises:
            EOFError: If the worker exited.
            OSError: If the pipe is broken.
        """
        self.conn.send(envelope)
        if not self.conn.poll(timeout):
            return None
        reply = self.conn.recv()
        self.handled += 1
        return reply

    def kill(self) -> None:
        """Terminate the process immediately."""
        if self.process.is_alive():
            self.process.kill()
        self.process.join(timeout=5)
        self.conn.close()

    def shutdown(self, timeout: float = 2.0) -> None:
        """Ask the worker to exit, killing it if it does not."""
        with contextlib.suppress(OSError):
            self.conn.send(None)
        self.process.join(timeout=timeout)
        if self.process.is_alive():
            self.process.kill()
            self.process.join(timeout=5)
        self.conn.close()


class SandboxExecutor:
    """Runs format, lint and typecheck requests in isolated workers."""

    def __init__(
        self,
        workers: int | None = None,
        memory_limit_mb: int | None = None,
        format_timeout: float | None = None,
        lint_timeout: float | None = None,
        typecheck_timeout: float | None = None,
    ):
        self.size = workers if workers is not None else settings.sandbox_workers
        self.memory_limit_mb = (
            memory_limit_mb if memory_limit_mb is not None else settings.sandbox_memory_limit_mb
        )
        self.timeouts = {
            "format": format_timeout or settings.format_timeout_seconds,
            "lint": lint_timeout or settings.lint_timeout_seconds,
            "typecheck": typecheck_timeout or settings.typecheck_timeout_seconds,
        }

        self._ctx = multiprocessing.get_context("spawn")
        self._idle: asyncio.Queue[SandboxWorker] | None = None
        self._workers: set[SandboxWorker] = set()
        self._replacements: set[asyncio.Task[None]] = set()
        self._running = False
        self.replaced_count = 0

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def idle_count(self) -> int:
        return self._idle.qsize() if self._idle is not None else 0

    def _spawn(self) -> SandboxWorker:
        worker = SandboxWorker(self._ctx, self.memory_limit_mb, settings.log_level)
        self._workers.add(worker)
        return worker

    async def start(self) -> None:
        """Spawn the worker pool."""
        if self._running:
            return
        self._idle = asyncio.Queue()
        for _ in range(self.size):
            worker = await asyncio.to_thread(self._spawn)
            self._idle.put_nowait(worker)
        self._running = True
        logger.info(f"SandboxExecutor started with {self.size} workers")

    async def stop(self) -> None:
        """Stop every worker, including any being replaced."""
        self._running = False
        for task in list(self._replacements):
            task.cancel()
        for task in list(self._replacements):
            with contextlib.suppress(asyncio.CancelledError):
                await task

        workers = list(self._workers)
        self._workers.clear()
        for worker in workers:
            await asyncio.to_thread(worker.shutdown)
        self._idle = None
        logger.info(f"SandboxExecutor stopped ({len(workers)} workers shut down)")

    def _retire(self, worker: SandboxWorker) -> None:
        self._workers.discard(worker)
        task = asyncio.create_task(self._replace(worker))
        self._replacements.add(task)
        task.add_done_callback(self._replacements.discard)

    async def _replace(self, worker: SandboxWorker) -> None:
        await asyncio.to_thread(worker.kill)
        delay = RESPAWN_BACKOFF_SECONDS
        while True:
            if not self._running:
                return
            try:
                replacement = await asyncio.to_thread(self._spawn)
                break
            except OSError as e:
                logger.error(f"Failed to spawn sandbox worker, retrying in {delay}s: {e}")
                await asyncio.sleep(delay)
                delay = min(delay * 2, RESPAWN_BACKOFF_MAX_SECONDS)
        if not self._running or self._idle is None:
            self._workers.discard(replacement)
            await asyncio.to_thread(replacement.shutdown)
            return
        self.replaced_count += 1
        self._idle.put_nowait(replacement)
        logger.info(f"Replaced sandbox worker {worker.pid} with {replacement.pid}")

    async def execute(
        self,
        request: FormatRequest | LintRequest | TypecheckRequest,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """Run one request on the next idle worker.

        Returns the tool's result payload.

        Raises:
            SandboxTimeoutError: No reply within the timeout.
            SandboxFaultError: The worker died or replied incoherently.
            SandboxViolationError: The request tried to reach the host.
            FormatError, LintError, TypecheckError: The tool failed.
        """
        kind = request.kind
        if not self._running or self._idle is None:
            raise SandboxFaultError(kind, "sandbox executor is not running")
        timeout = timeout or self.timeouts[kind]

        invocation = Invocation(request)
        try:
            worker = await asyncio.wait_for(self._idle.get(), timeout)
        except asyncio.TimeoutError:
            logger.warning(f"No idle sandbox worker for {kind} within {timeout}s ({invocation.id})")
            raise SandboxTimeoutError(kind, timeout) from None
        invocation.transition_to(InvocationState.DISPATCHED)

        healthy = False
        try:
            try:
                raw = await asyncio.to_thread(worker.call, invocation.envelope(), timeout)
            except (EOFError, OSError) as e:
                invocation.transition_to(InvocationState.FAULTED)
                logger.warning(f"Sandbox worker {worker.pid} died during {kind} ({invocation.id})")
                raise SandboxFaultError(kind, "worker exited unexpectedly") from e

            if raw is None:
                invocation.transition_to(InvocationState.TIMED_OUT)
                logger.warning(
                    f"Sandbox {kind} timed out after {timeout}s on worker {worker.pid} "
                    f"({invocation.id})"
                )
                raise SandboxTimeoutError(kind, timeout)

            try:
                response = SandboxResponse.model_validate(raw)
            except ValidationError as e:
                invocation.transition_to(InvocationState.FAULTED)
                raise SandboxFaultError(kind, "malformed worker response") from e
            if response.request_id != invocation.id:
                invocation.transition_to(InvocationState.FAULTED)
                raise SandboxFaultError(kind, "worker replied to a different request")

            healthy = True
        finally:
            # Cancelled or failed calls leave the worker in an unknown state.
            if healthy and self._running and self._idle is not None:
                self._idle.put_nowait(worker)
            else:
                self._retire(worker)

        invocation.transition_to(InvocationState.COMPLETED)
        logger.debug(f"Sandbox {kind} finished in {invocation.elapsed:.3f}s")

        if not response.success:
            raise self._failure(kind, response)
        return response.result or {}

    @staticmethod
    def _failure(kind: str, response: SandboxResponse) -> PreviewEngineError:
        reason = response.error or "unknown error"
        if response.error_kind == ErrorKind.SANDBOX_VIOLATION:
            logger.warning(f"Security event: sandbox violation during {kind}: {reason}")
            return SandboxViolationError(kind, reason)
        if response.error_kind == ErrorKind.INTERNAL:
            return SandboxFaultError(kind, reason)
        return _TOOL_ERRORS[kind](reason)

    async def format(self, code: str, language: str) -> FormatResult:
        result = await self.execute(FormatRequest(code=code, language=language))
        return FormatResult.model_validate(result)

    async def lint(self, code: str, file_path: str, fix: bool = False) -> LintResult:
        result = await self.execute(LintRequest(code=code, file_path=file_path, fix=fix))
        return LintResult.model_validate(result)

    async def typecheck(
        self,
        files: Mapping[str, str],
        compiler_options: Mapping[str, Any] | None = None,
    ) -> TypecheckResult:
        request = TypecheckRequest(
            files=dict(files),
            compiler_options=dict(compiler_options) if compiler_options is not None else None,
        )
        result = await self.execute(request)
        return TypecheckResult.model_validate(result)
