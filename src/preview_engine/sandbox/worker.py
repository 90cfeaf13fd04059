"""Sandbox worker process.

Each worker owns one end of a pipe and serves one request at a time until it
receives ``None`` or the pipe closes. Tool diagnostics are normalized here,
before they leave the worker.
"""

import logging
import os
from multiprocessing.connection import Connection
from typing import Any

from pydantic import ValidationError

from preview_engine.core import diagnostics
from preview_engine.sandbox import guard
from preview_engine.sandbox.messages import (
    ErrorKind,
    FormatRequest,
    FormatResult,
    LintRequest,
    LintResult,
    SandboxResponse,
    TypecheckRequest,
    TypecheckResult,
    request_adapter,
)
from preview_engine.tools.formatter import format_code
from preview_engine.tools.linter import lint
from preview_engine.tools.typechecker import typecheck

logger = logging.getLogger(__name__)

_WARM_UP_SOURCE = "const x: number = 1;\nexport { x };\n"


def warm_up() -> None:
    """Exercise every tool once so nothing is imported after the guard is up."""
    run_tool(FormatRequest(code=_WARM_UP_SOURCE, language="typescript"))
    run_tool(FormatRequest(code=_WARM_UP_SOURCE, language="tsx"))
    run_tool(FormatRequest(code="{}", language="json"))
    run_tool(LintRequest(code="var x=1", file_path="warm-up.ts", fix=True))
    run_tool(TypecheckRequest(files={"warm-up.ts": _WARM_UP_SOURCE, "../bad": ""}))
    handle({"id": "warm-up", "request": {"kind": "unknown"}})


def run_tool(request: FormatRequest | LintRequest | TypecheckRequest) -> dict[str, Any]:
    """Run one request and return its normalized result."""
    if isinstance(request, FormatRequest):
        return FormatResult(formatted=format_code(request.code, request.language)).model_dump(
            mode="json"
        )

    if isinstance(request, LintRequest):
        native = lint(request.code, request.file_path, fix=request.fix)
        return LintResult(
            diagnostics=diagnostics.normalize_eslint(native["messages"]),
            fixed_code=native["output"],
        ).model_dump(mode="json")

    native = typecheck(request.files, request.compiler_options)
    found = [
        diagnostics.validation(
            f"Path '{entry['path']}' rejected: {entry['reason']}", file=entry["path"]
        )
        for entry in native["rejected"]
    ]
    found.extend(diagnostics.normalize_typescript(native["diagnostics"]))
    return TypecheckResult(diagnostics=found).model_dump(mode="json")


def handle(envelope: Any) -> SandboxResponse:
    """Turn one wire envelope into a response. Never raises."""
    try:
        request_id = str(envelope["id"])
        request = request_adapter.validate_python(envelope["request"])
    except (KeyError, TypeError, ValidationError) as e:
        return SandboxResponse(
            request_id=str(envelope.get("id", "")) if isinstance(envelope, dict) else "",
            success=False,
            error=f"Malformed request: {e}",
            error_kind=ErrorKind.INTERNAL,
        )

    try:
        result = run_tool(request)
    except guard.SandboxViolation as e:
        logger.warning(f"Sandbox violation in worker {os.getpid()}: {e}")
        return SandboxResponse(
            request_id=request_id,
            success=False,
            error=str(e),
            error_kind=ErrorKind.SANDBOX_VIOLATION,
        )
    except Exception as e:
        return SandboxResponse(
            request_id=request_id,
            success=False,
            error=str(e) or type(e).__name__,
            error_kind=ErrorKind(request.kind),
        )
    return SandboxResponse(request_id=request_id, success=True, result=result)


def run_worker(conn: Connection, memory_limit_mb: int = 0, log_level: str = "INFO") -> None:
    """Process entry point."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    warm_up()
    guard.limit_memory(memory_limit_mb)
    guard.install()
    logger.debug(f"Sandbox worker {os.getpid()} ready")

    while True:
        try:
            envelope = conn.recv()
        except (EOFError, OSError):
            break
        if envelope is None:
            break
        response = handle(envelope)
        conn.send(response.model_dump(mode="json"))

    conn.close()
