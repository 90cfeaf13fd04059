"""Stateless tool endpoints - format, lint and typecheck."""

from fastapi import APIRouter

from preview_engine.api.deps import ExecutorDep
from preview_engine.config import settings
from preview_engine.core.exceptions import PayloadTooLargeError
from preview_engine.models.requests import FormatRequest, LintRequest, TypecheckRequest
from preview_engine.models.responses import FormatResponse, LintResponse, TypecheckResponse

router = APIRouter(prefix="/tools", tags=["Tools"])


def _check_code_length(code: str) -> None:
    if len(code) > settings.max_code_length:
        raise PayloadTooLargeError("Code", len(code), settings.max_code_length)


@router.post("/format", response_model=FormatResponse)
async def format_code(request: FormatRequest, executor: ExecutorDep) -> FormatResponse:
    """Format a code fragment."""
    _check_code_length(request.code)
    result = await executor.format(request.code, request.language)
    return FormatResponse(formatted=result.formatted)


@router.post("/lint", response_model=LintResponse)
async def lint_code(request: LintRequest, executor: ExecutorDep) -> LintResponse:
    """Lint a code fragment, optionally applying automatic fixes."""
    _check_code_length(request.code)
    result = await executor.lint(request.code, request.file_path, fix=request.fix)
    return LintResponse(diagnostics=result.diagnostics, fixed_code=result.fixed_code)


@router.post("/typecheck", response_model=TypecheckResponse)
async def typecheck_files(request: TypecheckRequest, executor: ExecutorDep) -> TypecheckResponse:
    """Type-check a raw file snapshot."""
    size = sum(len(content.encode("utf-8")) for content in request.files.values())
    if size > settings.max_typecheck_bytes:
        raise PayloadTooLargeError("Project", size, settings.max_typecheck_bytes)
    result = await executor.typecheck(request.files, request.compiler_options)
    return TypecheckResponse(diagnostics=result.diagnostics)
