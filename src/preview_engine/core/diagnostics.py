"""Normalization of tool-native diagnostics into the canonical shape.

Each tool reports positions its own way: the linter uses 1-indexed
line/column, the type checker a 0-indexed ``(line, character)`` start that is
absent for project-level errors. Everything is mapped to a 1-indexed
:class:`Diagnostic` here, with ``(1, 1)`` when no position is known, and no
tool-specific shape is allowed past this module.
"""

from collections.abc import Iterable, Mapping
from typing import Any

from preview_engine.models.diagnostics import Diagnostic, DiagnosticSource, Severity

# ESLint numeric severities
ESLINT_ERROR = 2
ESLINT_WARNING = 1

# TypeScript DiagnosticCategory values
TS_WARNING = 0
TS_ERROR = 1
TS_SUGGESTION = 2
TS_MESSAGE = 3

_TS_SEVERITY = {
    TS_WARNING: Severity.WARNING,
    TS_ERROR: Severity.ERROR,
    TS_SUGGESTION: Severity.INFO,
    TS_MESSAGE: Severity.INFO,
}


def _one_based(value: Any) -> int:
    if isinstance(value, int) and value >= 1:
        return value
    return 1


def from_eslint(message: Mapping[str, Any]) -> Diagnostic:
    """Map one ESLint-style lint message.

    Severity 2 collapses to ``error``; anything else is a ``warning``. Lint
    never yields ``info``.
    """
    severity = Severity.ERROR if message.get("severity") == ESLINT_ERROR else Severity.WARNING
    end_line = message.get("endLine")
    end_column = message.get("endColumn")
    return Diagnostic(
        line=_one_based(message.get("line")),
        column=_one_based(message.get("column")),
        message=str(message.get("message", "")),
        severity=severity,
        source=DiagnosticSource.ESLINT,
        code=message.get("ruleId"),
        end_line=end_line if isinstance(end_line, int) and end_line >= 1 else None,
        end_column=end_column if isinstance(end_column, int) and end_column >= 1 else None,
    )


def from_typescript(diagnostic: Mapping[str, Any]) -> Diagnostic:
    """Map one TypeScript-style diagnostic.

    ``start`` is a 0-indexed ``(line, character)`` pair or ``None`` for
    diagnostics that are not tied to a location.
    """
    start = diagnostic.get("start")
    end = diagnostic.get("end")
    line = column = 1
    end_line = end_column = None
    if start is not None:
        line, column = start[0] + 1, start[1] + 1
    if end is not None:
        end_line, end_column = end[0] + 1, end[1] + 1

    code = diagnostic.get("code")
    return Diagnostic(
        line=line,
        column=column,
        message=str(diagnostic.get("messageText", "")),
        severity=_TS_SEVERITY.get(diagnostic.get("category", TS_ERROR), Severity.ERROR),
        source=DiagnosticSource.TYPESCRIPT,
        file=diagnostic.get("file"),
        code=f"TS{code}" if code is not None else None,
        end_line=end_line,
        end_column=end_column,
    )


def validation(
    message: str,
    *,
    file: str | None = None,
    line: int | None = None,
    column: int | None = None,
    severity: Severity = Severity.ERROR,
) -> Diagnostic:
    """Diagnostic raised by the engine's own input validation."""
    return Diagnostic(
        line=_one_based(line),
        column=_one_based(column),
        message=message,
        severity=severity,
        source=DiagnosticSource.VALIDATION,
        file=file,
    )


def normalize_eslint(messages: Iterable[Mapping[str, Any]]) -> list[Diagnostic]:
    return [from_eslint(m) for m in messages]


def normalize_typescript(diagnostics: Iterable[Mapping[str, Any]]) -> list[Diagnostic]:
    return [from_typescript(d) for d in diagnostics]

