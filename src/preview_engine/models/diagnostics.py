"""Canonical diagnostic model shared by all tools."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Severity(str, Enum):
    """Diagnostic severity."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class DiagnosticSource(str, Enum):
    """Tool that produced a diagnostic."""

    ESLINT = "eslint"
    TYPESCRIPT = "typescript"
    VALIDATION = "validation"


class Diagnostic(BaseModel):
    """A single issue, positioned 1-indexed into the checked content."""

    model_config = ConfigDict(frozen=True)

    line: int = Field(ge=1)
    column: int = Field(ge=1)
    message: str
    severity: Severity
    source: DiagnosticSource
    file: str | None = None
    code: str | None = None
    end_line: int | None = Field(default=None, ge=1)
    end_column: int | None = Field(default=None, ge=1)
