"""Custom exception hierarchy for the preview engine."""

from typing import Any


class PreviewEngineError(Exception):
    """Base exception for all preview engine errors."""

    def __init__(
        self,
        code: str,
        message: str,
        details: dict[str, Any] | None = None,
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)


class SessionError(PreviewEngineError):
    """Session-related errors."""

    pass


class SessionNotFoundError(SessionError):
    """Session with given ID does not exist."""

    def __init__(self, session_id: str):
        super().__init__(
            code="SESSION_NOT_FOUND",
            message=f"Session '{session_id}' not found",
            details={"session_id": session_id},
        )


class SessionExpiredError(SessionError):
    """Session has expired due to inactivity."""

    def __init__(self, session_id: str, ttl_seconds: int):
        super().__init__(
            code="SESSION_EXPIRED",
            message=f"Session '{session_id}' has expired after {ttl_seconds // 60} minutes "
            "of inactivity",
            details={"session_id": session_id, "ttl_seconds": ttl_seconds},
        )


class SessionLimitError(SessionError):
    """Maximum concurrent sessions reached."""

    def __init__(self, max_sessions: int):
        super().__init__(
            code="SESSION_LIMIT_REACHED",
            message=f"Maximum of {max_sessions} concurrent sessions reached",
            details={"max_sessions": max_sessions},
        )


class GenerationError(PreviewEngineError):
    """The generated project snapshot is empty or malformed."""

    def __init__(self, reason: str, details: dict[str, Any] | None = None):
        super().__init__(
            code="GENERATION_ERROR",
            message=f"Invalid project snapshot: {reason}",
            details=details or {},
        )


class FileStoreError(PreviewEngineError):
    """Virtual file store errors."""

    pass


class FileNotFoundInSessionError(FileStoreError):
    """Path is not part of the session's file tree."""

    def __init__(self, path: str):
        super().__init__(
            code="FILE_NOT_FOUND",
            message=f"File '{path}' not found",
            details={"path": path},
        )


class NothingToUndoError(FileStoreError):
    """Undo history for the path is empty."""

    def __init__(self, path: str):
        super().__init__(
            code="NOTHING_TO_UNDO",
            message=f"Nothing to undo for '{path}'",
            details={"path": path},
        )


class NothingToRedoError(FileStoreError):
    """Redo history for the path is empty."""

    def __init__(self, path: str):
        super().__init__(
            code="NOTHING_TO_REDO",
            message=f"Nothing to redo for '{path}'",
            details={"path": path},
        )


class PayloadTooLargeError(PreviewEngineError):
    """Request payload exceeds the configured limit."""

    def __init__(self, what: str, size: int, limit: int):
        super().__init__(
            code="PAYLOAD_TOO_LARGE",
            message=f"{what} size ({size}) exceeds maximum allowed ({limit})",
            details={"size": size, "limit": limit},
        )


class ToolError(PreviewEngineError):
    """A sandboxed tool reported a failure."""

    pass


class FormatError(ToolError):
    """Formatting failed, usually because the code does not parse."""

    def __init__(self, reason: str):
        super().__init__(
            code="FORMAT_ERROR",
            message=f"Formatting failed: {reason}",
            details={"reason": reason},
        )


class LintError(ToolError):
    """Linting failed."""

    def __init__(self, reason: str):
        super().__init__(
            code="LINT_ERROR",
            message=f"Linting failed: {reason}",
            details={"reason": reason},
        )


class TypecheckError(ToolError):
    """Type-checking failed."""

    def __init__(self, reason: str):
        super().__init__(
            code="TYPECHECK_ERROR",
            message=f"Typecheck failed: {reason}",
            details={"reason": reason},
        )


class SandboxError(PreviewEngineError):
    """Sandbox executor errors."""

    pass


class SandboxViolationError(SandboxError):
    """Sandboxed code attempted disk, network or process access."""

    def __init__(self, tool: str, reason: str):
        super().__init__(
            code="SANDBOX_VIOLATION",
            message=f"Sandbox violation during {tool}: {reason}",
            details={"tool": tool, "reason": reason},
        )


class SandboxTimeoutError(SandboxError):
    """Sandbox request produced no response in time."""

    def __init__(self, tool: str, timeout: float):
        super().__init__(
            code="TIMED_OUT",
            message=f"{tool.capitalize()} timed out after {timeout}s",
            details={"tool": tool, "timeout": timeout},
        )


class SandboxFaultError(SandboxError):
    """Sandbox worker crashed while handling a request."""

    def __init__(self, tool: str, reason: str):
        super().__init__(
            code="SANDBOX_FAULT",
            message=f"Sandbox worker failed during {tool}: {reason}",
            details={"tool": tool, "reason": reason},
        )


class InvalidInvocationStateError(SandboxError):
    """Sandbox invocation moved to a state its lifecycle does not allow."""

    def __init__(self, invocation_id: str, current_state: str, allowed_states: list[str]):
        super().__init__(
            code="INVALID_INVOCATION_STATE",
            message=f"Invocation '{invocation_id}' is in state '{current_state}', "
            f"next state must be one of: {allowed_states}",
            details={
                "invocation_id": invocation_id,
                "current_state": current_state,
                "allowed_states": allowed_states,
            },
        )
