"""Messages exchanged with sandbox workers.

Requests and responses are immutable. They cross the process boundary as
plain dicts (``model_dump``) and are re-validated on the other side.
"""

import logging
import time
import uuid
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from preview_engine.core.exceptions import InvalidInvocationStateError
from preview_engine.models.diagnostics import Diagnostic

logger = logging.getLogger(__name__)


class ToolKind(str, Enum):
    """Tools a worker can run."""

    FORMAT = "format"
    LINT = "lint"
    TYPECHECK = "typecheck"


class ErrorKind(str, Enum):
    """Why a worker reported failure."""

    FORMAT = "format"
    LINT = "lint"
    TYPECHECK = "typecheck"
    SANDBOX_VIOLATION = "sandbox_violation"
    INTERNAL = "internal"


class _Message(BaseModel):
    model_config = ConfigDict(frozen=True)


class FormatRequest(_Message):
    kind: Literal["format"] = "format"
    code: str
    language: str


class LintRequest(_Message):
    kind: Literal["lint"] = "lint"
    code: str
    file_path: str
    fix: bool = False


class TypecheckRequest(_Message):
    kind: Literal["typecheck"] = "typecheck"
    files: dict[str, str]
    compiler_options: dict[str, Any] | None = None


SandboxRequest = Annotated[
    Union[FormatRequest, LintRequest, TypecheckRequest],
    Field(discriminator="kind"),
]

request_adapter: TypeAdapter[SandboxRequest] = TypeAdapter(SandboxRequest)


class FormatResult(_Message):
    formatted: str


class LintResult(_Message):
    diagnostics: list[Diagnostic]
    fixed_code: str | None = None


class TypecheckResult(_Message):
    diagnostics: list[Diagnostic]


class SandboxResponse(_Message):
    """Reply to exactly one request."""

    request_id: str
    success: bool
    result: dict[str, Any] | None = None
    error: str | None = None
    error_kind: ErrorKind | None = None


class InvocationState(str, Enum):
    """Lifecycle of one request sent to a worker."""

    IDLE = "idle"
    DISPATCHED = "dispatched"
    COMPLETED = "completed"
    FAULTED = "faulted"
    TIMED_OUT = "timed_out"


VALID_TRANSITIONS: dict[InvocationState, set[InvocationState]] = {
    InvocationState.IDLE: {InvocationState.DISPATCHED},
    InvocationState.DISPATCHED: {
        InvocationState.COMPLETED,
        InvocationState.FAULTED,
        InvocationState.TIMED_OUT,
    },
}


class Invocation:
    """One tagged request and where it is in its lifecycle."""

    def __init__(self, request: FormatRequest | LintRequest | TypecheckRequest):
        self.id = uuid.uuid4().hex
        self.request = request
        self.kind = request.kind
        self._state = InvocationState.IDLE
        self._dispatched_at: float | None = None

    @property
    def state(self) -> InvocationState:
        return self._state

    @property
    def elapsed(self) -> float:
        if self._dispatched_at is None:
            return 0.0
        return time.monotonic() - self._dispatched_at

    def transition_to(self, new_state: InvocationState) -> None:
        allowed = VALID_TRANSITIONS.get(self._state, set())
        if new_state not in allowed:
            raise InvalidInvocationStateError(
                self.id,
                self._state.value,
                [s.value for s in allowed],
            )
        if new_state == InvocationState.DISPATCHED:
            self._dispatched_at = time.monotonic()
        self._state = new_state
        logger.debug(f"Invocation {self.id} ({self.kind}): state -> {new_state.value}")

    def envelope(self) -> dict[str, Any]:
        """Wire form of the request."""
        return {"id": self.id, "request": self.request.model_dump(mode="json")}
