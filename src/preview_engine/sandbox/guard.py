"""In-process isolation for sandbox workers.

A worker imports everything it needs, then installs an audit hook that turns
any attempt to touch the host into a :class:`SandboxViolation`: file writes,
reads of anything but Python modules, filesystem mutation, process creation
and networking. Audit hooks cannot be removed, so the guard lives exactly as
long as the worker process.
"""

import importlib.machinery
import logging
import os
import sys
from typing import Any

logger = logging.getLogger(__name__)

MODULE_SUFFIXES = tuple(importlib.machinery.all_suffixes()) + (".pyc",)

WRITE_FLAGS = os.O_WRONLY | os.O_RDWR | os.O_CREAT | os.O_TRUNC | os.O_APPEND

BLOCKED_EVENTS = frozenset(
    {
        "os.system",
        "os.exec",
        "os.spawn",
        "os.posix_spawn",
        "os.fork",
        "os.forkpty",
        "os.kill",
        "os.killpg",
        "os.remove",
        "os.rename",
        "os.mkdir",
        "os.rmdir",
        "os.truncate",
        "os.chmod",
        "os.chown",
        "os.link",
        "os.symlink",
        "os.utime",
        "os.chdir",
        "sqlite3.connect",
        "webbrowser.open",
    }
)

BLOCKED_PREFIXES = (
    "socket.",
    "subprocess.",
    "shutil.",
    "urllib.",
    "http.client.",
    "ftplib.",
    "smtplib.",
    "ctypes.",
    "tempfile.",
)


class SandboxViolation(PermissionError):
    """Sandboxed code tried to reach the host filesystem, network or processes."""


def _is_write(mode: Any, flags: Any) -> bool:
    if isinstance(mode, str) and any(c in mode for c in "wax+"):
        return True
    return isinstance(flags, int) and bool(flags & WRITE_FLAGS)


def check_event(event: str, args: tuple[Any, ...]) -> None:
    """Raise SandboxViolation if an audit event is not allowed in a worker."""
    if event == "open":
        path, mode, flags = (tuple(args) + (None, None, None))[:3]
        if isinstance(path, int):
            return
        if isinstance(path, (bytes, os.PathLike)):
            path = os.fsdecode(path)
        if _is_write(mode, flags):
            raise SandboxViolation(f"write to '{path}' blocked")
        if not (isinstance(path, str) and path.endswith(MODULE_SUFFIXES)):
            raise SandboxViolation(f"read of '{path}' blocked")
        return

    if event in BLOCKED_EVENTS or event.startswith(BLOCKED_PREFIXES):
        raise SandboxViolation(f"'{event}' blocked")


def _audit_hook(event: str, args: tuple[Any, ...]) -> None:
    check_event(event, args)


def limit_memory(limit_mb: int) -> None:
    """Cap the worker's address space. 0 disables the cap."""
    if limit_mb <= 0 or sys.platform == "win32":
        return
    import resource

    limit = limit_mb * 1024 * 1024
    _, hard = resource.getrlimit(resource.RLIMIT_AS)
    if hard != resource.RLIM_INFINITY:
        limit = min(limit, hard)
    resource.setrlimit(resource.RLIMIT_AS, (limit, hard))


def install() -> None:
    """Install the guard for the rest of this process's life."""
    sys.dont_write_bytecode = True
    sys.addaudithook(_audit_hook)
    logger.debug(f"Sandbox guard installed in worker {os.getpid()}")
