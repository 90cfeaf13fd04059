"""Normalization of project-relative file paths."""

import posixpath
import re

_DRIVE_RE = re.compile(r"^[A-Za-z]:")


def normalize_separators(path: str) -> str:
    """Convert Windows separators to POSIX ones."""
    return path.replace("\\", "/")


def normalize_path(path: str) -> str:
    """Normalize a project-relative path like 'src/app.module.ts'.

    Backslashes become slashes, duplicate slashes and '.' segments collapse,
    and a leading '/' is treated as the project root.

    Raises:
        ValueError: If the path is empty, contains NUL, carries a drive letter
            or tries to escape the project root with '..'.
    """
    if not isinstance(path, str):
        raise ValueError("path must be a string")
    raw = normalize_separators(path.strip())
    if not raw:
        raise ValueError("empty path")
    if "\x00" in raw:
        raise ValueError("invalid path")
    if _DRIVE_RE.match(raw):
        raise ValueError("absolute paths are not allowed")
    if ".." in raw.split("/"):
        raise ValueError("path traversal not allowed")
    if raw.endswith("/"):
        raise ValueError("path names a directory")

    norm = posixpath.normpath("/" + raw).lstrip("/")
    if not norm or norm == ".":
        raise ValueError("path does not name a file")
    return norm


def split_segments(path: str) -> list[str]:
    """Split a normalized path into its segments."""
    return [segment for segment in path.split("/") if segment]
