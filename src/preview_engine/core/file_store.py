"""Per-session virtual file store with undo/redo history."""

import threading
from collections.abc import Iterable, Iterator
from datetime import datetime, timezone

from preview_engine.core.exceptions import (
    FileNotFoundInSessionError,
    NothingToRedoError,
    NothingToUndoError,
)
from preview_engine.models.session import FileDiff, FileState, TreeNode
from preview_engine.utils.paths import normalize_path
from preview_engine.utils.tree import build_tree


class FileEntry:
    """One file's original content, current content and edit history.

    History is kept as the list of saved states that followed the original
    plus a cursor into it. Position 0 is the original itself, so the undo
    stack is every state below the cursor (bottoming out at the original)
    and the redo stack is every state above it. The original is never stored
    in the list.

    Every mutation holds the entry lock and returns the resulting state, so
    concurrent save/undo/redo/reset calls on one path are serialized.
    """

    def __init__(self, path: str, content: str):
        self.path = path
        self._original = content
        self._saves: list[str] = []
        self._cursor = 0
        self.version = 1
        self.last_modified = datetime.now(timezone.utc)
        self._lock = threading.Lock()

    @property
    def original(self) -> str:
        return self._original

    @property
    def current(self) -> str:
        if self._cursor == 0:
            return self._original
        return self._saves[self._cursor - 1]

    @property
    def dirty(self) -> bool:
        return self.current != self._original

    @property
    def can_undo(self) -> bool:
        return self._cursor > 0

    @property
    def can_redo(self) -> bool:
        return self._cursor < len(self._saves)

    @property
    def undo_depth(self) -> int:
        return self._cursor

    @property
    def redo_depth(self) -> int:
        return len(self._saves) - self._cursor

    def save(self, content: str) -> FileState:
        """Record a new current content, discarding any redo history."""
        with self._lock:
            del self._saves[self._cursor :]
            self._saves.append(content)
            self._cursor += 1
            return self._touch()

    def undo(self) -> FileState:
        """Step back one saved state."""
        with self._lock:
            if self._cursor == 0:
                raise NothingToUndoError(self.path)
            self._cursor -= 1
            return self._touch()

    def redo(self) -> FileState:
        """Step forward one saved state."""
        with self._lock:
            if self._cursor == len(self._saves):
                raise NothingToRedoError(self.path)
            self._cursor += 1
            return self._touch()

    def reset(self) -> FileState:
        """Return to the original content and drop all history.

        This cannot be undone.
        """
        with self._lock:
            self._saves.clear()
            self._cursor = 0
            return self._touch()

    def state(self) -> FileState:
        with self._lock:
            return self._state()

    def diff(self) -> FileDiff:
        with self._lock:
            current = self.current
            return FileDiff(
                path=self.path,
                original=self._original,
                current=current,
                dirty=current != self._original,
            )

    def _touch(self) -> FileState:
        self.version += 1
        self.last_modified = datetime.now(timezone.utc)
        return self._state()

    def _state(self) -> FileState:
        content = self.current
        return FileState(
            path=self.path,
            content=content,
            size=len(content),
            dirty=content != self._original,
            version=self.version,
            can_undo=self.can_undo,
            can_redo=self.can_redo,
        )


class VirtualFileStore:
    """Ordered mapping of normalized path to FileEntry for one session.

    The key set is fixed at creation; only file contents change.
    """

    def __init__(self, files: Iterable[tuple[str, str]]):
        self._entries: dict[str, FileEntry] = {}
        for path, content in files:
            self._entries[path] = FileEntry(path, content)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, path: object) -> bool:
        return isinstance(path, str) and self._lookup_key(path) in self._entries

    def __iter__(self) -> Iterator[FileEntry]:
        return iter(self._entries.values())

    @property
    def paths(self) -> list[str]:
        """Paths in generation order."""
        return list(self._entries)

    def entry(self, path: str) -> FileEntry:
        """Get the entry for a path, raising FileNotFoundInSessionError."""
        entry = self._entries.get(self._lookup_key(path))
        if entry is None:
            raise FileNotFoundInSessionError(path)
        return entry

    def read_tree(self) -> list[TreeNode]:
        return build_tree(self._entries)

    def read_file(self, path: str) -> FileState:
        return self.entry(path).state()

    def save_file(self, path: str, content: str) -> FileState:
        return self.entry(path).save(content)

    def undo(self, path: str) -> FileState:
        return self.entry(path).undo()

    def redo(self, path: str) -> FileState:
        return self.entry(path).redo()

    def reset(self, path: str) -> FileState:
        return self.entry(path).reset()

    def diff(self, path: str) -> FileDiff:
        return self.entry(path).diff()

    def dirty_files(self) -> list[str]:
        return [path for path, entry in self._entries.items() if entry.dirty]

    def snapshot(self) -> dict[str, str]:
        """Copy of the current contents, safe to hand to another process."""
        return {path: entry.current for path, entry in self._entries.items()}

    def clear(self) -> None:
        """Drop every entry and its history."""
        self._entries.clear()

    @staticmethod
    def _lookup_key(path: str) -> str:
        try:
            return normalize_path(path)
        except ValueError:
            return path
