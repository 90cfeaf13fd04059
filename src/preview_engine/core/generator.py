"""Seam to the external project generator.

The engine never templates projects itself. A generator turns the caller's
opaque configuration into a flat ``path -> content`` snapshot; the default
one accepts an already generated snapshot embedded in the configuration.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol

from preview_engine.core.exceptions import GenerationError
from preview_engine.utils.paths import normalize_path

DEFAULT_PROJECT_NAME = "generated-project"


@dataclass(frozen=True)
class GeneratedProject:
    """Output of a project generator."""

    project_name: str
    files: list[tuple[str, str]]


class ProjectGenerator(Protocol):
    """Turns a configuration object into a generated file set."""

    def generate(self, config: Mapping[str, Any]) -> GeneratedProject: ...


class SnapshotGenerator:
    """Generator for configurations that already carry their files.

    Accepts ``{"projectName": str, "files": [{"path", "content"}, ...]}`` or
    ``{"projectName": str, "files": {path: content}}``.
    """

    def generate(self, config: Mapping[str, Any]) -> GeneratedProject:
        if not isinstance(config, Mapping):
            raise GenerationError("configuration must be an object")

        project_name = config.get("projectName") or config.get("project_name")
        if project_name is None:
            project_name = DEFAULT_PROJECT_NAME
        if not isinstance(project_name, str) or not project_name.strip():
            raise GenerationError("projectName must be a non-empty string")

        raw_files = config.get("files")
        if isinstance(raw_files, Mapping):
            pairs = list(raw_files.items())
        elif isinstance(raw_files, list):
            pairs = []
            for index, item in enumerate(raw_files):
                if not isinstance(item, Mapping) or "path" not in item or "content" not in item:
                    raise GenerationError(
                        "each file needs 'path' and 'content'", details={"index": index}
                    )
                pairs.append((item["path"], item["content"]))
        else:
            raise GenerationError("configuration has no 'files'")

        return GeneratedProject(project_name=project_name.strip(), files=pairs)


def validate_snapshot(files: list[tuple[Any, Any]]) -> list[tuple[str, str]]:
    """Normalize and validate a generated snapshot.

    Returns the ``(path, content)`` pairs in generation order.

    Raises:
        GenerationError: If the snapshot is empty, a path is malformed or
            duplicated, content is not text, or a file path is also used as
            a directory.
    """
    if not files:
        raise GenerationError("snapshot contains no files")

    result: dict[str, str] = {}
    for raw_path, content in files:
        try:
            path = normalize_path(raw_path)
        except ValueError as e:
            raise GenerationError(
                f"malformed path {raw_path!r}: {e}", details={"path": str(raw_path)}
            )
        if not isinstance(content, str):
            raise GenerationError(
                f"content of '{path}' must be a string", details={"path": path}
            )
        if path in result:
            raise GenerationError(f"duplicate path '{path}'", details={"path": path})
        result[path] = content

    directories = {path.rsplit("/", 1)[0] for path in result if "/" in path}
    for directory in list(directories):
        parts = directory.split("/")
        directories.update("/".join(parts[:i]) for i in range(1, len(parts)))
    clashes = sorted(directories.intersection(result))
    if clashes:
        raise GenerationError(
            f"'{clashes[0]}' is both a file and a directory", details={"path": clashes[0]}
        )

    return list(result.items())
