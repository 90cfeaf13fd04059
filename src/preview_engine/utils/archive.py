"""ZIP export of a session's current file contents."""

import io
import json
import zipfile
from datetime import datetime
from typing import Any

METADATA_NAME = ".generator-metadata.json"


def build_metadata(project_name: str, created_at: datetime, paths: list[str]) -> dict[str, Any]:
    return {
        "projectName": project_name,
        "generatedAt": created_at.isoformat(),
        "totalFiles": len(paths),
        "files": paths,
    }


def build_zip(files: dict[str, str], project_name: str, created_at: datetime) -> bytes:
    """Archive ``files`` (path -> current content) plus a metadata entry.

    Entries keep their snapshot paths, in snapshot order, with no project
    directory prefix.
    """
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=9) as archive:
        for path, content in files.items():
            archive.writestr(path, content)
        metadata = build_metadata(project_name, created_at, list(files))
        archive.writestr(METADATA_NAME, json.dumps(metadata, indent=2))
    return buffer.getvalue()


def archive_filename(project_name: str) -> str:
    safe = "".join(c if c.isalnum() or c in "-_." else "-" for c in project_name).strip(".")
    return f"{safe or 'project'}.zip"
