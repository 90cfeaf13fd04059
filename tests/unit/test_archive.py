"""Tests for ZIP export."""

import io
import json
import zipfile
from datetime import datetime, timezone

from preview_engine.utils.archive import METADATA_NAME, archive_filename, build_zip


class TestBuildZip:
    """Tests for build_zip."""

    def test_archive_contents(self) -> None:
        """Test files keep their paths and metadata is appended."""
        created = datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc)
        data = build_zip(
            {"package.json": "{}", "src/main.ts": "console.log(1);\n"}, "shop-api", created
        )

        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            assert archive.namelist() == ["package.json", "src/main.ts", METADATA_NAME]
            assert archive.read("src/main.ts").decode() == "console.log(1);\n"
            metadata = json.loads(archive.read(METADATA_NAME))

        assert metadata == {
            "projectName": "shop-api",
            "generatedAt": created.isoformat(),
            "totalFiles": 2,
            "files": ["package.json", "src/main.ts"],
        }


class TestArchiveFilename:
    """Tests for archive_filename."""

    def test_plain_name(self) -> None:
        assert archive_filename("shop-api") == "shop-api.zip"

    def test_unsafe_characters(self) -> None:
        """Test header-breaking characters are replaced."""
        assert archive_filename('my "app"/v2') == "my--app--v2.zip"

    def test_empty_falls_back(self) -> None:
        assert archive_filename("..") == "project.zip"
