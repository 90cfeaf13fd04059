"""Tests for diagnostic normalization."""

from preview_engine.core import diagnostics
from preview_engine.models.diagnostics import DiagnosticSource, Severity


class TestFromEslint:
    """Tests for lint message normalization."""

    def test_error_severity(self) -> None:
        """Test severity 2 maps to error and positions are kept."""
        d = diagnostics.from_eslint(
            {
                "ruleId": "no-var",
                "severity": 2,
                "message": "Unexpected var, use let or const instead.",
                "line": 3,
                "column": 5,
                "endLine": 3,
                "endColumn": 14,
            }
        )
        assert d.severity == Severity.ERROR
        assert d.source == DiagnosticSource.ESLINT
        assert (d.line, d.column, d.end_line, d.end_column) == (3, 5, 3, 14)
        assert d.code == "no-var"
        assert d.file is None

    def test_other_severities_are_warnings(self) -> None:
        """Test lint never reports info."""
        assert diagnostics.from_eslint({"severity": 1, "line": 1}).severity == Severity.WARNING
        assert diagnostics.from_eslint({"severity": 0, "line": 1}).severity == Severity.WARNING

    def test_missing_position_defaults(self) -> None:
        """Test fatal messages without a position land at 1:1."""
        d = diagnostics.from_eslint({"fatal": True, "severity": 2, "message": "Parsing error"})
        assert (d.line, d.column) == (1, 1)
        assert d.end_line is None
        assert d.code is None


class TestFromTypescript:
    """Tests for type-checker diagnostic normalization."""

    def test_zero_based_positions(self) -> None:
        """Test 0-based line and character become 1-based."""
        d = diagnostics.from_typescript(
            {
                "file": "a.ts",
                "start": [0, 6],
                "end": [0, 7],
                "messageText": "Type 'string' is not assignable to type 'number'.",
                "category": 1,
                "code": 2322,
            }
        )
        assert (d.line, d.column, d.end_line, d.end_column) == (1, 7, 1, 8)
        assert d.code == "TS2322"
        assert d.file == "a.ts"
        assert d.severity == Severity.ERROR
        assert d.source == DiagnosticSource.TYPESCRIPT

    def test_no_location(self) -> None:
        """Test project-level diagnostics get position 1:1 and no file."""
        d = diagnostics.from_typescript(
            {"start": None, "messageText": "No inputs were found.", "category": 1, "code": 18003}
        )
        assert (d.line, d.column) == (1, 1)
        assert d.file is None

    def test_categories(self) -> None:
        """Test each category maps to a canonical severity."""
        severities = [
            diagnostics.from_typescript({"category": c, "code": 1}).severity for c in range(4)
        ]
        assert severities == [Severity.WARNING, Severity.ERROR, Severity.INFO, Severity.INFO]


class TestValidation:
    """Tests for engine-raised diagnostics."""

    def test_validation_defaults(self) -> None:
        """Test validation diagnostics default to an error at 1:1."""
        d = diagnostics.validation("Path '../x' rejected", file="../x")
        assert d.source == DiagnosticSource.VALIDATION
        assert d.severity == Severity.ERROR
        assert (d.line, d.column) == (1, 1)
        assert d.file == "../x"

    def test_normalize_lists(self) -> None:
        """Test bulk normalization keeps order."""
        found = diagnostics.normalize_eslint([{"line": 2}, {"line": 1}])
        assert [d.line for d in found] == [2, 1]
        assert diagnostics.normalize_typescript([]) == []
