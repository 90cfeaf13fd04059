"""Tests for the lint rule engine."""

import pytest

from preview_engine.tools.linter import Fix, Linter, apply_fixes, lint


def _rules(result) -> list[str | None]:
    return [m["ruleId"] for m in result["messages"]]


class TestLint:
    """Tests for lint()."""

    def test_missing_semicolon_reported_on_line_one(self) -> None:
        """Test a bare declaration yields line-1 findings."""
        result = lint("let x=1", "a.ts")

        assert result["output"] is None
        assert "semi" in _rules(result)
        assert all(m["line"] == 1 for m in result["messages"])
        assert all(m["severity"] in (1, 2) for m in result["messages"])

    def test_fix_applies_all_fixes(self) -> None:
        """Test fixing rewrites var to const and adds semicolons."""
        result = lint("var a = 1\nconsole.log(a)\n", "a.ts", fix=True)

        assert result["output"] == "const a = 1;\nconsole.log(a);\n"
        assert result["messages"] == []

    def test_fix_without_changes_has_no_output(self) -> None:
        result = lint("export const a = 1;\n", "a.ts", fix=True)
        assert result == {"messages": [], "output": None}

    def test_no_var(self) -> None:
        result = lint("var a = 1;\nconsole.log(a);\n", "a.ts")
        message = next(m for m in result["messages"] if m["ruleId"] == "no-var")
        assert message["severity"] == 2
        assert message["fix"] == {"range": [0, 3], "text": "let"}

    @pytest.mark.parametrize(
        "code",
        [
            "if (Math.random()) {\n  var x = 1;\n}\nconsole.log(x);\n",
            "console.log(x);\nvar x = 1;\n",
            "for (var x = 0; x < 3; x++) {}\nconsole.log(x);\n",
        ],
    )
    def test_no_var_without_fix_when_read_outside_block(self, code: str) -> None:
        """Test var read before it or outside its block is not rewritten."""
        result = lint(code, "a.ts")
        message = next(m for m in result["messages"] if m["ruleId"] == "no-var")
        assert "fix" not in message

        assert lint(code, "a.ts", fix=True)["output"] is None

    def test_prefer_const_skips_reassigned(self) -> None:
        result = lint("let a = 1;\na = 2;\nconsole.log(a);\n", "a.ts")
        assert "prefer-const" not in _rules(result)

    def test_unused_vars(self) -> None:
        """Test unused locals and trailing unused parameters are reported."""
        source = (
            "import { used, unused } from './dep';\n"
            "export function f(a: number, b: number, _c: number) {\n"
            "  const local = used;\n"
            "  return a;\n"
            "}\n"
        )
        messages = [
            m["message"]
            for m in lint(source, "a.ts")["messages"]
            if m["ruleId"] == "@typescript-eslint/no-unused-vars"
        ]
        assert "'unused' is defined but never used." in messages
        assert "'local' is assigned a value but never used." in messages
        assert "'b' is defined but never used." in messages
        assert not any("'_c'" in m for m in messages)
        assert not any("'used'" in m or "'a'" in m for m in messages)

    def test_declaration_files_skip_unused(self) -> None:
        result = lint("declare const x: number;\n", "types.d.ts")
        assert "@typescript-eslint/no-unused-vars" not in _rules(result)

    def test_explicit_any(self) -> None:
        result = lint("export const f = (x: any) => x;\n", "a.ts")
        assert _rules(result) == ["@typescript-eslint/no-explicit-any"]

    def test_debugger_and_empty_block(self) -> None:
        result = lint("debugger;\nif (Math.random()) {}\n", "a.ts")
        assert "no-debugger" in _rules(result)
        assert "no-empty" in _rules(result)

    def test_empty_function_body_allowed(self) -> None:
        result = lint("export function noop() {}\n", "a.ts")
        assert "no-empty" not in _rules(result)

    def test_duplicate_keys(self) -> None:
        result = lint("export const o = { a: 1, 'a': 2, b: 3 };\n", "a.ts")
        dupes = [m for m in result["messages"] if m["ruleId"] == "no-dupe-keys"]
        assert len(dupes) == 1
        assert dupes[0]["message"] == "Duplicate key 'a'."

    def test_parsing_error_is_fatal(self) -> None:
        """Test code that does not parse yields one fatal error."""
        result = lint("const = ;\n", "a.ts")
        assert len(result["messages"]) == 1
        message = result["messages"][0]
        assert message["fatal"] is True
        assert message["severity"] == 2
        assert message["ruleId"] is None
        assert message["message"].startswith("Parsing error:")

    def test_unsupported_file(self) -> None:
        with pytest.raises(ValueError, match="unsupported file type"):
            lint("body {}", "style.css")

    def test_messages_sorted_by_position(self) -> None:
        result = lint("debugger\nvar a = 1;\nconsole.log(a);\n", "a.ts")
        positions = [(m["line"], m["column"]) for m in result["messages"]]
        assert positions == sorted(positions)


class TestLinterConfiguration:
    """Tests for rule configuration."""

    def test_disabled_rule(self) -> None:
        linter = Linter({"semi": 0, "no-debugger": 2})
        messages = linter.verify("debugger", "a.ts")
        assert [m.rule_id for m in messages] == ["no-debugger"]


class TestApplyFixes:
    """Tests for apply_fixes."""

    def test_non_overlapping(self) -> None:
        fixes = [Fix(7, 7, ";"), Fix(0, 3, "const")]
        assert apply_fixes("let x=1", fixes) == "const x=1;"

    def test_overlapping_later_dropped(self) -> None:
        fixes = [Fix(0, 3, "const"), Fix(1, 2, "X")]
        assert apply_fixes("let x", fixes) == "const x"
