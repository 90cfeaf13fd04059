"""Tests for the code formatter."""

import pytest

from preview_engine.tools.formatter import format_code


class TestFormatScript:
    """Tests for TypeScript formatting."""

    def test_semicolons_and_quotes(self) -> None:
        """Test missing semicolons are added and strings single-quoted."""
        assert format_code('const a = "hi"\n', "typescript") == "const a = 'hi';\n"

    def test_keeps_double_quotes_that_need_escaping(self) -> None:
        assert format_code('const a = "it\'s";\n', "typescript") == 'const a = "it\'s";\n'

    def test_reindents_blocks(self) -> None:
        """Test nested blocks get two spaces per level."""
        source = (
            "class A {\n"
            "foo(x: string) {\n"
            "if (x) return \"a\"\n"
            "      return \"b\"\n"
            "}\n"
            "}\n"
        )
        assert format_code(source, "typescript") == (
            "class A {\n"
            "  foo(x: string) {\n"
            "    if (x) return 'a';\n"
            "    return 'b';\n"
            "  }\n"
            "}\n"
        )

    def test_unbraced_body_on_next_line(self) -> None:
        assert format_code("if (ok)\ndoIt()\n", "ts") == "if (ok)\n  doIt();\n"

    def test_switch_cases(self) -> None:
        """Test case bodies are indented under their label."""
        source = "switch (x) {\ncase 1:\ngo()\nbreak\ndefault:\nstop()\n}\n"
        assert format_code(source, "typescript") == (
            "switch (x) {\n"
            "  case 1:\n"
            "    go();\n"
            "    break;\n"
            "  default:\n"
            "    stop();\n"
            "}\n"
        )

    def test_template_literal_rows_untouched(self) -> None:
        source = "const s = `a\n   b`\n"
        assert format_code(source, "typescript") == "const s = `a\n   b`;\n"

    def test_continued_string_rows_untouched(self) -> None:
        """Test a backslash-continued string keeps its value."""
        source = "function f() {\n  const s = 'a\\\n      b';\n  return s;\n}\n"
        assert format_code(source, "typescript") == source

    def test_template_opening_row_keeps_trailing_spaces(self) -> None:
        source = "if (x) {\nconst s = `a  \nb`;\n}\n"
        assert format_code(source, "typescript") == "if (x) {\n  const s = `a  \nb`;\n}\n"

    def test_blank_lines_collapse(self) -> None:
        """Test runs of blank lines collapse and one trailing newline remains."""
        source = "const a = 1;\n\n\n\nconst b = 2;\n\n\n"
        assert format_code(source, "typescript") == "const a = 1;\n\nconst b = 2;\n"

    def test_crlf_normalized(self) -> None:
        assert format_code("const a = 1;\r\nconst b = 2;\r\n", "typescript") == (
            "const a = 1;\nconst b = 2;\n"
        )

    def test_idempotent(self) -> None:
        """Test formatting formatted code changes nothing."""
        source = (
            "export function f(a: number) {\nif (a > 1) {\nreturn \"big\"\n}\n"
            "return 'small'\n}\n"
        )
        once = format_code(source, "typescript")
        assert format_code(once, "typescript") == once

    def test_tsx(self) -> None:
        source = 'export const App = () => <div className="app">hi</div>\n'
        assert format_code(source, "tsx") == (
            'export const App = () => <div className="app">hi</div>;\n'
        )

    def test_syntax_error(self) -> None:
        """Test code that does not parse is rejected with a position."""
        with pytest.raises(ValueError, match=r"\(1:\d+\)"):
            format_code("const = ;\n", "typescript")


class TestFormatOtherLanguages:
    """Tests for non-script languages."""

    def test_json(self) -> None:
        assert format_code('{"a":1,"b":[1,2]}', "json") == (
            '{\n  "a": 1,\n  "b": [\n    1,\n    2\n  ]\n}\n'
        )

    def test_invalid_json(self) -> None:
        with pytest.raises(ValueError):
            format_code("{bad", "json")

    def test_unknown_language_unchanged(self) -> None:
        assert format_code("a{color:red}", "css") == "a{color:red}"
