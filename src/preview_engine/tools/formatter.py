"""Source formatting.

TypeScript-family code is printed in the style of the Prettier configuration
generated projects ship with (semicolons, single quotes, 2-space indent).
The formatter works on the tree-sitter syntax tree: it inserts missing
semicolons and requotes strings as token edits, then re-indents every line
from the bracket structure. It does not re-wrap lines.
"""

import json
from collections import Counter

from tree_sitter import Language, Node

from preview_engine.tools.linter import Fix, apply_fixes, missing_semicolon_fixes
from preview_engine.tools.syntax import (
    SourceText,
    dialect_for_language,
    first_syntax_error,
    leaves,
    parse,
    syntax_error_message,
    walk,
)

INDENT = "  "

OPENERS = frozenset({"{", "(", "[", "${"})
CLOSERS = frozenset({"}", ")", "]"})

LOOP_TYPES = ("for_statement", "for_in_statement", "while_statement", "do_statement")


def format_code(code: str, language: str) -> str:
    """Format ``code`` written in ``language``.

    Languages without a formatter are returned unchanged.

    Raises:
        ValueError: If the code does not parse.
    """
    name = language.strip().lower()
    if name == "json":
        return format_json(code)
    dialect = dialect_for_language(name)
    if dialect is None:
        return code
    return format_script(code, dialect)


def format_json(code: str) -> str:
    data = json.loads(code)
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


def _check_syntax(source: SourceText, root: Node) -> None:
    error = first_syntax_error(root)
    if error is not None:
        line, column = source.position(error.start_byte)
        raise ValueError(
            f"{syntax_error_message(error, source)} ({line + 1}:{column + 1})"
        )


def _quote_fixes(source: SourceText, root: Node) -> list[Fix]:
    """Double-quoted strings that can become single-quoted without escaping."""
    fixes = []
    for node in walk(root):
        if node.type != "string":
            continue
        parent = node.parent
        if parent is not None and parent.type == "jsx_attribute":
            continue
        text = source.node_text(node)
        inner = text[1:-1]
        if not text.startswith('"') or "'" in inner or "\\" in inner:
            continue
        fixes.append(
            Fix(
                source.char_offset(node.start_byte),
                source.char_offset(node.end_byte),
                f"'{inner}'",
            )
        )
    return fixes


def _mark(extra: Counter, first_row: int, last_row: int) -> None:
    for row in range(first_row, last_row + 1):
        extra[row] += 1


def _extra_indent(root: Node) -> Counter:
    """Indent levels not expressed by brackets: case bodies, unbraced bodies."""
    extra: Counter = Counter()
    for node in walk(root):
        if node.type in ("switch_case", "switch_default"):
            colon = next((c for c in node.children if c.type == ":"), None)
            if colon is None:
                continue
            body = [c for c in node.named_children if c.start_byte >= colon.end_byte]
            if not body or (len(body) == 1 and body[0].type == "statement_block"):
                continue
            _mark(extra, colon.end_point[0] + 1, node.end_point[0])
            continue

        body = None
        if node.type == "if_statement":
            body = node.child_by_field_name("consequence")
        elif node.type in LOOP_TYPES:
            body = node.child_by_field_name("body")
        elif node.type == "else_clause" and node.named_child_count:
            body = node.named_children[-1]
            if body.type == "if_statement":
                continue
        if body is None or body.type == "statement_block":
            continue
        previous = body.prev_sibling
        if previous is not None and body.start_point[0] > previous.end_point[0]:
            _mark(extra, body.start_point[0], body.end_point[0])
    return extra


def _protected_rows(root: Node) -> tuple[set[int], set[int], dict[int, int]]:
    """Rows inside multi-line literals, and block comment continuation rows.

    Returns the verbatim rows, the rows a multi-line literal opens on (their
    trailing whitespace belongs to the literal), and a map of comment row to
    the row the comment starts on.
    """
    verbatim: set[int] = set()
    literal_starts: set[int] = set()
    comment_rows: dict[int, int] = {}
    for node in walk(root):
        start_row, end_row = node.start_point[0], node.end_point[0]
        if start_row == end_row:
            continue
        if node.type in ("template_string", "string"):
            verbatim.update(range(start_row + 1, end_row + 1))
            literal_starts.add(start_row)
        elif node.type == "comment":
            for row in range(start_row + 1, end_row + 1):
                comment_rows[row] = start_row
    return verbatim, literal_starts, comment_rows


def _indent_levels(root: Node, row_count: int) -> list[int]:
    """Bracket depth at the start of each row.

    Brackets opened on the same row add one level together, and closing
    brackets at the start of a row dedent that row.
    """
    tokens_by_row: list[list[str]] = [[] for _ in range(row_count)]
    for token in leaves(root):
        row = token.start_point[0]
        if row < row_count and token.end_byte > token.start_byte:
            tokens_by_row[row].append(token.type)

    levels = []
    stack: list[list[int]] = []  # [increment, row]
    for row, tokens in enumerate(tokens_by_row):
        index = 0
        while index < len(tokens) and tokens[index] in CLOSERS:
            if stack:
                stack.pop()
            index += 1
        levels.append(sum(entry[0] for entry in stack))

        for token in tokens[index:]:
            if token in OPENERS:
                stack.append([0, row])
            elif token in CLOSERS and stack:
                stack.pop()
        opened_here = [entry for entry in stack if entry[1] == row]
        if opened_here:
            opened_here[0][0] = 1
    return levels


def format_script(code: str, language: Language) -> str:
    """Format TypeScript, JavaScript or TSX source."""
    code = code.replace("\r\n", "\n")
    source = SourceText(code)
    root = parse(source, language).root_node
    _check_syntax(source, root)

    fixes = missing_semicolon_fixes(source, root) + _quote_fixes(source, root)
    code = apply_fixes(code, fixes)

    source = SourceText(code)
    root = parse(source, language).root_node
    _check_syntax(source, root)

    lines = code.split("\n")
    levels = _indent_levels(root, len(lines))
    extra = _extra_indent(root)
    verbatim, literal_starts, comment_rows = _protected_rows(root)

    output: list[str] = []
    blank_run = False
    for row, line in enumerate(lines):
        if row in verbatim:
            output.append(line)
            blank_run = False
            continue

        stripped = line.strip()
        if row in comment_rows:
            indent = INDENT * (levels[comment_rows[row]] + extra[comment_rows[row]])
            if stripped.startswith("*"):
                output.append(f"{indent} {stripped}")
            else:
                output.append(line.rstrip())
            blank_run = False
            continue

        if not stripped:
            if output and not blank_run:
                output.append("")
            blank_run = True
            continue

        blank_run = False
        if row in literal_starts:
            output.append(INDENT * (levels[row] + extra[row]) + line.lstrip())
            continue
        output.append(INDENT * (levels[row] + extra[row]) + stripped)

    while output and output[-1] == "":
        output.pop()
    if not output:
        return ""
    return "\n".join(output) + "\n"
