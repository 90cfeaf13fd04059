"""TypeScript parsing helpers shared by the formatter, linter and type checker."""

import bisect
import posixpath
import re
from collections.abc import Iterator

import tree_sitter_typescript
from tree_sitter import Language, Node, Parser, Tree

TYPESCRIPT = Language(tree_sitter_typescript.language_typescript())
TSX = Language(tree_sitter_typescript.language_tsx())

_EXTENSION_DIALECTS: dict[str, Language] = {
    ".ts": TYPESCRIPT,
    ".mts": TYPESCRIPT,
    ".cts": TYPESCRIPT,
    ".js": TYPESCRIPT,
    ".mjs": TYPESCRIPT,
    ".cjs": TYPESCRIPT,
    ".tsx": TSX,
    ".jsx": TSX,
}

_LANGUAGE_DIALECTS: dict[str, Language] = {
    "typescript": TYPESCRIPT,
    "ts": TYPESCRIPT,
    "javascript": TYPESCRIPT,
    "js": TYPESCRIPT,
    "babel": TYPESCRIPT,
    "tsx": TSX,
    "jsx": TSX,
}

_NEWLINE = re.compile(rb"\n")

NodeKey = tuple[int, int, str]


def dialect_for_path(path: str) -> Language | None:
    """Grammar for a file path, or None if it is not a script file."""
    if path.endswith(".d.ts"):
        return TYPESCRIPT
    _, ext = posixpath.splitext(path.lower())
    return _EXTENSION_DIALECTS.get(ext)


def dialect_for_language(language: str) -> Language | None:
    """Grammar for a language name such as 'typescript' or 'tsx'."""
    return _LANGUAGE_DIALECTS.get(language.strip().lower())


class SourceText:
    """Source code with conversions between byte offsets and characters.

    tree-sitter works in UTF-8 byte offsets; diagnostics and fixes are
    reported in characters.
    """

    def __init__(self, text: str):
        self.text = text
        self.data = text.encode("utf-8")
        self._byte_line_starts = [0] + [m.end() for m in _NEWLINE.finditer(self.data)]
        self._char_line_starts = [0]
        for line in text.split("\n")[:-1]:
            self._char_line_starts.append(self._char_line_starts[-1] + len(line) + 1)

    def slice(self, start_byte: int, end_byte: int) -> str:
        return self.data[start_byte:end_byte].decode("utf-8", errors="replace")

    def node_text(self, node: Node) -> str:
        return self.slice(node.start_byte, node.end_byte)

    def position(self, byte_offset: int) -> tuple[int, int]:
        """0-indexed ``(line, character)`` of a byte offset."""
        row = bisect.bisect_right(self._byte_line_starts, byte_offset) - 1
        line_start = self._byte_line_starts[row]
        column = len(self.data[line_start:byte_offset].decode("utf-8", errors="ignore"))
        return row, column

    def char_offset(self, byte_offset: int) -> int:
        row, column = self.position(byte_offset)
        return self._char_line_starts[row] + column


def parse(source: SourceText, language: Language = TYPESCRIPT) -> Tree:
    return Parser(language).parse(source.data)


def walk(node: Node) -> Iterator[Node]:
    """Pre-order traversal."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def leaves(node: Node) -> Iterator[Node]:
    """Tokens of a subtree in document order."""
    for current in walk(node):
        if current.child_count == 0:
            yield current


def node_key(node: Node) -> NodeKey:
    return node.start_byte, node.end_byte, node.type


def first_syntax_error(root: Node) -> Node | None:
    """First ERROR or MISSING node in document order."""
    if not root.has_error:
        return None
    for node in walk(root):
        if node.is_error or node.is_missing:
            return node
    return None


def syntax_error_message(node: Node, source: SourceText) -> str:
    """Human-readable message for a node returned by first_syntax_error."""
    if node.is_missing:
        if node.type == "identifier":
            return "Identifier expected."
        return f"'{node.type}' expected."
    for token in leaves(node):
        text = source.node_text(token).strip()
        if text:
            return f"Unexpected token '{text.split()[0]}'."
    return "Unexpected end of input."


def string_value(node: Node, source: SourceText) -> str:
    """Unquoted value of a string literal node."""
    text = source.node_text(node)
    if len(text) >= 2 and text[0] in "'\"`" and text[-1] == text[0]:
        return text[1:-1]
    return text


def enclosing(node: Node, *types: str) -> Node | None:
    """Nearest ancestor of one of the given types."""
    parent = node.parent
    while parent is not None:
        if parent.type in types:
            return parent
        parent = parent.parent
    return None


def pattern_identifiers(pattern: Node) -> list[Node]:
    """Identifiers bound by a declaration or assignment pattern."""
    if pattern.type in ("identifier", "shorthand_property_identifier_pattern"):
        return [pattern]
    if pattern.type in ("assignment_pattern", "object_assignment_pattern"):
        # defaults on the right are reads
        left = pattern.child_by_field_name("left")
        return pattern_identifiers(left) if left is not None else []
    if pattern.type == "pair_pattern":
        value = pattern.child_by_field_name("value")
        return pattern_identifiers(value) if value is not None else []
    if pattern.type in ("object_pattern", "array_pattern", "rest_pattern"):
        found: list[Node] = []
        for child in pattern.named_children:
            found.extend(pattern_identifiers(child))
        return found
    return []
