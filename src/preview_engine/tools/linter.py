"""ESLint-style rule engine for TypeScript sources.

Messages are produced in ESLint's native JSON shape (1-indexed line/column,
numeric severity, ``ruleId`` and an optional ``fix`` with character offsets)
and converted to canonical diagnostics by the normalizer.
"""

import re
from collections import Counter, defaultdict
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from tree_sitter import Node

from preview_engine.tools.syntax import (
    NodeKey,
    SourceText,
    dialect_for_path,
    enclosing,
    first_syntax_error,
    node_key,
    parse,
    pattern_identifiers,
    string_value,
    syntax_error_message,
    walk,
)

ERROR = 2
WARN = 1

# Mirrors the configuration generated projects ship with:
# eslint:recommended + @typescript-eslint/recommended and local overrides.
DEFAULT_RULES: dict[str, int] = {
    "no-var": ERROR,
    "prefer-const": WARN,
    "@typescript-eslint/no-unused-vars": WARN,
    "@typescript-eslint/no-explicit-any": WARN,
    "no-debugger": ERROR,
    "no-empty": ERROR,
    "no-dupe-keys": ERROR,
    "semi": WARN,
}

MAX_FIX_PASSES = 10

ARGS_IGNORE_PATTERN = re.compile(r"^_")

FUNCTION_TYPES = frozenset(
    {
        "function_declaration",
        "function_expression",
        "function",
        "arrow_function",
        "method_definition",
        "generator_function_declaration",
        "generator_function",
    }
)

BLOCK_SCOPE_TYPES = frozenset(
    {
        "program",
        "statement_block",
        "for_statement",
        "for_in_statement",
        "switch_body",
        "class_static_block",
    }
)

REFERENCE_TYPES = frozenset({"identifier", "type_identifier", "shorthand_property_identifier"})

SEMICOLON_STATEMENTS = frozenset(
    {
        "lexical_declaration",
        "variable_declaration",
        "expression_statement",
        "return_statement",
        "throw_statement",
        "break_statement",
        "continue_statement",
        "debugger_statement",
        "import_statement",
    }
)


@dataclass(frozen=True)
class Fix:
    """Replacement of ``text[start:end]`` (character offsets)."""

    start: int
    end: int
    text: str


@dataclass
class LintMessage:
    rule_id: str | None
    severity: int
    message: str
    line: int
    column: int
    end_line: int | None = None
    end_column: int | None = None
    fix: Fix | None = None
    fatal: bool = False

    def to_native(self) -> dict[str, Any]:
        native: dict[str, Any] = {
            "ruleId": self.rule_id,
            "severity": self.severity,
            "message": self.message,
            "line": self.line,
            "column": self.column,
        }
        if self.end_line is not None:
            native["endLine"] = self.end_line
            native["endColumn"] = self.end_column
        if self.fatal:
            native["fatal"] = True
        if self.fix is not None:
            native["fix"] = {"range": [self.fix.start, self.fix.end], "text": self.fix.text}
        return native


class _Context:
    """Per-run state handed to every rule."""

    def __init__(self, source: SourceText, root: Node, rules: Mapping[str, int], path: str):
        self.source = source
        self.root = root
        self.rules = rules
        self.path = path
        self.messages: list[LintMessage] = []
        self.by_type: dict[str, list[Node]] = defaultdict(list)
        for node in walk(root):
            self.by_type[node.type].append(node)

    def report(
        self,
        rule_id: str,
        node: Node,
        message: str,
        fix: Fix | None = None,
        at_end: bool = False,
    ) -> None:
        start_byte = node.end_byte if at_end else node.start_byte
        line, column = self.source.position(start_byte)
        end_line, end_column = self.source.position(node.end_byte)
        self.messages.append(
            LintMessage(
                rule_id=rule_id,
                severity=self.rules[rule_id],
                message=message,
                line=line + 1,
                column=column + 1,
                end_line=end_line + 1,
                end_column=end_column + 1,
                fix=fix,
            )
        )

    def text(self, node: Node) -> str:
        return self.source.node_text(node)

    def replace(self, node: Node, text: str) -> Fix:
        return Fix(
            self.source.char_offset(node.start_byte),
            self.source.char_offset(node.end_byte),
            text,
        )

    def insert_after(self, node: Node, text: str) -> Fix:
        offset = self.source.char_offset(node.end_byte)
        return Fix(offset, offset, text)


def _declaration_kind(declaration: Node, ctx: _Context) -> str | None:
    kind = declaration.child_by_field_name("kind")
    if kind is None and declaration.child_count:
        kind = declaration.children[0]
    return ctx.text(kind) if kind is not None else None


def _write_targets(ctx: _Context) -> tuple[list[Node], set[NodeKey]]:
    """All reassigned identifiers, and the subset that are write-only."""
    writes: list[Node] = []
    pure: set[NodeKey] = set()
    for node in ctx.by_type["assignment_expression"]:
        left = node.child_by_field_name("left")
        if left is None:
            continue
        for ident in pattern_identifiers(left):
            writes.append(ident)
            pure.add(node_key(ident))
    for node in ctx.by_type["augmented_assignment_expression"]:
        left = node.child_by_field_name("left")
        if left is not None and left.type == "identifier":
            writes.append(left)
    for node in ctx.by_type["update_expression"]:
        argument = node.child_by_field_name("argument")
        if argument is not None and argument.type == "identifier":
            writes.append(argument)
    for node in ctx.by_type["for_in_statement"]:
        if node.child_by_field_name("kind") is None:
            left = node.child_by_field_name("left")
            if left is not None and left.type == "identifier":
                writes.append(left)
                pure.add(node_key(left))
    return writes, pure


def _scope_of(node: Node) -> Node | None:
    return enclosing(node, *BLOCK_SCOPE_TYPES)


def _var_used_outside(ctx: _Context, declaration: Node) -> bool:
    """Whether a declared name is read outside the block or before the declaration."""
    names: set[str] = set()
    bound: set[NodeKey] = set()
    for declarator in declaration.named_children:
        name = declarator.child_by_field_name("name")
        if declarator.type == "variable_declarator" and name is not None:
            for ident in pattern_identifiers(name):
                names.add(ctx.text(ident))
                bound.add(node_key(ident))

    scope = _scope_of(declaration)
    start = scope.start_byte if scope else 0
    end = scope.end_byte if scope else len(ctx.source.data)
    for node_type in ("identifier", "shorthand_property_identifier"):
        for ident in ctx.by_type[node_type]:
            if node_key(ident) in bound or ctx.text(ident) not in names:
                continue
            if ident.start_byte < declaration.end_byte or not start <= ident.start_byte < end:
                return True
    return False


# Rules


def rule_no_var(ctx: _Context) -> None:
    declarations = ctx.by_type["variable_declaration"]
    counts: Counter[tuple[NodeKey | None, str]] = Counter()
    names_by_declaration: dict[NodeKey, list[tuple[NodeKey | None, str]]] = {}
    for declaration in declarations:
        scope = enclosing(declaration, *FUNCTION_TYPES, "program")
        scope_id = node_key(scope) if scope is not None else None
        names = []
        for declarator in declaration.named_children:
            name = declarator.child_by_field_name("name")
            if declarator.type == "variable_declarator" and name is not None:
                names.append((scope_id, ctx.text(name)))
        counts.update(names)
        names_by_declaration[node_key(declaration)] = names

    for declaration in declarations:
        # `let` cannot be redeclared, and has its own scope per case clause
        redeclared = any(counts[name] > 1 for name in names_by_declaration[node_key(declaration)])
        fixable = (
            not redeclared
            and not _var_used_outside(ctx, declaration)
            and declaration.parent is not None
            and declaration.parent.type not in ("switch_case", "switch_default")
        )
        ctx.report(
            "no-var",
            declaration,
            "Unexpected var, use let or const instead.",
            fix=ctx.replace(declaration.children[0], "let") if fixable else None,
        )


def rule_prefer_const(ctx: _Context, writes: list[Node]) -> None:
    writes_by_name: dict[str, list[int]] = defaultdict(list)
    for ident in writes:
        writes_by_name[ctx.text(ident)].append(ident.start_byte)

    for declaration in ctx.by_type["lexical_declaration"]:
        if _declaration_kind(declaration, ctx) != "let":
            continue
        scope = _scope_of(declaration)
        start = scope.start_byte if scope else 0
        end = scope.end_byte if scope else len(ctx.source.data)

        declarators = [n for n in declaration.named_children if n.type == "variable_declarator"]
        candidates: list[Node] = []
        for declarator in declarators:
            name = declarator.child_by_field_name("name")
            if name is None or name.type != "identifier":
                continue
            if declarator.child_by_field_name("value") is None:
                continue
            reassigned = any(start <= offset < end for offset in writes_by_name[ctx.text(name)])
            if not reassigned:
                candidates.append(name)

        fix = None
        if candidates and len(candidates) == len(declarators):
            fix = ctx.replace(declaration.children[0], "const")
        for name in candidates:
            ctx.report(
                "prefer-const",
                name,
                f"'{ctx.text(name)}' is never reassigned. Use 'const' instead.",
                fix=fix,
            )


def _is_exported(declaration: Node) -> bool:
    parent = declaration.parent
    return parent is not None and parent.type == "export_statement"


def rule_no_unused_vars(ctx: _Context, pure_writes: set[NodeKey]) -> None:
    if ctx.path.endswith(".d.ts"):
        return

    declared: list[tuple[Node, str]] = []
    declared_keys: set[NodeKey] = set()

    def declare(name: Node, message: str) -> None:
        declared.append((name, message))
        declared_keys.add(node_key(name))

    for declaration_type in ("lexical_declaration", "variable_declaration"):
        for declaration in ctx.by_type[declaration_type]:
            if _is_exported(declaration) or enclosing(declaration, "ambient_declaration"):
                continue
            for declarator in declaration.named_children:
                if declarator.type != "variable_declarator":
                    continue
                pattern = declarator.child_by_field_name("name")
                if pattern is None:
                    continue
                assigned = declarator.child_by_field_name("value") is not None
                for ident in pattern_identifiers(pattern):
                    text = ctx.text(ident)
                    declare(
                        ident,
                        f"'{text}' is assigned a value but never used."
                        if assigned
                        else f"'{text}' is defined but never used.",
                    )

    for declaration_type in (
        "function_declaration",
        "generator_function_declaration",
        "class_declaration",
        "abstract_class_declaration",
        "interface_declaration",
        "type_alias_declaration",
        "enum_declaration",
    ):
        for declaration in ctx.by_type[declaration_type]:
            if _is_exported(declaration) or enclosing(declaration, "ambient_declaration"):
                continue
            name = declaration.child_by_field_name("name")
            if name is not None:
                declare(name, f"'{ctx.text(name)}' is defined but never used.")

    for statement in ctx.by_type["import_statement"]:
        for node in walk(statement):
            name = None
            if node.type == "import_specifier":
                name = node.child_by_field_name("alias") or node.child_by_field_name("name")
            elif node.type == "import_clause":
                name = next((c for c in node.children if c.type == "identifier"), None)
            elif node.type == "namespace_import":
                name = next((c for c in node.children if c.type == "identifier"), None)
            if name is not None:
                declare(name, f"'{ctx.text(name)}' is defined but never used.")

    parameter_lists: list[list[Node]] = []
    for formal in ctx.by_type["formal_parameters"]:
        owner = formal.parent
        if owner is None or owner.child_by_field_name("body") is None:
            continue
        names = []
        for parameter in formal.named_children:
            if parameter.type not in ("required_parameter", "optional_parameter"):
                continue
            if any(
                c.type in ("accessibility_modifier", "override_modifier", "readonly")
                for c in parameter.children
            ):
                continue
            pattern = parameter.child_by_field_name("pattern")
            if pattern is not None and pattern.type == "identifier":
                names.append(pattern)
        parameter_lists.append(names)
    for arrow in ctx.by_type["arrow_function"]:
        parameter = arrow.child_by_field_name("parameter")
        if parameter is not None and parameter.type == "identifier":
            parameter_lists.append([parameter])
    for names in parameter_lists:
        for name in names:
            declared_keys.add(node_key(name))

    references: Counter[str] = Counter()
    for reference_type in REFERENCE_TYPES:
        for node in ctx.by_type[reference_type]:
            key = node_key(node)
            if key in declared_keys or key in pure_writes:
                continue
            parent = node.parent
            if (
                parent is not None
                and parent.type == "import_specifier"
                and parent.child_by_field_name("alias") is not None
            ):
                continue
            references[ctx.text(node)] += 1

    rule_id = "@typescript-eslint/no-unused-vars"
    for name, message in declared:
        if references[ctx.text(name)] == 0:
            ctx.report(rule_id, name, message)

    # args: "after-used" - only parameters after the last used one are reported
    for names in parameter_lists:
        used = [references[ctx.text(n)] > 0 for n in names]
        last_used = max((i for i, u in enumerate(used) if u), default=-1)
        for index, name in enumerate(names):
            text = ctx.text(name)
            if index > last_used and not used[index] and not ARGS_IGNORE_PATTERN.match(text):
                ctx.report(rule_id, name, f"'{text}' is defined but never used.")


def rule_no_explicit_any(ctx: _Context) -> None:
    for node in ctx.by_type["predefined_type"]:
        if ctx.text(node) == "any":
            ctx.report(
                "@typescript-eslint/no-explicit-any",
                node,
                "Unexpected any. Specify a different type.",
            )


def rule_no_debugger(ctx: _Context) -> None:
    for node in ctx.by_type["debugger_statement"]:
        ctx.report("no-debugger", node, "Unexpected 'debugger' statement.")


def rule_no_empty(ctx: _Context) -> None:
    for block in ctx.by_type["statement_block"]:
        parent = block.parent
        if parent is not None and (
            parent.type in FUNCTION_TYPES
            or parent.type in ("class_static_block", "internal_module", "module")
        ):
            continue
        if all(child.type in ("{", "}") for child in block.children):
            ctx.report("no-empty", block, "Empty block statement.")


def _property_key(node: Node, ctx: _Context) -> tuple[str, Node] | None:
    if node.type == "pair":
        key = node.child_by_field_name("key")
        if key is None or key.type == "computed_property_name":
            return None
        if key.type == "string":
            return string_value(key, ctx.source), key
        return ctx.text(key), key
    if node.type == "shorthand_property_identifier":
        return ctx.text(node), node
    if node.type == "method_definition":
        if any(c.type in ("get", "set") for c in node.children):
            return None
        key = node.child_by_field_name("name")
        if key is None or key.type == "computed_property_name":
            return None
        return ctx.text(key), key
    return None


def rule_no_dupe_keys(ctx: _Context) -> None:
    for obj in ctx.by_type["object"]:
        seen: set[str] = set()
        for member in obj.named_children:
            found = _property_key(member, ctx)
            if found is None:
                continue
            name, key = found
            if name in seen:
                ctx.report("no-dupe-keys", key, f"Duplicate key '{name}'.")
            seen.add(name)


def _needs_semicolon(statement: Node) -> bool:
    if statement.type == "export_statement":
        has_clause = any(
            c.type in ("export_clause", "*", "namespace_export") for c in statement.children
        )
        return has_clause or statement.child_by_field_name("value") is not None
    return statement.type in SEMICOLON_STATEMENTS


def rule_semi(ctx: _Context) -> None:
    candidates: list[Node] = []
    for statement_type in (*SEMICOLON_STATEMENTS, "export_statement"):
        candidates.extend(ctx.by_type[statement_type])
    for statement in candidates:
        parent = statement.parent
        if parent is not None and parent.type in ("for_statement", "for_in_statement"):
            continue
        if not _needs_semicolon(statement) or not statement.children:
            continue
        if statement.children[-1].type != ";":
            ctx.report(
                "semi",
                statement,
                "Missing semicolon.",
                fix=ctx.insert_after(statement, ";"),
                at_end=True,
            )

    for field in ctx.by_type["public_field_definition"]:
        sibling = field.next_sibling
        if sibling is None or sibling.type not in (";", ","):
            ctx.report(
                "semi", field, "Missing semicolon.", fix=ctx.insert_after(field, ";"), at_end=True
            )


def missing_semicolon_fixes(source: SourceText, root: Node) -> list[Fix]:
    """Semicolon insertions the ``semi`` rule would make."""
    ctx = _Context(source, root, {"semi": WARN}, "")
    rule_semi(ctx)
    return [m.fix for m in ctx.messages if m.fix is not None]


def apply_fixes(text: str, fixes: list[Fix]) -> str:
    """Apply non-overlapping fixes; later overlapping ones are dropped."""
    parts: list[str] = []
    position = 0
    for fix in sorted(fixes, key=lambda f: (f.start, f.end)):
        if fix.start < position:
            continue
        parts.append(text[position : fix.start])
        parts.append(fix.text)
        position = fix.end
    parts.append(text[position:])
    return "".join(parts)


class Linter:
    """Runs the configured rules over one file."""

    def __init__(self, rules: Mapping[str, int] | None = None):
        self.rules = dict(DEFAULT_RULES if rules is None else rules)

    def verify(self, code: str, file_path: str) -> list[LintMessage]:
        """Lint ``code`` as if it lived at ``file_path``.

        Raises:
            ValueError: If the file type cannot be linted.
        """
        language = dialect_for_path(file_path)
        if language is None:
            raise ValueError(f"unsupported file type for linting: '{file_path}'")

        source = SourceText(code)
        root = parse(source, language).root_node

        error = first_syntax_error(root)
        if error is not None:
            line, column = source.position(error.start_byte)
            return [
                LintMessage(
                    rule_id=None,
                    severity=ERROR,
                    message=f"Parsing error: {syntax_error_message(error, source)}",
                    line=line + 1,
                    column=column + 1,
                    fatal=True,
                )
            ]

        ctx = _Context(source, root, self.rules, file_path)
        writes, pure_writes = _write_targets(ctx)
        enabled = {rule_id for rule_id, severity in self.rules.items() if severity}
        if "no-var" in enabled:
            rule_no_var(ctx)
        if "prefer-const" in enabled:
            rule_prefer_const(ctx, writes)
        if "@typescript-eslint/no-unused-vars" in enabled:
            rule_no_unused_vars(ctx, pure_writes)
        if "@typescript-eslint/no-explicit-any" in enabled:
            rule_no_explicit_any(ctx)
        if "no-debugger" in enabled:
            rule_no_debugger(ctx)
        if "no-empty" in enabled:
            rule_no_empty(ctx)
        if "no-dupe-keys" in enabled:
            rule_no_dupe_keys(ctx)
        if "semi" in enabled:
            rule_semi(ctx)

        return sorted(ctx.messages, key=lambda m: (m.line, m.column))

    def verify_and_fix(self, code: str, file_path: str) -> tuple[list[LintMessage], str]:
        """Apply fixes until none remain, then lint the result.

        Returns the messages that could not be fixed and the fixed code.
        """
        output = code
        messages = self.verify(output, file_path)
        for _ in range(MAX_FIX_PASSES):
            fixes = [m.fix for m in messages if m.fix is not None]
            if not fixes:
                break
            output = apply_fixes(output, fixes)
            messages = self.verify(output, file_path)
        return messages, output


def lint(code: str, file_path: str, fix: bool = False) -> dict[str, Any]:
    """Lint one file, returning ESLint-shaped ``messages`` and ``output``.

    ``output`` is only set when fixing changed the code.
    """
    linter = Linter()
    if not fix:
        return {"messages": [m.to_native() for m in linter.verify(code, file_path)], "output": None}

    messages, output = linter.verify_and_fix(code, file_path)
    return {
        "messages": [m.to_native() for m in messages],
        "output": output if output != code else None,
    }
