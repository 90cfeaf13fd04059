"""Whole-project type checking over an in-memory snapshot.

The checker never touches the host filesystem: every file it sees comes
from a :class:`FileResolver`, and the snapshot-backed resolver refuses
writes. Diagnostics use the TypeScript compiler's native shape: a 0-indexed
``(line, character)`` ``start`` (``None`` for project-level problems), a
numeric ``category`` and ``code``, and ``messageText``.

The checks cover what generated projects most commonly break while being
edited: syntax, literal assignability of annotated declarations and
returns, block-scoped redeclaration, assignment to constants, unresolved
imports and missing exports.
"""

import json
import logging
import posixpath
from collections import defaultdict
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

from tree_sitter import Node

from preview_engine.sandbox.guard import SandboxViolation
from preview_engine.tools.syntax import (
    NodeKey,
    SourceText,
    dialect_for_path,
    enclosing,
    node_key,
    parse,
    pattern_identifiers,
    string_value,
    walk,
)
from preview_engine.utils.paths import normalize_path, normalize_separators

logger = logging.getLogger(__name__)

# DiagnosticCategory
CATEGORY_WARNING = 0
CATEGORY_ERROR = 1

DEFAULT_COMPILER_OPTIONS: dict[str, Any] = {
    "target": "ES2020",
    "module": "CommonJS",
    "lib": ["es2020"],
    "strict": True,
    "esModuleInterop": True,
    "skipLibCheck": True,
    "forceConsistentCasingInFileNames": True,
    "noEmit": True,
    "moduleResolution": "node",
    "resolveJsonModule": True,
    "allowSyntheticDefaultImports": True,
    "experimentalDecorators": True,
    "emitDecoratorMetadata": True,
}

KNOWN_OPTIONS = frozenset(
    {
        *DEFAULT_COMPILER_OPTIONS,
        "allowJs",
        "checkJs",
        "baseUrl",
        "declaration",
        "emitDeclarationOnly",
        "isolatedModules",
        "jsx",
        "noEmitOnError",
        "noImplicitAny",
        "noUnusedLocals",
        "noUnusedParameters",
        "outDir",
        "paths",
        "rootDir",
        "sourceMap",
        "strictNullChecks",
        "strictPropertyInitialization",
        "types",
        "typeRoots",
    }
)

TS_EXTENSIONS = (".ts", ".tsx", ".mts", ".cts")
JS_EXTENSIONS = (".js", ".jsx", ".mjs", ".cjs")

# .js specifiers in TypeScript sources refer to the .ts file they compile from
JS_TO_TS = {".js": (".ts", ".tsx"), ".jsx": (".tsx",), ".mjs": (".mts",), ".cjs": (".cts",)}

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

BLOCK_TYPES = frozenset(
    {
        "program",
        "statement_block",
        "switch_body",
        "for_statement",
        "for_in_statement",
        "class_static_block",
    }
)

SCOPE_TYPES = BLOCK_TYPES | FUNCTION_TYPES | {"catch_clause"}

EXPORTED_DECLARATIONS = frozenset(
    {
        "function_declaration",
        "generator_function_declaration",
        "class_declaration",
        "abstract_class_declaration",
        "interface_declaration",
        "type_alias_declaration",
        "enum_declaration",
        "internal_module",
        "module",
        "function_signature",
    }
)

TypeSet = frozenset[str]


class FileResolver(Protocol):
    """The checker's only view of files."""

    def exists(self, path: str) -> bool: ...

    def read(self, path: str) -> str | None: ...

    def write(self, path: str, content: str) -> None: ...


class SnapshotResolver:
    """Resolver backed by an in-memory ``path -> content`` snapshot.

    Lookups normalize separators, so ``src\\\\a.ts`` and ``./src/a.ts`` both
    find ``src/a.ts``. Paths outside the snapshot do not exist, whatever is
    on the host.
    """

    def __init__(self, files: Mapping[str, str]):
        self._files = {self._key(path): content for path, content in files.items()}

    @staticmethod
    def _key(path: str) -> str:
        return posixpath.normpath("/" + normalize_separators(path)).lstrip("/")

    def exists(self, path: str) -> bool:
        return self._key(path) in self._files

    def read(self, path: str) -> str | None:
        return self._files.get(self._key(path))

    def write(self, path: str, content: str) -> None:
        raise SandboxViolation(f"write to '{path}' blocked")

    def paths(self) -> list[str]:
        return list(self._files)


@dataclass
class _Module:
    path: str
    source: SourceText
    root: Node
    syntax_ok: bool


@dataclass
class _Exports:
    names: set[str] = field(default_factory=set)
    has_default: bool = False
    # export * / export = make the member list unknowable here
    open: bool = False


def _diagnostic(
    module: _Module | None,
    node: Node | None,
    code: int,
    message: str,
    category: int = CATEGORY_ERROR,
) -> dict[str, Any]:
    start = end = None
    if module is not None and node is not None:
        start = list(module.source.position(node.start_byte))
        end = list(module.source.position(node.end_byte))
    return {
        "file": module.path if module is not None else None,
        "start": start,
        "end": end,
        "category": category,
        "code": code,
        "messageText": message,
    }


# Types


def annotation_types(node: Node, source: SourceText) -> TypeSet | None:
    """Types named by an annotation, or None if it is beyond these checks."""
    if node.type == "type_annotation":
        if not node.named_children:
            return None
        node = node.named_children[0]
    if node.type == "parenthesized_type" and node.named_children:
        return annotation_types(node.named_children[0], source)
    if node.type == "predefined_type":
        return frozenset({source.node_text(node)})
    if node.type == "literal_type" and node.named_children:
        kind = node.named_children[0].type
        if kind in ("null", "undefined"):
            return frozenset({kind})
        return None
    if node.type == "array_type" and node.named_children:
        element = annotation_types(node.named_children[0], source)
        if element is None or len(element) != 1:
            return None
        return frozenset({f"{next(iter(element))}[]"})
    if node.type == "generic_type":
        name = node.child_by_field_name("name")
        arguments = node.child_by_field_name("type_arguments")
        if (
            name is not None
            and source.node_text(name) == "Array"
            and arguments is not None
            and len(arguments.named_children) == 1
        ):
            element = annotation_types(arguments.named_children[0], source)
            if element is not None and len(element) == 1:
                return frozenset({f"{next(iter(element))}[]"})
        return None
    if node.type == "union_type":
        members: set[str] = set()
        for member in node.named_children:
            resolved = annotation_types(member, source)
            if resolved is None:
                return None
            members |= resolved
        return frozenset(members)
    return None


def value_type(node: Node, source: SourceText) -> str | None:
    """Widened type of a literal expression, or None if not a literal."""
    kind = node.type
    if kind in ("string", "template_string"):
        return "string"
    if kind == "number":
        return "number"
    if kind in ("true", "false"):
        return "boolean"
    if kind == "null":
        return "null"
    if kind == "undefined" or (kind == "identifier" and source.node_text(node) == "undefined"):
        return "undefined"
    if kind == "parenthesized_expression" and node.named_children:
        return value_type(node.named_children[0], source)
    if kind == "unary_expression":
        operator = node.child_by_field_name("operator")
        argument = node.child_by_field_name("argument")
        op = source.node_text(operator) if operator is not None else ""
        if op == "!":
            return "boolean"
        if op == "typeof":
            return "string"
        if op in ("-", "+", "~") and argument is not None and argument.type == "number":
            return "number"
        return None
    if kind == "array":
        elements = {
            value_type(element, source)
            for element in node.named_children
            if element.type != "comment"
        }
        if len(elements) != 1 or None in elements:
            return None
        return f"{elements.pop()}[]"
    return None


def is_assignable(value: str, targets: TypeSet, strict_null_checks: bool) -> bool:
    if targets & {"any", "unknown"}:
        return True
    if value in ("null", "undefined"):
        if not strict_null_checks:
            return True
        return value in targets or (value == "undefined" and "void" in targets)
    if value in targets:
        return True
    if value.endswith("[]"):
        if targets & {"object", "any[]", "unknown[]"}:
            return True
        element = value[:-2]
        if element in ("null", "undefined") and not strict_null_checks:
            return any(t.endswith("[]") for t in targets)
    return False


def _display(node: Node, source: SourceText) -> str:
    if node.type == "type_annotation" and node.named_children:
        node = node.named_children[0]
    return " ".join(source.node_text(node).split())


class TypeChecker:
    """Checks the root files of a snapshot against each other."""

    def __init__(
        self,
        resolver: FileResolver,
        root_names: Iterable[str],
        compiler_options: Mapping[str, Any] | None = None,
    ):
        self.resolver = resolver
        self.options = {**DEFAULT_COMPILER_OPTIONS, **(compiler_options or {})}
        self._overrides = dict(compiler_options or {})
        self.root_names = [name for name in root_names if self._is_root(name)]
        self._modules: dict[str, _Module | None] = {}
        self._exports: dict[str, _Exports] = {}

    @property
    def strict_null_checks(self) -> bool:
        return bool(self.options.get("strictNullChecks", self.options.get("strict", False)))

    def _is_root(self, path: str) -> bool:
        if "node_modules" in path.split("/"):
            return False
        if path.endswith(TS_EXTENSIONS):
            return True
        return bool(self.options.get("allowJs")) and path.endswith(JS_EXTENSIONS)

    def check(self) -> list[dict[str, Any]]:
        """Run every check over every root file, then emit if configured."""
        diagnostics: list[dict[str, Any]] = []
        for name in self._overrides:
            if name not in KNOWN_OPTIONS:
                diagnostics.append(
                    _diagnostic(None, None, 5023, f"Unknown compiler option '{name}'.")
                )

        if not self.root_names:
            diagnostics.append(
                _diagnostic(None, None, 18003, "No inputs were found in the project snapshot.")
            )

        for path in self.root_names:
            module = self._load(path)
            if module is None:
                continue
            file_diagnostics = self._syntax(module)
            semantic = (
                module.syntax_ok
                and not path.endswith(".d.ts")
                and (path.endswith(TS_EXTENSIONS) or bool(self.options.get("checkJs")))
            )
            if semantic:
                file_diagnostics.extend(self._assignability(module))
                file_diagnostics.extend(self._redeclarations(module))
                file_diagnostics.extend(self._constant_assignments(module))
                file_diagnostics.extend(self._imports(module))
            file_diagnostics.sort(key=lambda d: tuple(d["start"] or (0, 0)))
            diagnostics.extend(file_diagnostics)

        if not self.options.get("noEmit"):
            if not (self.options.get("noEmitOnError") and diagnostics):
                self._emit()

        logger.debug(f"Checked {len(self.root_names)} files: {len(diagnostics)} diagnostics")
        return diagnostics

    def _load(self, path: str) -> _Module | None:
        if path in self._modules:
            return self._modules[path]
        text = self.resolver.read(path)
        language = dialect_for_path(path)
        module = None
        if text is not None and language is not None:
            source = SourceText(text)
            root = parse(source, language).root_node
            module = _Module(path=path, source=source, root=root, syntax_ok=not root.has_error)
        self._modules[path] = module
        return module

    # Syntax

    def _syntax(self, module: _Module) -> list[dict[str, Any]]:
        if module.syntax_ok:
            return []
        diagnostics = []
        for node in walk(module.root):
            if node.is_missing:
                if node.type == "identifier":
                    diagnostics.append(_diagnostic(module, node, 1003, "Identifier expected."))
                else:
                    diagnostics.append(_diagnostic(module, node, 1005, f"'{node.type}' expected."))
            elif node.is_error and enclosing(node, "ERROR") is None:
                diagnostics.append(
                    _diagnostic(module, node, 1128, "Declaration or statement expected.")
                )
        return diagnostics

    # Assignability

    def _check_value(
        self,
        module: _Module,
        report_at: Node,
        annotation: Node | None,
        value: Node | None,
    ) -> dict[str, Any] | None:
        if annotation is None or value is None:
            return None
        targets = annotation_types(annotation, module.source)
        actual = value_type(value, module.source)
        if targets is None or actual is None:
            return None
        if is_assignable(actual, targets, self.strict_null_checks):
            return None
        return _diagnostic(
            module,
            report_at,
            2322,
            f"Type '{actual}' is not assignable to type '{_display(annotation, module.source)}'.",
        )

    def _assignability(self, module: _Module) -> list[dict[str, Any]]:
        diagnostics = []
        for node in walk(module.root):
            found = None
            if node.type in ("variable_declarator", "public_field_definition"):
                name = node.child_by_field_name("name")
                if name is not None:
                    found = self._check_value(
                        module,
                        name,
                        node.child_by_field_name("type"),
                        node.child_by_field_name("value"),
                    )
            elif node.type == "return_statement":
                found = self._check_return(module, node)
            if found is not None:
                diagnostics.append(found)
        return diagnostics

    def _check_return(self, module: _Module, statement: Node) -> dict[str, Any] | None:
        function = enclosing(statement, *FUNCTION_TYPES)
        if function is None or "generator" in function.type:
            return None
        if any(child.type in ("async", "*") for child in function.children):
            return None
        values = [c for c in statement.named_children if c.type != "comment"]
        return self._check_value(
            module,
            statement.children[0],
            function.child_by_field_name("return_type"),
            values[0] if values else None,
        )

    # Declarations

    def _redeclarations(self, module: _Module) -> list[dict[str, Any]]:
        declared: dict[tuple[NodeKey | None, str], list[Node]] = defaultdict(list)
        for node in walk(module.root):
            if node.type != "lexical_declaration":
                continue
            scope = enclosing(node, *BLOCK_TYPES)
            scope_id = node_key(scope) if scope is not None else None
            for declarator in node.named_children:
                pattern = declarator.child_by_field_name("name")
                if declarator.type != "variable_declarator" or pattern is None:
                    continue
                for ident in pattern_identifiers(pattern):
                    declared[(scope_id, module.source.node_text(ident))].append(ident)

        diagnostics = []
        for (_, name), occurrences in declared.items():
            if len(occurrences) > 1:
                for ident in occurrences:
                    diagnostics.append(
                        _diagnostic(
                            module, ident, 2451, f"Cannot redeclare block-scoped variable '{name}'."
                        )
                    )
        return diagnostics

    def _scopes(self, module: _Module) -> dict[NodeKey, dict[str, str]]:
        """Declared names and their kind, per scope node."""
        scopes: dict[NodeKey, dict[str, str]] = defaultdict(dict)
        text = module.source.node_text

        def declare(scope: Node | None, ident: Node, kind: str) -> None:
            if scope is not None:
                scopes[node_key(scope)].setdefault(text(ident), kind)

        for node in walk(module.root):
            kind = node.type
            if kind in ("lexical_declaration", "variable_declaration"):
                keyword = text(node.children[0])
                scope = (
                    enclosing(node, *FUNCTION_TYPES, "program")
                    if keyword == "var"
                    else enclosing(node, *BLOCK_TYPES)
                )
                for declarator in node.named_children:
                    pattern = declarator.child_by_field_name("name")
                    if declarator.type == "variable_declarator" and pattern is not None:
                        for ident in pattern_identifiers(pattern):
                            declare(scope, ident, keyword)
            elif kind == "for_in_statement":
                declaration_kind = node.child_by_field_name("kind")
                left = node.child_by_field_name("left")
                if declaration_kind is not None and left is not None:
                    for ident in pattern_identifiers(left):
                        declare(node, ident, text(declaration_kind))
            elif kind in (
                "function_declaration",
                "generator_function_declaration",
                "class_declaration",
            ):
                name = node.child_by_field_name("name")
                if name is not None:
                    declare(enclosing(node, *BLOCK_TYPES), name, "function")
            elif kind == "formal_parameters":
                for parameter in node.named_children:
                    pattern = parameter.child_by_field_name("pattern")
                    if pattern is not None:
                        for ident in pattern_identifiers(pattern):
                            declare(node.parent, ident, "parameter")
            elif kind == "arrow_function":
                parameter = node.child_by_field_name("parameter")
                if parameter is not None:
                    declare(node, parameter, "parameter")
            elif kind == "catch_clause":
                parameter = node.child_by_field_name("parameter")
                if parameter is not None:
                    for ident in pattern_identifiers(parameter):
                        declare(node, ident, "parameter")
            elif kind in ("import_specifier", "import_clause", "namespace_import"):
                if kind == "import_specifier":
                    name = node.child_by_field_name("alias") or node.child_by_field_name("name")
                else:
                    name = next((c for c in node.children if c.type == "identifier"), None)
                if name is not None:
                    declare(module.root, name, "import")
        return scopes

    def _constant_assignments(self, module: _Module) -> list[dict[str, Any]]:
        targets: list[Node] = []
        for node in walk(module.root):
            if node.type == "assignment_expression":
                left = node.child_by_field_name("left")
                if left is not None:
                    targets.extend(pattern_identifiers(left))
            elif node.type == "augmented_assignment_expression":
                left = node.child_by_field_name("left")
                if left is not None and left.type == "identifier":
                    targets.append(left)
            elif node.type == "update_expression":
                argument = node.child_by_field_name("argument")
                if argument is not None and argument.type == "identifier":
                    targets.append(argument)
            elif node.type == "for_in_statement" and node.child_by_field_name("kind") is None:
                left = node.child_by_field_name("left")
                if left is not None and left.type == "identifier":
                    targets.append(left)
        if not targets:
            return []

        scopes = self._scopes(module)
        diagnostics = []
        for ident in targets:
            name = module.source.node_text(ident)
            kind = None
            scope = ident.parent
            while scope is not None:
                if scope.type in SCOPE_TYPES:
                    kind = scopes.get(node_key(scope), {}).get(name)
                    if kind is not None:
                        break
                scope = scope.parent
            if kind == "const":
                diagnostics.append(
                    _diagnostic(
                        module, ident, 2588, f"Cannot assign to '{name}' because it is a constant."
                    )
                )
            elif kind == "import":
                diagnostics.append(
                    _diagnostic(
                        module, ident, 2632, f"Cannot assign to '{name}' because it is an import."
                    )
                )
        return diagnostics

    # Modules

    def _imports(self, module: _Module) -> list[dict[str, Any]]:
        diagnostics = []
        for node in walk(module.root):
            if node.type not in ("import_statement", "export_statement"):
                continue
            source_node = node.child_by_field_name("source")
            if source_node is None:
                continue
            specifier = string_value(source_node, module.source)
            target = self.resolve_module(specifier, module.path)
            if target is None:
                diagnostics.append(
                    _diagnostic(
                        module,
                        source_node,
                        2307,
                        f"Cannot find module '{specifier}' or its corresponding type declarations.",
                    )
                )
                continue

            exports = self._exports_of(target)
            if exports is None or exports.open:
                continue
            diagnostics.extend(self._check_members(module, node, specifier, exports))
        return diagnostics

    def _check_members(
        self, module: _Module, statement: Node, specifier: str, exports: _Exports
    ) -> list[dict[str, Any]]:
        diagnostics = []
        text = module.source.node_text
        for node in walk(statement):
            if node.type in ("import_specifier", "export_specifier"):
                name = node.child_by_field_name("name")
                if name is None:
                    continue
                member = string_value(name, module.source) if name.type == "string" else text(name)
                if member == "default":
                    if not exports.has_default:
                        diagnostics.append(
                            _diagnostic(
                                module,
                                name,
                                1192,
                                f"Module '\"{specifier}\"' has no default export.",
                            )
                        )
                elif member not in exports.names:
                    diagnostics.append(
                        _diagnostic(
                            module,
                            name,
                            2305,
                            f"Module '\"{specifier}\"' has no exported member '{member}'.",
                        )
                    )
            elif node.type == "import_clause":
                default = next((c for c in node.children if c.type == "identifier"), None)
                if default is not None and not exports.has_default:
                    diagnostics.append(
                        _diagnostic(
                            module,
                            default,
                            1192,
                            f"Module '\"{specifier}\"' has no default export.",
                        )
                    )
        return diagnostics

    def _exports_of(self, path: str) -> _Exports | None:
        if path.endswith((".d.ts", ".json")) or not path.endswith(TS_EXTENSIONS + JS_EXTENSIONS):
            return None
        if path in self._exports:
            return self._exports[path]
        module = self._load(path)
        if module is None or not module.syntax_ok:
            return None

        exports = _Exports()
        text = module.source.node_text
        for statement in module.root.named_children:
            if statement.type != "export_statement":
                continue
            children = statement.children
            if any(c.type == "default" for c in children):
                exports.has_default = True
                continue
            if any(c.type in ("*", "=") for c in children):
                exports.open = True
                continue
            for c in children:
                if c.type == "namespace_export" and c.named_children:
                    exports.names.add(text(c.named_children[-1]))
            declaration = statement.child_by_field_name("declaration")
            if declaration is not None:
                if declaration.type in ("lexical_declaration", "variable_declaration"):
                    for declarator in declaration.named_children:
                        pattern = declarator.child_by_field_name("name")
                        if declarator.type == "variable_declarator" and pattern is not None:
                            exports.names.update(text(i) for i in pattern_identifiers(pattern))
                elif declaration.type in EXPORTED_DECLARATIONS:
                    name = declaration.child_by_field_name("name")
                    if name is not None:
                        exports.names.add(text(name))
                elif declaration.type == "ambient_declaration":
                    exports.open = True
                continue
            for clause in children:
                if clause.type != "export_clause":
                    continue
                for specifier in clause.named_children:
                    if specifier.type != "export_specifier":
                        continue
                    exported = specifier.child_by_field_name("alias") or (
                        specifier.child_by_field_name("name")
                    )
                    if exported is None:
                        continue
                    if exported.type == "string":
                        name = string_value(exported, module.source)
                    else:
                        name = text(exported)
                    if name == "default":
                        exports.has_default = True
                    else:
                        exports.names.add(name)
        self._exports[path] = exports
        return exports

    def resolve_module(self, specifier: str, importer: str) -> str | None:
        """Snapshot path a module specifier refers to, or None."""
        if specifier.startswith(("./", "../", "/")) or specifier in (".", ".."):
            base = posixpath.normpath(posixpath.join(posixpath.dirname(importer), specifier))
            if base == ".." or base.startswith("../"):
                return None
            return self._resolve_path(base.lstrip("/"))

        parts = specifier.split("/")
        package_parts = 2 if specifier.startswith("@") and len(parts) > 1 else 1
        package = "/".join(parts[:package_parts])
        subpath = "/".join(parts[package_parts:])

        directory = posixpath.dirname(importer)
        while True:
            node_modules = (
                posixpath.join(directory, "node_modules") if directory else "node_modules"
            )
            found = self._resolve_package(posixpath.join(node_modules, package), subpath)
            if found is None and not subpath:
                types_name = package[1:].replace("/", "__") if package.startswith("@") else package
                found = self._resolve_package(
                    posixpath.join(node_modules, "@types", types_name), ""
                )
            if found is not None:
                return found
            if not directory:
                return None
            directory = posixpath.dirname(directory)

    def _resolve_package(self, package_dir: str, subpath: str) -> str | None:
        if subpath:
            return self._resolve_path(posixpath.join(package_dir, subpath))
        manifest = self.resolver.read(posixpath.join(package_dir, "package.json"))
        if manifest is not None:
            try:
                data = json.loads(manifest)
            except ValueError:
                data = {}
            if isinstance(data, dict):
                for key in ("types", "typings"):
                    entry = data.get(key)
                    if isinstance(entry, str):
                        entry_path = posixpath.normpath(posixpath.join(package_dir, entry))
                        found = self._resolve_path(entry_path)
                        if found is not None:
                            return found
        index = posixpath.join(package_dir, "index.d.ts")
        return index if self.resolver.exists(index) else None

    def _resolve_path(self, base: str) -> str | None:
        allow_js = bool(self.options.get("allowJs"))
        candidates: list[str] = []
        stem, extension = posixpath.splitext(base)
        if extension in JS_TO_TS:
            candidates.extend(stem + ts_extension for ts_extension in JS_TO_TS[extension])
            if allow_js:
                candidates.append(base)
        elif extension == ".json":
            if self.options.get("resolveJsonModule"):
                candidates.append(base)
        elif base.endswith(TS_EXTENSIONS):
            candidates.append(base)

        extensions = [".ts", ".tsx", ".d.ts"]
        if allow_js:
            extensions += [".js", ".jsx"]
        candidates.extend(base + ext for ext in extensions)
        candidates.extend(posixpath.join(base, "index" + ext) for ext in extensions)

        for candidate in candidates:
            if self.resolver.exists(candidate):
                return candidate
        return None

    # Emit

    def _emit(self) -> None:
        out_dir = self.options.get("outDir")
        for path in self.root_names:
            if path.endswith(".d.ts"):
                continue
            module = self._load(path)
            if module is None:
                continue
            out_path = posixpath.splitext(path)[0] + ".js"
            if isinstance(out_dir, str) and out_dir:
                out_path = posixpath.join(out_dir, out_path)
            self.resolver.write(out_path, module.source.text)


def typecheck(
    files: Mapping[str, str], compiler_options: Mapping[str, Any] | None = None
) -> dict[str, Any]:
    """Type-check a raw snapshot.

    Returns TypeScript-shaped ``diagnostics`` and the snapshot entries that
    were ``rejected`` because their path could not be normalized.
    """
    accepted: dict[str, str] = {}
    rejected: list[dict[str, str]] = []
    for raw_path, content in files.items():
        try:
            path = normalize_path(raw_path)
        except ValueError as e:
            rejected.append({"path": str(raw_path), "reason": str(e)})
            continue
        accepted[path] = content

    resolver = SnapshotResolver(accepted)
    checker = TypeChecker(resolver, resolver.paths(), compiler_options)
    return {"diagnostics": checker.check(), "rejected": rejected}
