"""Go syntax trees and parameter type resolution.

Sources are parsed with tree-sitter-go. Parameter types are then bound the
way the Go type checker binds identifiers: qualified names through the
file's import table, bare names through the function's type parameters,
the package block, the universe block and finally dot imports. Resolution
yields :class:`ResolvedType` values, so classification compares declaring
package paths rather than spelling.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field

import tree_sitter_go
from tree_sitter import Language, Node, Parser

from gotestgate.analysis.model import (
    UNIVERSE,
    FileRole,
    FuncDecl,
    GoFile,
    ImportSpec,
    ResolvedType,
)
from gotestgate.exceptions import LoadError

GO_LANGUAGE = Language(tree_sitter_go.language())

UNIVERSE_TYPES = frozenset(
    {
        "any",
        "bool",
        "byte",
        "comparable",
        "complex64",
        "complex128",
        "error",
        "float32",
        "float64",
        "int",
        "int8",
        "int16",
        "int32",
        "int64",
        "rune",
        "string",
        "uint",
        "uint8",
        "uint16",
        "uint32",
        "uint64",
        "uintptr",
    }
)

_NON_STATEMENT_NODES = frozenset({"comment", "empty_statement"})


def _text(node: Node | None) -> str:
    if node is None or node.text is None:
        return ""
    return node.text.decode("utf-8")


def _line(node: Node) -> int:
    return node.start_point[0] + 1


def _first_error(node: Node) -> Node | None:
    if node.is_error or node.is_missing:
        return node
    for child in node.children:
        if child.has_error or child.is_missing:
            found = _first_error(child)
            if found is not None:
                return found
    return None


def _string_value(node: Node | None) -> str:
    raw = _text(node)
    if len(raw) >= 2 and raw[0] in "\"`" and raw[-1] == raw[0]:
        return raw[1:-1]
    return raw


def _import_specs(root: Node) -> Iterator[Node]:
    for child in root.named_children:
        if child.type != "import_declaration":
            continue
        for spec in child.named_children:
            if spec.type == "import_spec":
                yield spec
            elif spec.type == "import_spec_list":
                for inner in spec.named_children:
                    if inner.type == "import_spec":
                        yield inner


def parse_go_file(path: str, source: bytes, role: FileRole) -> GoFile:
    parser = Parser(GO_LANGUAGE)
    tree = parser.parse(source)
    root = tree.root_node
    if root.has_error:
        bad = _first_error(root) or root
        row, column = bad.start_point
        raise LoadError(f"{path}:{row + 1}:{column + 1}: syntax error")
    package_name = ""
    for child in root.named_children:
        if child.type == "package_clause":
            package_name = _text(child.named_children[0]) if child.named_children else ""
            break
    if not package_name:
        raise LoadError(f"{path}: expected package clause")
    imports = []
    for spec in _import_specs(root):
        alias_node = spec.child_by_field_name("name")
        imports.append(
            ImportSpec(
                path=_string_value(spec.child_by_field_name("path")),
                alias=_text(alias_node) if alias_node is not None else None,
                line=_line(spec),
            )
        )
    return GoFile(
        path=path,
        role=role,
        package_name=package_name,
        tree=tree,
        imports=tuple(imports),
    )


def default_import_name(import_path: str) -> str:
    parts = [part for part in import_path.split("/") if part]
    if not parts:
        return import_path
    last = parts[-1]
    if len(parts) > 1 and last.startswith("v") and last[1:].isdigit():
        last = parts[-2]
    # gopkg.in/yaml.v3 style versioned paths
    head, dot, tail = last.rpartition(".v")
    if dot and tail.isdigit():
        last = head
    return last


@dataclass
class _FileScope:
    file: GoFile
    bindings: dict[str, str] = field(default_factory=dict)
    dot_imports: list[str] = field(default_factory=list)

    @classmethod
    def build(cls, file: GoFile, package_names: Mapping[str, str]) -> "_FileScope":
        scope = cls(file=file)
        for spec in file.imports:
            if spec.alias == ".":
                scope.dot_imports.append(spec.path)
                continue
            if spec.alias == "_":
                continue
            name = spec.alias or package_names.get(spec.path) or default_import_name(
                spec.path
            )
            scope.bindings[name] = spec.path
        return scope


@dataclass(frozen=True)
class _AliasDecl:
    scope: _FileScope
    target: Node


class TypeResolver:
    """Binds type expressions of one package (or external test package)."""

    def __init__(
        self,
        import_path: str,
        files: Sequence[GoFile],
        package_names: Mapping[str, str],
    ) -> None:
        self.import_path = import_path
        self.scopes = {file.path: _FileScope.build(file, package_names) for file in files}
        self.defined: set[str] = set()
        self.aliases: dict[str, _AliasDecl] = {}
        for file in files:
            self._collect_type_decls(file)

    def _collect_type_decls(self, file: GoFile) -> None:
        scope = self.scopes[file.path]
        for child in file.tree.root_node.named_children:
            if child.type != "type_declaration":
                continue
            for spec in child.named_children:
                name = _text(spec.child_by_field_name("name"))
                if not name:
                    continue
                if spec.type == "type_alias":
                    target = spec.child_by_field_name("type")
                    if target is not None:
                        self.aliases[name] = _AliasDecl(scope=scope, target=target)
                elif spec.type == "type_spec":
                    self.defined.add(name)

    def resolve(
        self,
        file: GoFile,
        node: Node,
        type_params: frozenset[str] = frozenset(),
    ) -> ResolvedType:
        return self._resolve(self.scopes[file.path], node, type_params, frozenset())

    def _resolve(
        self,
        scope: _FileScope,
        node: Node,
        type_params: frozenset[str],
        seen_aliases: frozenset[str],
    ) -> ResolvedType:
        kind = node.type
        if kind == "parenthesized_type" and node.named_children:
            return self._resolve(scope, node.named_children[0], type_params, seen_aliases)
        if kind == "pointer_type" and node.named_children:
            return ResolvedType.pointer(
                self._resolve(scope, node.named_children[0], type_params, seen_aliases)
            )
        if kind == "type_identifier":
            return self._resolve_identifier(scope, node, type_params, seen_aliases)
        if kind == "qualified_type":
            return self._resolve_qualified(scope, node)
        return ResolvedType(kind="composite", name=" ".join(_text(node).split()))

    def _resolve_identifier(
        self,
        scope: _FileScope,
        node: Node,
        type_params: frozenset[str],
        seen_aliases: frozenset[str],
    ) -> ResolvedType:
        name = _text(node)
        if name in type_params:
            return ResolvedType(kind="type_param", name=name)
        alias = self.aliases.get(name)
        if alias is not None:
            if name in seen_aliases:
                raise LoadError(
                    f"{scope.file.path}:{_line(node)}: invalid recursive type alias {name}"
                )
            return self._resolve(
                alias.scope, alias.target, frozenset(), seen_aliases | {name}
            )
        if name in self.defined:
            return ResolvedType.named(self.import_path, name)
        if name in UNIVERSE_TYPES:
            return ResolvedType.named(UNIVERSE, name)
        if len(scope.dot_imports) == 1:
            return ResolvedType.named(scope.dot_imports[0], name)
        if scope.dot_imports:
            return ResolvedType(kind="unknown", name=name)
        raise LoadError(f"{scope.file.path}:{_line(node)}: undefined: {name}")

    def _resolve_qualified(self, scope: _FileScope, node: Node) -> ResolvedType:
        qualifier = _text(node.child_by_field_name("package"))
        name = _text(node.child_by_field_name("name"))
        path = scope.bindings.get(qualifier)
        if path is None:
            raise LoadError(f"{scope.file.path}:{_line(node)}: undefined: {qualifier}")
        return ResolvedType.named(path, name)


def _declared_names(node: Node | None) -> set[str]:
    names: set[str] = set()
    if node is None:
        return names
    for child in node.named_children:
        if child.type in {"type_parameter_declaration", "parameter_declaration"}:
            names.update(_text(ident) for ident in child.children_by_field_name("name"))
    return names


def _receiver_type_params(receiver: Node | None) -> set[str]:
    names: set[str] = set()
    if receiver is None:
        return names
    stack = list(receiver.named_children)
    while stack:
        node = stack.pop()
        if node.type == "type_arguments":
            for arg in node.named_children:
                names.update(_identifiers(arg))
            continue
        stack.extend(node.named_children)
    return names


def _identifiers(node: Node) -> set[str]:
    if node.type == "type_identifier":
        return {_text(node)}
    found: set[str] = set()
    for child in node.named_children:
        found.update(_identifiers(child))
    return found


def _statements(block: Node) -> Iterator[Node]:
    for child in block.named_children:
        if child.type == "statement_list":
            yield from _statements(child)
        elif child.type not in _NON_STATEMENT_NODES:
            yield child


def has_statements(body: Node | None) -> bool:
    if body is None:
        return False
    return next(_statements(body), None) is not None


def _parameter_types(
    resolver: TypeResolver,
    file: GoFile,
    parameters: Node | None,
    type_params: frozenset[str],
) -> tuple[ResolvedType, ...]:
    resolved: list[ResolvedType] = []
    if parameters is None:
        return ()
    for param in parameters.named_children:
        type_node = param.child_by_field_name("type")
        if type_node is None:
            continue
        if param.type == "variadic_parameter_declaration":
            resolved.append(
                ResolvedType.slice(resolver.resolve(file, type_node, type_params))
            )
        elif param.type == "parameter_declaration":
            value = resolver.resolve(file, type_node, type_params)
            count = max(1, len(param.children_by_field_name("name")))
            resolved.extend([value] * count)
    return tuple(resolved)


def function_decls(resolver: TypeResolver, file: GoFile) -> Iterator[FuncDecl]:
    for node in file.tree.root_node.named_children:
        if node.type not in {"function_declaration", "method_declaration"}:
            continue
        is_method = node.type == "method_declaration"
        declared_type_params = _declared_names(node.child_by_field_name("type_parameters"))
        type_params = set(declared_type_params)
        if is_method:
            type_params |= _receiver_type_params(node.child_by_field_name("receiver"))
        yield FuncDecl(
            name=_text(node.child_by_field_name("name")),
            file=file.path,
            line=_line(node),
            role=file.role,
            is_method=is_method,
            params=_parameter_types(
                resolver,
                file,
                node.child_by_field_name("parameters"),
                frozenset(type_params),
            ),
            has_statements=has_statements(node.child_by_field_name("body")),
            has_type_params=bool(declared_type_params),
        )
