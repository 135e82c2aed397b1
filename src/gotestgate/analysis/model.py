from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Tuple

from tree_sitter import Tree

FileRole = Literal["library", "test", "xtest"]
TypeKind = Literal["named", "pointer", "slice", "type_param", "composite", "unknown"]

# Import path of the Go universe scope (predeclared identifiers).
UNIVERSE = ""


@dataclass(frozen=True)
class ResolvedType:
    """Semantic identity of a parameter type.

    Two parameters have the same type exactly when their ResolvedType values
    compare equal. ``named`` types are identified by the import path of the
    declaring package plus the type name, so a local ``type T`` never equals
    ``testing.T``.
    """

    kind: TypeKind
    package: str = ""
    name: str = ""
    elem: "ResolvedType | None" = None

    @classmethod
    def named(cls, package: str, name: str) -> "ResolvedType":
        return cls(kind="named", package=package, name=name)

    @classmethod
    def pointer(cls, elem: "ResolvedType") -> "ResolvedType":
        return cls(kind="pointer", elem=elem)

    @classmethod
    def slice(cls, elem: "ResolvedType") -> "ResolvedType":
        return cls(kind="slice", elem=elem)

    def describe(self) -> str:
        if self.kind == "named":
            if self.package == UNIVERSE:
                return self.name
            return f"{self.package}.{self.name}"
        if self.kind == "pointer" and self.elem is not None:
            return "*" + self.elem.describe()
        if self.kind == "slice" and self.elem is not None:
            return "[]" + self.elem.describe()
        return self.name


@dataclass(frozen=True)
class ImportSpec:
    path: str
    alias: str | None = None
    line: int = 0


@dataclass(frozen=True)
class GoFile:
    path: str
    role: FileRole
    package_name: str
    tree: Tree
    imports: Tuple[ImportSpec, ...] = ()


@dataclass(frozen=True)
class FuncDecl:
    name: str
    file: str
    line: int
    role: FileRole
    is_method: bool
    params: Tuple[ResolvedType, ...]
    has_statements: bool
    has_type_params: bool = False

    @property
    def arity(self) -> int:
        return len(self.params)


@dataclass(frozen=True)
class CompiledPackage:
    """One loaded Go package: syntax trees plus resolved declarations."""

    import_path: str
    name: str
    dir: str
    files: Tuple[GoFile, ...]
    decls: Tuple[FuncDecl, ...]

    def decls_with_role(self, *roles: FileRole) -> Tuple[FuncDecl, ...]:
        return tuple(decl for decl in self.decls if decl.role in roles)
