"""Source analysis subpackage for gotestgate."""

from .loader import compile_package, load
from .model import CompiledPackage, FuncDecl, ResolvedType
from .test_oracle import (
    has_tests,
    is_test_entry_point,
    missing_tests,
    needs_tests,
    verify_has_tests,
)

__all__ = [
    "CompiledPackage",
    "FuncDecl",
    "ResolvedType",
    "compile_package",
    "has_tests",
    "is_test_entry_point",
    "load",
    "missing_tests",
    "needs_tests",
    "verify_has_tests",
]
