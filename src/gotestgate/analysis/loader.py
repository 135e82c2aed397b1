from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from pathlib import Path
import json
import subprocess

from pydantic import ValidationError

from gotestgate.analysis.go_syntax import TypeResolver, function_decls, parse_go_file
from gotestgate.analysis.model import CompiledPackage, FileRole, GoFile
from gotestgate.exceptions import ExecError, LoadError
from gotestgate.schema import GoListPackageDTO

RunCommand = Callable[..., subprocess.CompletedProcess[str]]

DEFAULT_PATTERN = "./..."


def compile_package(
    import_path: str,
    *,
    name: str = "",
    directory: str = "",
    library: Mapping[str, bytes] | None = None,
    tests: Mapping[str, bytes] | None = None,
    xtests: Mapping[str, bytes] | None = None,
    package_names: Mapping[str, str] | None = None,
) -> CompiledPackage:
    """Parse and resolve one package from in-memory sources.

    ``library`` and ``tests`` share the package block; ``xtests`` (the
    ``<name>_test`` external test package) get a block of their own and see
    the package under test only through an import.
    """
    names = dict(package_names or {})
    parsed: dict[FileRole, list[GoFile]] = {"library": [], "test": [], "xtest": []}
    for role, sources in (("library", library), ("test", tests), ("xtest", xtests)):
        for path, source in sorted((sources or {}).items()):
            parsed[role].append(parse_go_file(path, source, role))
    internal = parsed["library"] + parsed["test"]
    if not name:
        name = internal[0].package_name if internal else ""
    if name:
        names.setdefault(import_path, name)
    for file in internal:
        if file.package_name != name:
            raise LoadError(
                f"{file.path}: found package {file.package_name}, expected {name}"
            )
    decls = []
    for files, path in (
        (internal, import_path),
        (parsed["xtest"], f"{import_path}_test"),
    ):
        if not files:
            continue
        resolver = TypeResolver(path, files, names)
        for file in files:
            decls.extend(function_decls(resolver, file))
    return CompiledPackage(
        import_path=import_path,
        name=name,
        dir=directory,
        files=tuple(internal + parsed["xtest"]),
        decls=tuple(decls),
    )


def _decode_stream(raw: str) -> Iterator[GoListPackageDTO]:
    decoder = json.JSONDecoder()
    index = 0
    length = len(raw)
    while True:
        while index < length and raw[index].isspace():
            index += 1
        if index >= length:
            return
        try:
            payload, index = decoder.raw_decode(raw, index)
        except json.JSONDecodeError as exc:
            raise LoadError(f"go list: invalid JSON output: {exc}") from exc
        try:
            yield GoListPackageDTO.model_validate(payload)
        except ValidationError as exc:
            raise LoadError(f"go list: unexpected package record: {exc}") from exc


def _base_import_path(import_path: str) -> str:
    # Test variants are reported as "pkg [pkg.test]".
    return import_path.split(" [", 1)[0]


def _is_target(record: GoListPackageDTO) -> bool:
    return not (
        record.DepOnly or record.ForTest or record.ImportPath.endswith(".test")
    )


def _package_errors(record: GoListPackageDTO) -> list[str]:
    errors = []
    if record.Error is not None:
        errors.append(record.Error.Err)
    errors.extend(error.Err for error in record.DepsErrors)
    return [error for error in errors if error]


def _read_sources(directory: Path, files: list[str]) -> dict[str, bytes]:
    sources: dict[str, bytes] = {}
    for file_name in files:
        path = directory / file_name
        try:
            sources[str(path)] = path.read_bytes()
        except OSError as exc:
            raise LoadError(f"{path}: {exc.strerror or exc}") from exc
    return sources


def list_packages(
    pattern: str = DEFAULT_PATTERN,
    *,
    root: Path | None = None,
    go: str = "go",
    run: RunCommand = subprocess.run,
) -> list[GoListPackageDTO]:
    cmd = [go, "list", "-e", "-json", "-deps", "-test", pattern]
    if root is not None and not root.is_dir():
        raise LoadError(f"{root}: not a directory")
    try:
        result = run(
            cmd,
            cwd=str(root) if root is not None else None,
            capture_output=True,
            text=True,
            check=False,
        )
    except FileNotFoundError as exc:
        raise ExecError(f"{go}: executable file not found") from exc
    except PermissionError as exc:
        raise ExecError(f"{go}: {exc.strerror or exc}") from exc
    except ValueError as exc:
        # Raised for arguments the OS cannot represent, such as NUL bytes.
        raise LoadError(f"invalid package pattern {pattern!r}: {exc}") from exc
    if result.returncode != 0:
        message = (result.stderr or result.stdout or "").strip()
        raise LoadError(f"go list {pattern}: {message or f'exit {result.returncode}'}")
    return list(_decode_stream(result.stdout))


def load(
    pattern: str = DEFAULT_PATTERN,
    *,
    root: Path | None = None,
    go: str = "go",
    run: RunCommand = subprocess.run,
) -> list[CompiledPackage]:
    records = list_packages(pattern, root=root, go=go, run=run)
    package_names = {
        _base_import_path(record.ImportPath): record.Name
        for record in records
        if record.Name
    }
    package_names.setdefault("C", "C")
    packages = []
    for record in records:
        if not _is_target(record):
            continue
        errors = _package_errors(record)
        if errors:
            raise LoadError(f"{record.ImportPath}: {'; '.join(errors)}")
        directory = Path(record.Dir)
        packages.append(
            compile_package(
                record.ImportPath,
                name=record.Name,
                directory=record.Dir,
                library=_read_sources(directory, record.GoFiles + record.CgoFiles),
                tests=_read_sources(directory, record.TestGoFiles),
                xtests=_read_sources(directory, record.XTestGoFiles),
                package_names=package_names,
            )
        )
    packages.sort(key=lambda package: package.import_path)
    return packages
