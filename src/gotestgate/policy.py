"""Policy orchestration: load, lint, test, then check test presence."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
import sys
import time

from gotestgate import config
from gotestgate.analysis import loader
from gotestgate.analysis.model import CompiledPackage
from gotestgate.analysis.test_oracle import verify_has_tests
from gotestgate.deadline import Deadline
from gotestgate.invariants import never
from gotestgate.tooling import go_test, go_vet

DEFAULT_PATTERN = "./..."
DEFAULT_TIMEOUT_MS = 120_000

LoadFn = Callable[..., list[CompiledPackage]]
VetFn = Callable[..., go_vet.VetResult]
TestsFn = Callable[..., go_test.GoTestRun]
PrintFn = Callable[[str], None]


def _default_print_err(message: str) -> None:
    print(message, file=sys.stderr)


@dataclass(frozen=True)
class PolicyDeps:
    load: LoadFn = loader.load
    run_vet: VetFn = go_vet.run_vet
    run_tests: TestsFn = go_test.run_tests
    print_fn: PrintFn = _default_print_err
    monotonic_fn: Callable[[], float] = time.monotonic


@dataclass(frozen=True)
class PolicySettings:
    pattern: str = DEFAULT_PATTERN
    root: Path | None = None
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    go: str = "go"
    vet: bool = True
    verbose: bool = False

    def __post_init__(self) -> None:
        if int(self.timeout_ms) <= 0:
            never("invalid test timeout", timeout_ms=self.timeout_ms)

    @classmethod
    def from_config(
        cls,
        *,
        root: Path | None = None,
        config_path: Path | None = None,
        overrides: config.TomlTable | None = None,
    ) -> "PolicySettings":
        section = config.apply_overrides(
            config.read_gate_section(root=root, config_path=config_path),
            overrides or {},
        )
        return cls(
            pattern=config.gate_pattern(section, DEFAULT_PATTERN),
            root=root,
            timeout_ms=config.gate_timeout_ms(section, DEFAULT_TIMEOUT_MS),
            go=config.gate_go_binary(section, "go"),
            vet=config.gate_vet_enabled(section, True),
            verbose=config.as_bool(section.get("verbose", False)),
        )


@dataclass(frozen=True)
class PolicyOutcome:
    lint: go_vet.VetResult | None
    tests: go_test.GoTestRun
    missing_test_lines: tuple[str, ...] = field(default_factory=tuple)

    @property
    def lint_ok(self) -> bool:
        return self.lint is None or self.lint.ok

    @property
    def has_tests_ok(self) -> bool:
        return not self.missing_test_lines

    @property
    def ok(self) -> bool:
        return self.lint_ok and self.tests.ok and self.has_tests_ok

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1

    def report_lines(self) -> list[str]:
        lines: list[str] = []
        if self.lint is not None:
            lines.extend(self.lint.report_lines())
        lines.extend(self.tests.report_lines())
        lines.extend(self.missing_test_lines)
        return lines

    def render(self) -> str:
        return "".join(f"{line}\n" for line in self.report_lines())


def _progress(
    settings: PolicySettings,
    deps: PolicyDeps,
    *,
    stage: str,
    ok: bool,
    started: float,
) -> None:
    if not settings.verbose:
        return
    elapsed_seconds = max(0.0, deps.monotonic_fn() - started)
    deps.print_fn(
        f"gotestgate: {stage} complete ok={ok} elapsed_s={elapsed_seconds:.2f}"
    )


def run_policy(
    settings: PolicySettings,
    *,
    deps: PolicyDeps | None = None,
) -> PolicyOutcome:
    deps = deps or PolicyDeps()

    started = deps.monotonic_fn()
    packages = deps.load(settings.pattern, root=settings.root, go=settings.go)
    _progress(settings, deps, stage="load", ok=True, started=started)

    lint = None
    if settings.vet:
        started = deps.monotonic_fn()
        lint = deps.run_vet(pattern=settings.pattern, root=settings.root, go=settings.go)
        _progress(settings, deps, stage="vet", ok=lint.ok, started=started)

    started = deps.monotonic_fn()
    tests = deps.run_tests(
        deadline=Deadline.from_timeout_ms(settings.timeout_ms),
        pattern=settings.pattern,
        root=settings.root,
        go=settings.go,
        known_packages=[package.import_path for package in packages],
    )
    _progress(settings, deps, stage="test", ok=tests.ok, started=started)

    started = deps.monotonic_fn()
    has_tests_ok, missing = verify_has_tests(packages)
    _progress(settings, deps, stage="has-tests", ok=has_tests_ok, started=started)

    return PolicyOutcome(lint=lint, tests=tests, missing_test_lines=tuple(missing))
