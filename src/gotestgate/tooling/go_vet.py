from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
import subprocess

from gotestgate.exceptions import ExecError

RunCommand = Callable[..., subprocess.CompletedProcess[str]]

DEFAULT_PATTERN = "./..."


@dataclass(frozen=True)
class VetResult:
    ok: bool
    output: str
    exit_code: int

    def report_lines(self) -> list[str]:
        return self.output.splitlines()


def run_vet(
    *,
    pattern: str = DEFAULT_PATTERN,
    root: Path | None = None,
    go: str = "go",
    run: RunCommand = subprocess.run,
) -> VetResult:
    cmd = [go, "vet", pattern]
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
    # Diagnostics go to stderr; analyzers run with -json would use stdout.
    output = (result.stderr or "") + (result.stdout or "")
    ok = result.returncode == 0 and not output.strip()
    return VetResult(ok=ok, output=output, exit_code=result.returncode)
