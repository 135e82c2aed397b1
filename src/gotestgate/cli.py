from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional

from click.core import ParameterSource
import typer

from gotestgate import __version__
from gotestgate.exceptions import GateError
from gotestgate.policy import PolicyDeps, PolicySettings, run_policy

app = typer.Typer(add_completion=False)

_TOOL_FAILURE_EXIT = 2


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"gotestgate {__version__}")
        raise typer.Exit(code=0)


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the version and exit.",
    ),
) -> None:
    """Enforce test, coverage, vet and test-presence policy on a Go module."""


def run_check(
    settings: PolicySettings,
    *,
    deps: PolicyDeps | None = None,
    echo_fn: Callable[[str], None] = typer.echo,
) -> int:
    try:
        outcome = run_policy(settings, deps=deps)
    except GateError as exc:
        typer.secho(str(exc), err=True, fg=typer.colors.RED)
        return _TOOL_FAILURE_EXIT
    report = outcome.render()
    if report:
        echo_fn(report.rstrip("\n"))
    return outcome.exit_code


def _param_is_command_line(ctx: typer.Context, param: str) -> bool:
    return ctx.get_parameter_source(param) is ParameterSource.COMMANDLINE


@app.command("check")
def check(
    ctx: typer.Context,
    pattern: Optional[str] = typer.Argument(
        None, help="Package pattern to check (default: ./...)."
    ),
    root: Path = typer.Option(Path("."), "--root", help="Go module root."),
    config: Optional[Path] = typer.Option(None, "--config"),
    timeout_ms: Optional[int] = typer.Option(
        None, "--timeout-ms", min=1, help="Deadline for the go test stage."
    ),
    go: Optional[str] = typer.Option(None, "--go", help="Go toolchain binary."),
    vet: Optional[bool] = typer.Option(None, "--vet/--no-vet"),
    verbose: bool = typer.Option(False, "-v", "--verbose"),
) -> None:
    """Run go vet, go test with coverage and the test-presence check.

    Exits 0 when every stage passes and 1 on a policy failure. A tool
    failure (unloadable packages, a missing go binary, an undecodable test
    stream) is printed to stderr and exits 2.
    """
    given = {
        "pattern": pattern,
        "timeout_ms": timeout_ms,
        "go": go,
        "vet": vet,
        "verbose": verbose,
    }
    settings = PolicySettings.from_config(
        root=root,
        config_path=config,
        overrides={
            key: value
            for key, value in given.items()
            if _param_is_command_line(ctx, key)
        },
    )
    raise typer.Exit(code=run_check(settings))


def main() -> None:
    app()
