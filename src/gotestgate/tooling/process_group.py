from __future__ import annotations

from collections.abc import Callable, Sequence
from pathlib import Path
import os
import signal
import subprocess
import time

from gotestgate.exceptions import ExecError

PopenFactory = Callable[..., subprocess.Popen[str]]

_TERMINATE_GRACE_SECONDS = 2.0


def spawn(
    command: Sequence[str],
    *,
    cwd: Path | None = None,
    popen: PopenFactory = subprocess.Popen,
) -> subprocess.Popen[str]:
    """Start ``command`` as the leader of a new process group."""
    try:
        return popen(
            list(command),
            cwd=str(cwd) if cwd is not None else None,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
            bufsize=1,
            start_new_session=True,
        )
    except FileNotFoundError as exc:
        raise ExecError(f"{command[0]}: executable file not found") from exc
    except PermissionError as exc:
        raise ExecError(f"{command[0]}: {exc.strerror or exc}") from exc


def terminate_process_group(
    proc: subprocess.Popen[str],
    *,
    grace_seconds: float = _TERMINATE_GRACE_SECONDS,
) -> None:
    if proc.poll() is None:
        try:
            os.killpg(proc.pid, signal.SIGTERM)
        except OSError:
            pass
        deadline = time.monotonic() + grace_seconds
        while proc.poll() is None and time.monotonic() < deadline:
            time.sleep(0.05)
    # The leader may be gone while children it forked still hold the pipes.
    try:
        os.killpg(proc.pid, signal.SIGKILL)
    except OSError:
        pass
    proc.wait()
