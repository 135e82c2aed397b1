"""Invariant markers for gotestgate."""

from __future__ import annotations

from typing import NoReturn

from gotestgate.exceptions import NeverThrown


def _render_env(env: dict[str, object]) -> str:
    return ", ".join(f"{key}={env[key]!r}" for key in sorted(env))


def never(reason: str = "", **env: object) -> NoReturn:
    """Mark a code path as intentionally unreachable.

    The optional env payload is metadata only; it is attached to the raised
    exception and rendered into its message.
    """
    message = reason or "never() marker reached"
    if env:
        message = f"{message} ({_render_env(env)})"
    raise NeverThrown(message, env=env)
