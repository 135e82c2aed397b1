"""Error kinds raised when gotestgate cannot evaluate policy."""

from __future__ import annotations


class GateError(RuntimeError):
    """Base class for failures of the tool itself, as opposed to policy failures."""


class LoadError(GateError):
    """Raised when the package graph cannot be parsed or type-resolved."""


class ExecError(GateError):
    """Raised when a required toolchain binary cannot be launched."""


class ProtocolError(GateError):
    """Raised when a toolchain event stream cannot be decoded."""


class NeverThrown(RuntimeError):
    """Sentinel exception for code paths that must be unreachable.

    Raised by :func:`gotestgate.invariants.never` when an internal contract is
    violated (for example a negative timeout reaching the deadline layer).
    The ``env`` payload carries the offending values for the error message.
    """

    def __init__(self, message: str, *, env: dict[str, object] | None = None):
        super().__init__(message)
        self.env = dict(env or {})
