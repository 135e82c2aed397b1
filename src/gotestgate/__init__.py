"""gotestgate package root."""

from gotestgate.exceptions import ExecError, GateError, LoadError, ProtocolError

__all__ = ["__version__", "ExecError", "GateError", "LoadError", "ProtocolError"]

__version__ = "0.1.0"
