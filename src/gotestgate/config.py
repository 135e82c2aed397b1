from __future__ import annotations

from datetime import date, datetime, time
from pathlib import Path
from typing import TypeAlias
import tomllib

DEFAULT_CONFIG_NAME = "gotestgate.toml"

TomlScalar: TypeAlias = str | int | float | bool | None | date | datetime | time
TomlValue: TypeAlias = TomlScalar | list["TomlValue"] | dict[str, "TomlValue"]
TomlTable: TypeAlias = dict[str, TomlValue]


def gate_config_path(root: Path | None = None, config_path: Path | None = None) -> Path:
    if config_path is not None:
        return config_path
    return (root if root is not None else Path.cwd()) / DEFAULT_CONFIG_NAME


def read_gate_section(
    root: Path | None = None, config_path: Path | None = None
) -> TomlTable:
    """Return the ``[gate]`` table; a missing or malformed file reads as empty."""
    path = gate_config_path(root, config_path)
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError):
        return {}
    section = data.get("gate", {})
    return section if isinstance(section, dict) else {}


def as_bool(value: TomlValue) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return False


def gate_pattern(section: TomlTable, default: str) -> str:
    value = section.get("pattern")
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def gate_timeout_ms(section: TomlTable, default: int) -> int:
    value = section.get("timeout_ms")
    if isinstance(value, bool):
        return default
    if isinstance(value, int) and value > 0:
        return value
    if isinstance(value, str) and value.strip().isdigit() and int(value) > 0:
        return int(value)
    return default


def gate_go_binary(section: TomlTable, default: str) -> str:
    value = section.get("go")
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def gate_vet_enabled(section: TomlTable, default: bool) -> bool:
    if "vet" not in section:
        return default
    return as_bool(section.get("vet"))


def apply_overrides(section: TomlTable, overrides: TomlTable) -> TomlTable:
    # None marks an option the caller left unset.
    given = {key: value for key, value in overrides.items() if value is not None}
    return {**section, **given}
